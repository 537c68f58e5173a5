import pytest

from rhpam_broker.config import DEFAULT_OPERATOR_IMAGE, BrokerConfig
from rhpam_broker.services.errors import ConfigurationException


def test_defaults_from_empty_environment() -> None:
    config = BrokerConfig.from_env({})

    assert config == BrokerConfig()
    assert config.namespace_prefix == "rhpam"
    assert config.route_suffix is None
    assert config.operator_image == DEFAULT_OPERATOR_IMAGE
    assert config.pipeline_variant == "standard"


def test_environment_overrides() -> None:
    config = BrokerConfig.from_env(
        {
            "ROUTE_SUFFIX": "apps.example.com",
            "SSO_NAMESPACE": "sso",
            "SSO_ADMIN_CREDENTIALS_SECRET": "sso-admin",
            "RHPAM_OPERATOR_IMAGE": "registry/operator:1",
            "RHPAM_BROKER_NAMESPACE_PREFIX": "tenant",
            "RHPAM_BROKER_PIPELINE_VARIANT": "Extended",
            "RHPAM_BROKER_KUBECTL": "/usr/bin/oc",
            "RHPAM_BROKER_STEP_TIMEOUT": "15",
            "RHPAM_BROKER_RETRY_ATTEMPTS": "5",
            "RHPAM_BROKER_RETRY_BACKOFF": "0",
        }
    )

    assert config == BrokerConfig(
        namespace_prefix="tenant",
        route_suffix="apps.example.com",
        sso_namespace="sso",
        sso_admin_credentials_secret="sso-admin",
        operator_image="registry/operator:1",
        pipeline_variant="extended",
        kubectl="/usr/bin/oc",
        step_timeout=15.0,
        retry_attempts=5,
        retry_backoff=0.0,
    )


def test_blank_numbers_fall_back_to_defaults() -> None:
    config = BrokerConfig.from_env({"RHPAM_BROKER_STEP_TIMEOUT": " ", "RHPAM_BROKER_RETRY_ATTEMPTS": ""})

    assert config.step_timeout == 60.0
    assert config.retry_attempts == 3


@pytest.mark.parametrize(
    "env",
    [
        {"RHPAM_BROKER_PIPELINE_VARIANT": "full"},
        {"RHPAM_BROKER_NAMESPACE_PREFIX": "  "},
        {"RHPAM_BROKER_STEP_TIMEOUT": "soon"},
        {"RHPAM_BROKER_STEP_TIMEOUT": "0"},
        {"RHPAM_BROKER_RETRY_ATTEMPTS": "0"},
        {"RHPAM_BROKER_RETRY_ATTEMPTS": "1.5"},
        {"RHPAM_BROKER_RETRY_BACKOFF": "-1"},
    ],
)
def test_invalid_settings_are_rejected(env) -> None:
    with pytest.raises(ConfigurationException):
        BrokerConfig.from_env(env)
