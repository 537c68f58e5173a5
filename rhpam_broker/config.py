from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Literal, Mapping

from rhpam_broker.services.errors import ConfigurationException

PipelineVariant = Literal["standard", "extended"]

PIPELINE_VARIANTS: tuple[str, ...] = ("standard", "extended")
DEFAULT_NAMESPACE_PREFIX = "rhpam"
DEFAULT_OPERATOR_IMAGE = "quay.io/integreatly/rhpam-dev-operator:v0.0.2"


@dataclass(frozen=True)
class BrokerConfig:
    """Process-wide settings, resolved once at startup."""

    namespace_prefix: str = DEFAULT_NAMESPACE_PREFIX
    route_suffix: str | None = None
    sso_namespace: str = ""
    sso_admin_credentials_secret: str = ""
    operator_image: str = DEFAULT_OPERATOR_IMAGE
    pipeline_variant: PipelineVariant = "standard"
    kubectl: str = "kubectl"
    step_timeout: float = 60.0
    retry_attempts: int = 3
    retry_backoff: float = 1.0

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "BrokerConfig":
        env = os.environ if environ is None else environ

        variant = env.get("RHPAM_BROKER_PIPELINE_VARIANT", "standard").strip().lower()
        if variant not in PIPELINE_VARIANTS:
            raise ConfigurationException(
                f"RHPAM_BROKER_PIPELINE_VARIANT must be one of {', '.join(PIPELINE_VARIANTS)}, got {variant!r}"
            )

        prefix = env.get("RHPAM_BROKER_NAMESPACE_PREFIX", DEFAULT_NAMESPACE_PREFIX).strip()
        if not prefix:
            raise ConfigurationException("RHPAM_BROKER_NAMESPACE_PREFIX must not be empty")

        return cls(
            namespace_prefix=prefix,
            # Unset leaves the dashboard host bare; empty still appends a dot.
            route_suffix=env.get("ROUTE_SUFFIX"),
            sso_namespace=env.get("SSO_NAMESPACE", ""),
            sso_admin_credentials_secret=env.get("SSO_ADMIN_CREDENTIALS_SECRET", ""),
            operator_image=env.get("RHPAM_OPERATOR_IMAGE", DEFAULT_OPERATOR_IMAGE),
            pipeline_variant=variant,  # type: ignore[arg-type]
            kubectl=env.get("RHPAM_BROKER_KUBECTL", "kubectl"),
            step_timeout=_positive_float(env, "RHPAM_BROKER_STEP_TIMEOUT", 60.0),
            retry_attempts=_positive_int(env, "RHPAM_BROKER_RETRY_ATTEMPTS", 3),
            retry_backoff=_non_negative_float(env, "RHPAM_BROKER_RETRY_BACKOFF", 1.0),
        )


def _positive_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationException(f"{key} must be an integer, got {raw!r}") from exc
    if value < 1:
        raise ConfigurationException(f"{key} must be at least 1, got {value}")
    return value


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationException(f"{key} must be a number, got {raw!r}") from exc


def _positive_float(env: Mapping[str, str], key: str, default: float) -> float:
    value = _float(env, key, default)
    if value <= 0:
        raise ConfigurationException(f"{key} must be greater than 0, got {value}")
    return value


def _non_negative_float(env: Mapping[str, str], key: str, default: float) -> float:
    value = _float(env, key, default)
    if value < 0:
        raise ConfigurationException(f"{key} must not be negative, got {value}")
    return value
