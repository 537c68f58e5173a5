import base64
import json

import pytest
from starlette.testclient import TestClient
from typer.testing import CliRunner

from rhpam_broker.config import BrokerConfig
from rhpam_broker.deps import get_broker
from rhpam_broker.main import app
from rhpam_broker.services.broker import RhpamBroker
from tests.fake_cluster import FakeClusterClient


@pytest.fixture
def cluster() -> FakeClusterClient:
    return FakeClusterClient()


@pytest.fixture
def broker_config() -> BrokerConfig:
    return BrokerConfig(route_suffix="apps.example.com", sso_namespace="sso", sso_admin_credentials_secret="sso-admin")


@pytest.fixture
def broker(cluster, broker_config) -> RhpamBroker:
    return RhpamBroker(client=cluster, config=broker_config)


@pytest.fixture
def client(broker):
    app.dependency_overrides[get_broker] = lambda: broker

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def identity_header() -> dict[str, str]:
    encoded = base64.b64encode(json.dumps({"username": "developer@example.com"}).encode()).decode()
    return {"X-Broker-API-Originating-Identity": f"kubernetes {encoded}"}


@pytest.fixture()
def cli_runner(broker, monkeypatch):
    import rhpam_broker.cli as cli

    monkeypatch.setattr(cli, "get_broker", lambda: broker)
    return CliRunner(), cli.app
