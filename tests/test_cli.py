from __future__ import annotations

from typing import Any

import yaml

from rhpam_broker.services import templates
from tests.fake_cluster import command_error


def _stdout(result) -> str:
    return getattr(result, "stdout", result.output)


def _stderr(result) -> str:
    return getattr(result, "stderr", result.output)


def _parse_yaml_stdout(result) -> Any:
    return yaml.safe_load(_stdout(result))


def test_cli_catalog(cli_runner) -> None:
    runner, app = cli_runner

    result = runner.invoke(app, ["catalog"])

    assert result.exit_code == 0, _stderr(result)
    data = _parse_yaml_stdout(result)
    assert data["services"][0]["name"] == "rhpam-dev"


def test_cli_provision_and_poll(cli_runner, cluster) -> None:
    runner, app = cli_runner

    result = runner.invoke(app, ["provision", "abc123", "--identity", "dev@example.com"])
    assert result.exit_code == 0, _stderr(result)
    assert _parse_yaml_stdout(result) == {
        "operation": "deploy",
        "dashboard_url": "https://rhpam-bc-rhpam-abc123.apps.example.com",
    }

    result = runner.invoke(app, ["last-operation", "abc123", "--operation", "deploy"])
    assert result.exit_code == 0, _stderr(result)
    assert _parse_yaml_stdout(result) == {"state": "in progress", "description": "rhpam is deploying"}

    cluster.set_phase(templates.RHPAM_DEV, "rhpam-abc123", "complete")
    result = runner.invoke(app, ["last-operation", "abc123", "--operation", "deploy"])
    assert _parse_yaml_stdout(result)["state"] == "succeeded"


def test_cli_deprovision(cli_runner, cluster) -> None:
    runner, app = cli_runner
    runner.invoke(app, ["provision", "abc123", "--identity", "dev@example.com"])

    result = runner.invoke(app, ["deprovision", "abc123"])

    assert result.exit_code == 0, _stderr(result)
    assert _parse_yaml_stdout(result) == {"operation": "remove"}
    assert not cluster.namespace_exists("rhpam-abc123")


def test_cli_provision_failure_exits_non_zero(cli_runner, cluster) -> None:
    runner, app = cli_runner
    cluster.fail("create", "ClusterRole", command_error(stderr="Error from server (Forbidden): clusterroles"))

    result = runner.invoke(app, ["provision", "abc123", "--identity", "dev@example.com"])

    assert result.exit_code == 1
    assert "Error: failed to create ClusterRole" in _stderr(result)


def test_cli_last_operation_not_found(cli_runner) -> None:
    runner, app = cli_runner

    result = runner.invoke(app, ["last-operation", "abc123", "--operation", "deploy"])

    assert result.exit_code == 1
    assert "not found" in _stderr(result)
