from __future__ import annotations

import subprocess

import pytest

from rhpam_broker.proc import (
    AdapterCommandError,
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
    classify_error,
    make_runner,
    run_command,
)


def _runner(returncode: int, *, stdout: str = "", stderr: str = ""):
    def runner(cmd: list[str]) -> subprocess.CompletedProcess[str]:
        return subprocess.CompletedProcess(args=cmd, returncode=returncode, stdout=stdout, stderr=stderr)

    return runner


@pytest.mark.parametrize(
    ("returncode", "stderr", "expected"),
    [
        (1, 'Error from server (NotFound): namespaces "rhpam-x" not found', "not-found"),
        (1, 'Error from server (AlreadyExists): namespaces "rhpam-x" already exists', "already-exists"),
        (1, "Unable to connect to the server: dial tcp: i/o timeout", "retryable"),
        (1, "Error from server (Forbidden): roles is forbidden", "fatal"),
        (1, "error: the server doesn't have a resource type \"rhpamusers\"", "not-found"),
        (-9, "", "retryable"),
        (127, "cannot run /opt/kubectl: [Errno 2] No such file or directory", "fatal"),
    ],
)
def test_classify_error(returncode: int, stderr: str, expected: str) -> None:
    assert classify_error(returncode=returncode, stderr=stderr, stdout="") == expected


def test_run_command_returns_result_on_success() -> None:
    result = run_command(["kubectl", "version"], runner=_runner(0, stdout="ok"), error_message="nope")
    assert result.stdout == "ok"
    assert result.returncode == 0


def test_run_command_raises_specialized_errors() -> None:
    with pytest.raises(ResourceNotFoundError) as exc_info:
        run_command(["kubectl"], runner=_runner(1, stderr="(NotFound) thing not found"), error_message="get failed")
    assert exc_info.value.category == "not-found"
    assert "get failed" in str(exc_info.value)

    with pytest.raises(ResourceAlreadyExistsError):
        run_command(["kubectl"], runner=_runner(1, stderr="(AlreadyExists) already exists"), error_message="x")


def test_run_command_fatal_error_is_not_retryable() -> None:
    with pytest.raises(AdapterCommandError) as exc_info:
        run_command(["kubectl"], runner=_runner(1, stderr="Error from server (Forbidden)"), error_message="x")
    assert type(exc_info.value) is AdapterCommandError
    assert exc_info.value.retryable is False


def test_make_runner_reports_timeouts_as_failed_commands(monkeypatch) -> None:
    def fake_run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd=cmd, timeout=kwargs["timeout"])

    monkeypatch.setattr(subprocess, "run", fake_run)
    completed = make_runner(timeout=5)(["kubectl", "get", "namespaces"])

    assert completed.returncode == -1
    assert "timed out" in completed.stderr
    assert classify_error(returncode=completed.returncode, stderr=completed.stderr, stdout="") == "retryable"


def test_make_runner_reports_unrunnable_binary_as_fatal(monkeypatch) -> None:
    def fake_run(cmd, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", cmd[0])

    monkeypatch.setattr(subprocess, "run", fake_run)
    runner = make_runner(timeout=5)

    completed = runner(["/opt/missing/kubectl", "get", "namespaces"])
    assert completed.returncode == 127
    assert "/opt/missing/kubectl" in completed.stderr

    with pytest.raises(AdapterCommandError) as exc_info:
        run_command(["/opt/missing/kubectl", "get", "namespaces"], runner=runner, error_message="get failed")
    assert type(exc_info.value) is AdapterCommandError
    assert exc_info.value.category == "fatal"


@pytest.mark.parametrize(
    ("returncode", "stderr", "expected"),
    [
        (1, "The connection to the server 10.0.0.1:6443 was refused - connection refused", True),
        (1, "Unable to connect to the server: dial tcp 10.0.0.1:6443: i/o timeout", True),
        (1, "Error from server (TooManyRequests): too many requests", True),
        (
            1,
            "Unable to connect to the server: net/http: request canceled (Client.Timeout exceeded while awaiting headers)",
            False,
        ),
        (1, "error: context deadline exceeded", False),
        (-1, "command timed out after 5s", False),
        (1, "Error from server (Forbidden): roles is forbidden", False),
    ],
)
def test_request_not_sent(returncode: int, stderr: str, expected: bool) -> None:
    with pytest.raises(AdapterCommandError) as exc_info:
        run_command(["kubectl", "create"], runner=_runner(returncode, stderr=stderr), error_message="create failed")
    assert exc_info.value.request_not_sent is expected
