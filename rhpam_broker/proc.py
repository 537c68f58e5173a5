from __future__ import annotations

from dataclasses import dataclass
import subprocess
from typing import Callable, Literal

ErrorCategory = Literal["retryable", "fatal", "not-found", "already-exists"]
CommandRunner = Callable[[list[str]], subprocess.CompletedProcess[str]]

_RETRYABLE_PATTERNS = (
    "timed out",
    "timeout",
    "temporarily unavailable",
    "connection refused",
    "connection reset",
    "i/o timeout",
    "tls handshake timeout",
    "context deadline exceeded",
    "unable to connect",
    "too many requests",
    "rate limit",
    "serviceunavailable",
)
# A missing resource type (CRD not installed) counts as nothing found.
_NOT_FOUND_PATTERNS = (
    "(notfound)",
    "not found",
    "doesn't have a resource type",
    "could not find the requested resource",
)
_ALREADY_EXISTS_PATTERNS = ("(alreadyexists)", "already exists")
# Failures raised before the API server accepted the request.
_UNSENT_PATTERNS = ("connection refused", "unable to connect", "too many requests", "rate limit")
# Client-side deadlines hit after the request may already have been applied.
_AMBIGUOUS_PATTERNS = ("awaiting headers", "request canceled", "context deadline exceeded")
# Shell conventions for a binary that is missing or not executable.
_UNRUNNABLE_RETURNCODES = (126, 127)


@dataclass(frozen=True)
class CommandResult:
    command: list[str]
    returncode: int
    stdout: str
    stderr: str


class AdapterCommandError(RuntimeError):
    def __init__(
        self,
        *,
        message: str,
        result: CommandResult,
        category: ErrorCategory,
    ) -> None:
        self.result = result
        self.category = category
        super().__init__(self._build_message(message))

    @property
    def retryable(self) -> bool:
        return self.category == "retryable"

    @property
    def request_not_sent(self) -> bool:
        """True when the failure provably happened before the server saw the request."""
        if not self.retryable or self.result.returncode < 0:
            return False
        text = f"{self.result.stderr}\n{self.result.stdout}".lower()
        if any(pattern in text for pattern in _AMBIGUOUS_PATTERNS):
            return False
        return any(pattern in text for pattern in _UNSENT_PATTERNS)

    def _build_message(self, message: str) -> str:
        detail = (self.result.stderr or self.result.stdout).strip()
        if len(detail) > 400:
            detail = f"{detail[:397]}..."
        cmd = " ".join(self.result.command)
        return (
            f"{message} (category={self.category}, returncode={self.result.returncode}, "
            f"command={cmd!r}, detail={detail!r})"
        )


class ResourceNotFoundError(AdapterCommandError):
    pass


class ResourceAlreadyExistsError(AdapterCommandError):
    pass


def make_runner(*, timeout: float | None = None) -> CommandRunner:
    """Build a subprocess runner that reports an expired deadline or an unrunnable binary as a failed command."""

    def _runner(command: list[str]) -> subprocess.CompletedProcess[str]:
        try:
            return subprocess.run(command, capture_output=True, text=True, check=False, timeout=timeout)
        except subprocess.TimeoutExpired as exc:
            stdout = exc.stdout.decode() if isinstance(exc.stdout, bytes) else (exc.stdout or "")
            return subprocess.CompletedProcess(
                args=command,
                returncode=-1,
                stdout=stdout,
                stderr=f"command timed out after {timeout}s",
            )
        except OSError as exc:
            return subprocess.CompletedProcess(
                args=command,
                returncode=127,
                stdout="",
                stderr=f"cannot run {command[0]}: {exc}",
            )

    return _runner


default_runner = make_runner()


def classify_error(*, returncode: int, stderr: str, stdout: str) -> ErrorCategory:
    if returncode < 0:
        return "retryable"
    if returncode in _UNRUNNABLE_RETURNCODES:
        return "fatal"
    text = f"{stderr}\n{stdout}".lower()
    if any(pattern in text for pattern in _ALREADY_EXISTS_PATTERNS):
        return "already-exists"
    if any(pattern in text for pattern in _NOT_FOUND_PATTERNS):
        return "not-found"
    if any(pattern in text for pattern in _RETRYABLE_PATTERNS):
        return "retryable"
    return "fatal"


_ERROR_CLASSES: dict[str, type[AdapterCommandError]] = {
    "not-found": ResourceNotFoundError,
    "already-exists": ResourceAlreadyExistsError,
}


def run_command(
    command: list[str],
    *,
    runner: CommandRunner | None = None,
    error_message: str,
) -> CommandResult:
    active_runner = runner or default_runner
    completed = active_runner(command)
    result = CommandResult(
        command=command,
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )
    if result.returncode != 0:
        category = classify_error(
            returncode=result.returncode,
            stderr=result.stderr,
            stdout=result.stdout,
        )
        error_class = _ERROR_CLASSES.get(category, AdapterCommandError)
        raise error_class(message=error_message, result=result, category=category)
    return result
