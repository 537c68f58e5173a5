from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any, Callable, TypeVar

from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from rhpam_broker.config import BrokerConfig
from rhpam_broker.proc import (
    AdapterCommandError,
    CommandResult,
    CommandRunner,
    make_runner,
    run_command,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ResourceKind:
    """Addresses one resource type on the cluster.

    ``custom`` kinds are not compiled into this broker; they are addressed
    purely by group/version/kind and handled as untyped records.
    """

    api_version: str
    kind: str
    plural: str
    namespaced: bool = True
    custom: bool = False

    @property
    def group(self) -> str:
        return self.api_version.rpartition("/")[0]

    @property
    def version(self) -> str:
        return self.api_version.rpartition("/")[2]

    @property
    def resource(self) -> str:
        """The fully qualified resource name kubectl resolves unambiguously."""
        if not self.group:
            return self.plural
        return f"{self.plural}.{self.version}.{self.group}"


NAMESPACE = ResourceKind("v1", "Namespace", "namespaces", namespaced=False)
SERVICE_ACCOUNT = ResourceKind("v1", "ServiceAccount", "serviceaccounts")
ROLE = ResourceKind("rbac.authorization.k8s.io/v1", "Role", "roles")
ROLE_BINDING = ResourceKind("rbac.authorization.k8s.io/v1", "RoleBinding", "rolebindings")
CLUSTER_ROLE = ResourceKind("rbac.authorization.k8s.io/v1", "ClusterRole", "clusterroles", namespaced=False)
CLUSTER_ROLE_BINDING = ResourceKind(
    "rbac.authorization.k8s.io/v1", "ClusterRoleBinding", "clusterrolebindings", namespaced=False
)
DEPLOYMENT = ResourceKind("apps/v1", "Deployment", "deployments")


@dataclass(frozen=True)
class CustomResourceRecord:
    api_version: str
    kind: str
    name: str
    namespace: str | None
    fields: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_object(cls, obj: dict[str, Any]) -> "CustomResourceRecord":
        metadata = obj.get("metadata") or {}
        return cls(
            api_version=obj.get("apiVersion", ""),
            kind=obj.get("kind", ""),
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace"),
            fields={k: v for k, v in obj.items() if k not in ("apiVersion", "kind", "metadata")},
        )

    @property
    def phase(self) -> str | None:
        status = self.fields.get("status")
        if not isinstance(status, dict):
            return None
        phase = status.get("phase")
        return phase if isinstance(phase, str) else None


class ClusterResourceClient:
    """Generic create/get/list/delete against the cluster through kubectl.

    Retryable failures (timeouts, refused connections, throttling) of reads and
    deletes are retried with exponential backoff. A create is retried only when
    the request never reached the server, so a timed-out create that the server
    may have applied surfaces as a failure instead of being sent twice.
    """

    def __init__(
        self,
        *,
        kubectl: str = "kubectl",
        runner: CommandRunner | None = None,
        timeout: float = 60.0,
        retry_attempts: int = 3,
        retry_backoff: float = 1.0,
    ) -> None:
        self._kubectl = kubectl
        self._timeout = timeout
        self._runner = runner or make_runner(timeout=timeout)
        self._retry_attempts = retry_attempts
        self._retry_backoff = retry_backoff

    @classmethod
    def from_config(cls, config: BrokerConfig, *, runner: CommandRunner | None = None) -> "ClusterResourceClient":
        return cls(
            kubectl=config.kubectl,
            runner=runner,
            timeout=config.step_timeout,
            retry_attempts=config.retry_attempts,
            retry_backoff=config.retry_backoff,
        )

    def create(self, kind: ResourceKind, manifest: dict[str, Any]) -> dict[str, Any]:
        namespace = (manifest.get("metadata") or {}).get("namespace")
        display = _display_name(manifest)
        logger.debug("Creating %s %s", kind.kind, display)
        with _manifest_file(manifest) as manifest_path:
            result = self._run(
                [*self._base(kind, namespace), "create", "-f", str(manifest_path), "-o", "json"],
                error_message=f"Failed to create {kind.kind} {display}",
                retry_on=_is_unsent,
            )
        created = _parse_json(result, what=f"{kind.kind} {display}")
        logger.info("Created %s %s", kind.kind, created.get("metadata", {}).get("name", display))
        return created

    def get(self, kind: ResourceKind, name: str, namespace: str | None = None) -> dict[str, Any]:
        result = self._run(
            [*self._base(kind, namespace), "get", kind.resource, name, "-o", "json"],
            error_message=f"Failed to get {kind.kind} {name}",
        )
        return _parse_json(result, what=f"{kind.kind} {name}")

    def list(self, kind: ResourceKind, namespace: str | None = None) -> list[dict[str, Any]]:
        result = self._run(
            [*self._base(kind, namespace), "get", kind.resource, "-o", "json"],
            error_message=f"Failed to list {kind.kind} in namespace {namespace}",
        )
        items = _parse_json(result, what=f"{kind.kind} list").get("items") or []
        logger.debug("Listed %s %s object(s) in namespace %s", len(items), kind.kind, namespace)
        return list(items)

    def delete(self, kind: ResourceKind, name: str, namespace: str | None = None) -> None:
        logger.debug("Deleting %s %s", kind.kind, name)
        self._run(
            [*self._base(kind, namespace), "delete", kind.resource, name, "--wait=false"],
            error_message=f"Failed to delete {kind.kind} {name}",
        )
        logger.info("Deleted %s %s", kind.kind, name)

    def _base(self, kind: ResourceKind, namespace: str | None) -> list[str]:
        cmd = [self._kubectl, f"--request-timeout={max(1, int(self._timeout))}s"]
        if kind.namespaced and namespace:
            cmd.extend(["--namespace", namespace])
        return cmd

    def _run(
        self,
        command: list[str],
        *,
        error_message: str,
        retry_on: Callable[[BaseException], bool] | None = None,
    ) -> CommandResult:
        return self._with_retry(
            lambda: run_command(command, runner=self._runner, error_message=error_message),
            retry_on=retry_on or _is_retryable,
        )

    def _with_retry(self, call: Callable[[], T], *, retry_on: Callable[[BaseException], bool]) -> T:
        retrying = Retrying(
            retry=retry_if_exception(retry_on),
            stop=stop_after_attempt(self._retry_attempts),
            wait=wait_exponential(multiplier=self._retry_backoff, max=30),
            before_sleep=_log_retry,
            reraise=True,
        )
        return retrying(call)


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, AdapterCommandError) and exc.retryable


def _is_unsent(exc: BaseException) -> bool:
    return isinstance(exc, AdapterCommandError) and exc.request_not_sent


def _log_retry(retry_state) -> None:
    logger.warning(
        "Retrying kubectl call after attempt %s: %s",
        retry_state.attempt_number,
        retry_state.outcome.exception() if retry_state.outcome else None,
    )


def _display_name(manifest: dict[str, Any]) -> str:
    metadata = manifest.get("metadata") or {}
    if metadata.get("name"):
        return str(metadata["name"])
    return f"{metadata.get('generateName', '')}<generated>"


def _parse_json(result: CommandResult, *, what: str) -> dict[str, Any]:
    try:
        payload = json.loads(result.stdout)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON from kubectl for {what}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"Unexpected kubectl output for {what}: expected an object")
    return payload


class _manifest_file:
    def __init__(self, manifest: dict[str, Any]) -> None:
        self._manifest = manifest
        self.path: Path | None = None

    def __enter__(self) -> Path:
        tmp = NamedTemporaryFile(mode="w", encoding="utf-8", suffix=".json", delete=False)
        tmp.write(json.dumps(self._manifest))
        tmp.flush()
        tmp.close()
        self.path = Path(tmp.name)
        logger.debug("Wrote temporary manifest file: %s", self.path)
        return self.path

    def __exit__(self, exc_type, exc, tb) -> None:
        if self.path and self.path.exists():
            self.path.unlink()
