from __future__ import annotations

from copy import deepcopy
from typing import Any

from rhpam_broker.kube_client import NAMESPACE, ResourceKind
from rhpam_broker.proc import (
    AdapterCommandError,
    CommandResult,
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
)


def command_error(
    error_class: type[AdapterCommandError] = AdapterCommandError,
    *,
    stderr: str = "Error from server (InternalError): boom",
    category: str = "fatal",
) -> AdapterCommandError:
    result = CommandResult(command=["kubectl"], returncode=1, stdout="", stderr=stderr)
    return error_class(message="kubectl failed", result=result, category=category)


def not_found(what: str) -> ResourceNotFoundError:
    return command_error(
        ResourceNotFoundError,
        stderr=f'Error from server (NotFound): {what} not found',
        category="not-found",
    )


def already_exists(what: str) -> ResourceAlreadyExistsError:
    return command_error(
        ResourceAlreadyExistsError,
        stderr=f'Error from server (AlreadyExists): {what} already exists',
        category="already-exists",
    )


class FakeClusterClient:
    """In-memory stand-in for the kubectl client.

    Names are unique per (kind, namespace); namespaced objects require their
    namespace to exist; deleting a namespace removes its contents unless
    ``hold_namespace_deletion`` keeps it around as terminating.
    """

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str | None, str], dict[str, Any]] = {}
        self.calls: list[tuple[str, str, str | None]] = []
        self.failures: dict[tuple[str, str], Exception] = {}
        self.hold_namespace_deletion = False
        self.terminating: set[str] = set()
        self._generated = 0

    def fail(self, action: str, kind: str, error: Exception) -> None:
        self.failures[(action, kind)] = error

    def _maybe_fail(self, action: str, kind: ResourceKind) -> None:
        error = self.failures.get((action, kind.kind))
        if error is not None:
            raise error

    def _key(self, kind: ResourceKind, name: str, namespace: str | None) -> tuple[str, str | None, str]:
        return (kind.kind, namespace if kind.namespaced else None, name)

    def create(self, kind: ResourceKind, manifest: dict[str, Any]) -> dict[str, Any]:
        obj = deepcopy(manifest)
        metadata = obj.setdefault("metadata", {})
        namespace = metadata.get("namespace") if kind.namespaced else None
        name = metadata.get("name")
        if not name:
            self._generated += 1
            name = f"{metadata['generateName']}{self._generated:05d}"
            metadata["name"] = name
        self.calls.append(("create", kind.kind, name))
        self._maybe_fail("create", kind)
        if kind.namespaced and not self.namespace_exists(namespace or ""):
            raise not_found(f'namespaces "{namespace}"')
        if namespace in self.terminating:
            raise command_error(stderr=f"namespace {namespace} is being terminated")
        key = self._key(kind, name, namespace)
        if key in self.objects:
            raise already_exists(f'{kind.plural} "{name}"')
        self.objects[key] = obj
        return deepcopy(obj)

    def get(self, kind: ResourceKind, name: str, namespace: str | None = None) -> dict[str, Any]:
        self.calls.append(("get", kind.kind, name))
        self._maybe_fail("get", kind)
        key = self._key(kind, name, namespace)
        if key not in self.objects:
            raise not_found(f'{kind.plural} "{name}"')
        return deepcopy(self.objects[key])

    def list(self, kind: ResourceKind, namespace: str | None = None) -> list[dict[str, Any]]:
        self.calls.append(("list", kind.kind, namespace))
        self._maybe_fail("list", kind)
        return [
            deepcopy(obj)
            for (k, ns, _), obj in sorted(self.objects.items(), key=lambda item: item[0][2])
            if k == kind.kind and ns == (namespace if kind.namespaced else None)
        ]

    def delete(self, kind: ResourceKind, name: str, namespace: str | None = None) -> None:
        self.calls.append(("delete", kind.kind, name))
        self._maybe_fail("delete", kind)
        key = self._key(kind, name, namespace)
        if key not in self.objects:
            raise not_found(f'{kind.plural} "{name}"')
        if kind == NAMESPACE:
            if self.hold_namespace_deletion:
                self.terminating.add(name)
                return
            self._drop_namespace(name)
            return
        del self.objects[key]

    def namespace_exists(self, name: str) -> bool:
        return self._key(NAMESPACE, name, None) in self.objects

    def finish_namespace_deletion(self, name: str) -> None:
        self.terminating.discard(name)
        self._drop_namespace(name)

    def _drop_namespace(self, name: str) -> None:
        for key in [k for k in self.objects if k[1] == name]:
            del self.objects[key]
        self.objects.pop(self._key(NAMESPACE, name, None), None)

    def set_phase(self, kind: ResourceKind, namespace: str, phase: str) -> None:
        for (k, ns, _), obj in self.objects.items():
            if k == kind.kind and ns == namespace:
                obj.setdefault("status", {})["phase"] = phase

    def names(self, kind: ResourceKind, namespace: str | None = None) -> list[str]:
        return [name for (k, ns, name) in self.objects if k == kind.kind and ns == namespace]

    def created_kinds(self) -> list[str]:
        return [kind for action, kind, _ in self.calls if action == "create"]
