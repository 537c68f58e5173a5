"""Ordered create/delete steps and the single interpreter that runs them.

A pipeline is a flat list of ``ResourceStep`` values. ``run_pipeline`` applies
them strictly in order and stops at the first fatal failure; nothing already
applied is rolled back.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Any, Protocol

from rhpam_broker.kube_client import ResourceKind
from rhpam_broker.proc import AdapterCommandError, ResourceAlreadyExistsError, ResourceNotFoundError
from rhpam_broker.services.errors import StepFailedException

logger = logging.getLogger(__name__)


class ClusterClient(Protocol):
    def create(self, kind: ResourceKind, manifest: dict[str, Any]) -> dict[str, Any]: ...

    def get(self, kind: ResourceKind, name: str, namespace: str | None = None) -> dict[str, Any]: ...

    def list(self, kind: ResourceKind, namespace: str | None = None) -> list[dict[str, Any]]: ...

    def delete(self, kind: ResourceKind, name: str, namespace: str | None = None) -> None: ...


class StepAction(str, Enum):
    CREATE = "create"
    DELETE = "delete"
    DELETE_ALL = "delete-all"


@dataclass(frozen=True)
class ResourceStep:
    action: StepAction
    kind: ResourceKind
    namespace: str | None = None
    name: str | None = None
    manifest: dict[str, Any] | None = field(default=None, compare=False)
    tolerate_existing: bool = False

    @property
    def label(self) -> str:
        if self.name:
            return self.name
        if self.manifest is not None:
            metadata = self.manifest.get("metadata") or {}
            return metadata.get("name") or f"{metadata.get('generateName', '')}*"
        return f"*/{self.namespace}"


@dataclass(frozen=True)
class StepOutcome:
    step: ResourceStep
    changed: bool
    names: tuple[str, ...] = ()


def create(kind: ResourceKind, manifest: dict[str, Any], *, tolerate_existing: bool = False) -> ResourceStep:
    metadata = manifest.get("metadata") or {}
    return ResourceStep(
        action=StepAction.CREATE,
        kind=kind,
        namespace=metadata.get("namespace"),
        name=metadata.get("name"),
        manifest=manifest,
        tolerate_existing=tolerate_existing,
    )


def delete(kind: ResourceKind, name: str, *, namespace: str | None = None) -> ResourceStep:
    return ResourceStep(action=StepAction.DELETE, kind=kind, namespace=namespace, name=name)


def delete_all(kind: ResourceKind, *, namespace: str) -> ResourceStep:
    return ResourceStep(action=StepAction.DELETE_ALL, kind=kind, namespace=namespace)


def run_step(client: ClusterClient, step: ResourceStep, *, instance_id: str) -> StepOutcome:
    try:
        if step.action is StepAction.CREATE:
            return _run_create(client, step)
        if step.action is StepAction.DELETE:
            return _run_delete(client, step)
        return _run_delete_all(client, step)
    except (AdapterCommandError, ValueError) as exc:
        logger.error(
            "Step %s %s %s failed for instance_id=%s: %s",
            step.action.value,
            step.kind.kind,
            step.label,
            instance_id,
            exc,
        )
        raise StepFailedException(
            kind=step.kind.kind,
            name=step.label,
            instance_id=instance_id,
            action=step.action.value,
            cause=exc,
        ) from exc


def run_pipeline(client: ClusterClient, steps: list[ResourceStep], *, instance_id: str) -> list[StepOutcome]:
    outcomes: list[StepOutcome] = []
    for index, step in enumerate(steps, start=1):
        logger.debug(
            "Running step %s/%s for instance_id=%s: %s %s %s",
            index,
            len(steps),
            instance_id,
            step.action.value,
            step.kind.kind,
            step.label,
        )
        outcomes.append(run_step(client, step, instance_id=instance_id))
    return outcomes


def _run_create(client: ClusterClient, step: ResourceStep) -> StepOutcome:
    assert step.manifest is not None, "create steps carry a manifest"
    try:
        created = client.create(step.kind, step.manifest)
    except ResourceAlreadyExistsError:
        if not step.tolerate_existing:
            raise
        logger.info("%s %s already exists; continuing", step.kind.kind, step.label)
        return StepOutcome(step=step, changed=False, names=(step.label,))
    name = (created.get("metadata") or {}).get("name") or step.label
    return StepOutcome(step=step, changed=True, names=(name,))


def _run_delete(client: ClusterClient, step: ResourceStep) -> StepOutcome:
    assert step.name is not None, "delete steps carry a name"
    try:
        client.delete(step.kind, step.name, step.namespace)
    except ResourceNotFoundError:
        logger.info("%s %s already absent; continuing", step.kind.kind, step.name)
        return StepOutcome(step=step, changed=False, names=(step.name,))
    return StepOutcome(step=step, changed=True, names=(step.name,))


def _run_delete_all(client: ClusterClient, step: ResourceStep) -> StepOutcome:
    try:
        items = client.list(step.kind, step.namespace)
    except ResourceNotFoundError:
        logger.info("No %s to delete in namespace %s", step.kind.kind, step.namespace)
        return StepOutcome(step=step, changed=False)

    deleted: list[str] = []
    for item in items:
        name = (item.get("metadata") or {}).get("name")
        if not name:
            continue
        try:
            client.delete(step.kind, name, step.namespace)
        except ResourceNotFoundError:
            logger.debug("%s %s vanished before delete", step.kind.kind, name)
            continue
        deleted.append(name)
    return StepOutcome(step=step, changed=bool(deleted), names=tuple(deleted))
