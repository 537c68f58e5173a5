from __future__ import annotations

from dataclasses import dataclass
import logging

from rhpam_broker.config import BrokerConfig
from rhpam_broker.kube_client import NAMESPACE, CustomResourceRecord
from rhpam_broker.proc import ResourceNotFoundError
from rhpam_broker.services import templates
from rhpam_broker.services.errors import NotFoundException
from rhpam_broker.services.naming import namespace_for_instance
from rhpam_broker.services.operations import (
    DESCRIPTION_DELETED,
    DESCRIPTION_DELETING,
    DESCRIPTION_DEPLOYED,
    DESCRIPTION_DEPLOYING,
    OPERATION_DEPLOY,
    OPERATION_REMOVE,
    PHASE_COMPLETE,
    OperationState,
)
from rhpam_broker.services.pipeline import ClusterClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LastOperationResult:
    state: OperationState
    description: str


class LastOperationResolver:
    """Translate cluster state into the broker-visible state of an async operation.

    ``deploy`` is judged by the phase of the tenant's RhpamDev record, ``remove``
    by whether the namespace still exists. The resolver never writes to the
    cluster, so concurrent polls need no coordination.
    """

    def __init__(self, *, client: ClusterClient, config: BrokerConfig) -> None:
        self._client = client
        self._config = config

    def last_operation(self, instance_id: str, operation: str) -> LastOperationResult:
        namespace = namespace_for_instance(instance_id, prefix=self._config.namespace_prefix)
        logger.info("Getting last operation %r for instance_id=%s", operation, instance_id)

        if operation == OPERATION_DEPLOY:
            record = self._require_record(instance_id, namespace)
            if _is_complete(record):
                return LastOperationResult(OperationState.SUCCEEDED, DESCRIPTION_DEPLOYED)
            return LastOperationResult(OperationState.IN_PROGRESS, DESCRIPTION_DEPLOYING)

        if operation == OPERATION_REMOVE:
            if self._namespace_exists(namespace):
                return LastOperationResult(OperationState.IN_PROGRESS, DESCRIPTION_DELETING)
            return LastOperationResult(OperationState.SUCCEEDED, DESCRIPTION_DELETED)

        self._require_record(instance_id, namespace)
        logger.warning("Unknown operation %r polled for instance_id=%s", operation, instance_id)
        return LastOperationResult(OperationState.FAILED, f"unknown operation: {operation}")

    def find_record(self, namespace: str) -> CustomResourceRecord | None:
        try:
            items = self._client.list(templates.RHPAM_DEV, namespace)
        except ResourceNotFoundError:
            return None
        if not items:
            return None
        return CustomResourceRecord.from_object(items[0])

    def _require_record(self, instance_id: str, namespace: str) -> CustomResourceRecord:
        record = self.find_record(namespace)
        if record is None:
            raise NotFoundException(f"{templates.RHPAM_DEV.kind} for instance {instance_id} not found")
        return record

    def _namespace_exists(self, namespace: str) -> bool:
        try:
            self._client.get(NAMESPACE, namespace)
        except ResourceNotFoundError:
            return False
        return True


def _is_complete(record: CustomResourceRecord) -> bool:
    return (record.phase or "").lower() == PHASE_COMPLETE
