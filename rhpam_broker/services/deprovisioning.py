from __future__ import annotations

import logging

from rhpam_broker import kube_client as kinds
from rhpam_broker.config import BrokerConfig
from rhpam_broker.services import pipeline, templates
from rhpam_broker.services.naming import namespace_for_instance
from rhpam_broker.services.operations import OPERATION_REMOVE
from rhpam_broker.services.pipeline import ClusterClient, ResourceStep

logger = logging.getLogger(__name__)

# Every tenant custom resource kind, in deletion order.
TENANT_CUSTOM_KINDS = (templates.RHPAM_USER, templates.RHPAM_DEV)


def deprovision_steps(namespace: str) -> list[ResourceStep]:
    """Return the ordered delete steps for one tenant.

    Custom resources are listed and deleted one by one; the cluster role and
    binding live outside the namespace and are deleted by name before the
    namespace itself goes.
    """
    steps = [pipeline.delete_all(kind, namespace=namespace) for kind in TENANT_CUSTOM_KINDS]
    steps.extend(
        [
            pipeline.delete(kinds.CLUSTER_ROLE_BINDING, templates.cluster_scoped_name(namespace)),
            pipeline.delete(kinds.CLUSTER_ROLE, templates.cluster_scoped_name(namespace)),
            pipeline.delete(kinds.NAMESPACE, namespace),
        ]
    )
    return steps


class Deprovisioner:
    """Deletes a tenant instance; resources that are already gone count as deleted."""

    def __init__(self, *, client: ClusterClient, config: BrokerConfig) -> None:
        self._client = client
        self._config = config

    def deprovision(self, instance_id: str) -> str:
        namespace = namespace_for_instance(instance_id, prefix=self._config.namespace_prefix)
        logger.info("Deprovisioning instance_id=%s namespace=%s", instance_id, namespace)
        outcomes = pipeline.run_pipeline(self._client, deprovision_steps(namespace), instance_id=instance_id)
        if not any(outcome.changed for outcome in outcomes):
            logger.info("Nothing left to delete for instance_id=%s", instance_id)
        else:
            logger.info("Deprovisioned instance_id=%s namespace=%s", instance_id, namespace)
        return OPERATION_REMOVE
