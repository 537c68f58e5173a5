from __future__ import annotations

import logging
from typing import Any

from rhpam_broker.config import BrokerConfig
from rhpam_broker.kube_client import ClusterResourceClient
from rhpam_broker.services import catalog
from rhpam_broker.services.deprovisioning import Deprovisioner
from rhpam_broker.services.last_operation import LastOperationResolver, LastOperationResult
from rhpam_broker.services.pipeline import ClusterClient
from rhpam_broker.services.provisioning import ProvisionResult, Provisioner

logger = logging.getLogger(__name__)


class RhpamBroker:
    """Facade the HTTP and CLI layers call; holds no state beyond its collaborators."""

    def __init__(self, *, client: ClusterClient, config: BrokerConfig) -> None:
        self.config = config
        self.provisioner = Provisioner(client=client, config=config)
        self.deprovisioner = Deprovisioner(client=client, config=config)
        self.resolver = LastOperationResolver(client=client, config=config)

    def get_catalog(self) -> list[dict[str, Any]]:
        logger.info("Getting rhpam catalog entries")
        return catalog.list_services()

    def provision(
        self,
        instance_id: str,
        username: str,
        *,
        service_id: str | None = None,
        plan_id: str | None = None,
        parameters: dict[str, Any] | None = None,
    ) -> ProvisionResult:
        if service_id is not None or plan_id is not None:
            plan = catalog.find_plan(service_id, plan_id)
            catalog.validate_instance_parameters(plan, parameters)
        return self.provisioner.provision(instance_id, username)

    def deprovision(self, instance_id: str) -> str:
        return self.deprovisioner.deprovision(instance_id)

    def last_operation(self, instance_id: str, operation: str) -> LastOperationResult:
        return self.resolver.last_operation(instance_id, operation)


def build_broker(config: BrokerConfig | None = None) -> RhpamBroker:
    active_config = config or BrokerConfig.from_env()
    return RhpamBroker(client=ClusterResourceClient.from_config(active_config), config=active_config)
