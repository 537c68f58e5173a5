from __future__ import annotations

from dataclasses import dataclass
import logging

from rhpam_broker import kube_client as kinds
from rhpam_broker.config import BrokerConfig, PipelineVariant
from rhpam_broker.services import pipeline, templates
from rhpam_broker.services.errors import IntegrityException
from rhpam_broker.services.naming import dashboard_url, namespace_for_instance
from rhpam_broker.services.pipeline import ClusterClient, ResourceStep
from rhpam_broker.services.operations import OPERATION_DEPLOY

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProvisionResult:
    operation: str
    dashboard_url: str
    namespace: str


def provision_steps(
    namespace: str,
    username: str,
    config: BrokerConfig,
    *,
    variant: PipelineVariant | None = None,
) -> list[ResourceStep]:
    """Return the ordered create steps for one tenant.

    Dependencies are encoded by position: the namespace precedes everything in
    it, the service account and roles precede the bindings that name them, and
    the operator deployment precedes the custom resources it reconciles.
    Only role bindings tolerate an existing object.
    """
    selected = variant or config.pipeline_variant
    extended = selected == "extended"

    steps: list[ResourceStep] = [
        pipeline.create(kinds.NAMESPACE, templates.tenant_namespace(namespace)),
        pipeline.create(kinds.SERVICE_ACCOUNT, templates.service_account(namespace)),
        pipeline.create(kinds.ROLE, templates.operator_role(namespace)),
    ]
    if extended:
        steps.append(pipeline.create(kinds.ROLE, templates.user_role(namespace)))

    bindings = [
        *templates.system_role_bindings(namespace),
        templates.install_role_binding(namespace),
        templates.view_role_binding(namespace),
        templates.edit_role_binding(namespace),
        templates.user_view_role_binding(namespace, username),
    ]
    if extended:
        bindings.append(templates.user_edit_role_binding(namespace, username))
        bindings.append(templates.user_role_binding(namespace, username))
    steps.extend(pipeline.create(kinds.ROLE_BINDING, b, tolerate_existing=True) for b in bindings)

    steps.extend(
        [
            pipeline.create(kinds.CLUSTER_ROLE, templates.cluster_role(namespace)),
            pipeline.create(kinds.CLUSTER_ROLE_BINDING, templates.cluster_role_binding(namespace)),
            pipeline.create(kinds.DEPLOYMENT, templates.operator_deployment(namespace, config)),
            pipeline.create(templates.RHPAM_DEV, templates.rhpam_dev(namespace, config)),
        ]
    )
    if extended:
        steps.append(pipeline.create(templates.RHPAM_USER, templates.rhpam_user(namespace)))
    return steps


class Provisioner:
    """Creates every resource of a tenant instance, failing fast on the first error."""

    def __init__(self, *, client: ClusterClient, config: BrokerConfig) -> None:
        self._client = client
        self._config = config

    def provision(self, instance_id: str, username: str) -> ProvisionResult:
        if not username:
            raise IntegrityException("an originating identity is required to provision an instance")
        namespace = namespace_for_instance(instance_id, prefix=self._config.namespace_prefix)
        logger.info(
            "Provisioning instance_id=%s namespace=%s variant=%s",
            instance_id,
            namespace,
            self._config.pipeline_variant,
        )
        steps = provision_steps(namespace, username, self._config)
        pipeline.run_pipeline(self._client, steps, instance_id=instance_id)
        url = dashboard_url(namespace, route_suffix=self._config.route_suffix)
        logger.info("Provisioned instance_id=%s namespace=%s dashboard=%s", instance_id, namespace, url)
        return ProvisionResult(operation=OPERATION_DEPLOY, dashboard_url=url, namespace=namespace)
