"""Desired-state manifests for every resource the pipelines touch.

All functions are pure: the same inputs always produce the same manifest.
The service account, role, role binding subjects and operator deployment all
share ``OPERATOR_NAME``; the pipelines rely on that for cross references.
"""
from __future__ import annotations

from typing import Any

from rhpam_broker.config import BrokerConfig
from rhpam_broker.kube_client import ResourceKind

RHPAM_API_GROUP = "rhpam.integreatly.org"
RHPAM_API_VERSION = f"{RHPAM_API_GROUP}/v1alpha1"
RBAC_API_GROUP = "rbac.authorization.k8s.io"

RHPAM_DEV = ResourceKind(RHPAM_API_VERSION, "RhpamDev", "rhpamdevs", custom=True)
RHPAM_USER = ResourceKind(RHPAM_API_VERSION, "RhpamUser", "rhpamusers", custom=True)

OPERATOR_NAME = "rhpam-dev-operator"
USER_ROLE_NAME = "rhpam-dev-user"
RHPAM_DEV_GENERATE_NAME = "rhpamdev-"
RHPAM_USER_GENERATE_NAME = "rhpamuser-"

_RBAC = f"{RBAC_API_GROUP}/v1"
_ALL_VERBS = ["create", "delete", "deletecollection", "get", "list", "update", "watch"]
_READ_VERBS = ["get", "list", "watch"]
_CORE_RESOURCES = [
    "pods",
    "services",
    "endpoints",
    "persistentvolumeclaims",
    "configmaps",
    "secrets",
    "serviceaccounts",
]
_RHPAM_RESOURCES = ["rhpamdevs", "rhpamdevs/finalizers", "rhpamusers", "rhpamusers/finalizers"]


def cluster_scoped_name(namespace: str) -> str:
    """Name shared by the per-tenant cluster role and cluster role binding."""
    return f"{OPERATOR_NAME}-{namespace}"


def tenant_namespace(name: str) -> dict[str, Any]:
    return {"apiVersion": "v1", "kind": "Namespace", "metadata": {"name": name}}


def service_account(namespace: str) -> dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "ServiceAccount",
        "metadata": {"name": OPERATOR_NAME, "namespace": namespace},
    }


def operator_role(namespace: str) -> dict[str, Any]:
    return {
        "apiVersion": _RBAC,
        "kind": "Role",
        "metadata": {"name": OPERATOR_NAME, "namespace": namespace},
        "rules": [
            {"apiGroups": [""], "resources": list(_CORE_RESOURCES), "verbs": list(_ALL_VERBS)},
            {"apiGroups": [""], "resources": ["events"], "verbs": ["get", "list"]},
            {"apiGroups": [""], "resources": ["namespaces"], "verbs": ["get"]},
            {"apiGroups": ["apps"], "resources": ["deployments"], "verbs": list(_ALL_VERBS)},
            {"apiGroups": ["route.openshift.io"], "resources": ["routes"], "verbs": list(_ALL_VERBS)},
            {"apiGroups": [RHPAM_API_GROUP], "resources": list(_RHPAM_RESOURCES), "verbs": list(_ALL_VERBS)},
        ],
    }


def user_role(namespace: str) -> dict[str, Any]:
    """Lets the requesting user manage RhpamUser records in their tenant."""
    return {
        "apiVersion": _RBAC,
        "kind": "Role",
        "metadata": {"name": USER_ROLE_NAME, "namespace": namespace},
        "rules": [
            {"apiGroups": [RHPAM_API_GROUP], "resources": ["rhpamusers"], "verbs": list(_ALL_VERBS)},
            {"apiGroups": [RHPAM_API_GROUP], "resources": ["rhpamdevs"], "verbs": list(_READ_VERBS)},
        ],
    }


def _binding(
    *,
    namespace: str,
    role_kind: str,
    role_name: str,
    subjects: list[dict[str, Any]],
    name: str | None = None,
    generate_name: str | None = None,
) -> dict[str, Any]:
    metadata: dict[str, Any] = {"namespace": namespace}
    if name is not None:
        metadata["name"] = name
    if generate_name is not None:
        metadata["generateName"] = generate_name
    return {
        "apiVersion": _RBAC,
        "kind": "RoleBinding",
        "metadata": metadata,
        "subjects": subjects,
        "roleRef": {"apiGroup": RBAC_API_GROUP, "kind": role_kind, "name": role_name},
    }


def _operator_subject(namespace: str) -> dict[str, Any]:
    return {"kind": "ServiceAccount", "name": OPERATOR_NAME, "namespace": namespace}


def _user_subject(username: str) -> dict[str, Any]:
    return {"apiGroup": RBAC_API_GROUP, "kind": "User", "name": username}


def system_role_bindings(namespace: str) -> list[dict[str, Any]]:
    """Platform bindings every project namespace carries; other tenants may already own them."""
    return [
        _binding(
            namespace=namespace,
            name="system:deployers",
            role_kind="ClusterRole",
            role_name="system:deployer",
            subjects=[{"kind": "ServiceAccount", "name": "deployer", "namespace": namespace}],
        ),
        _binding(
            namespace=namespace,
            name="system:image-builders",
            role_kind="ClusterRole",
            role_name="system:image-builder",
            subjects=[{"kind": "ServiceAccount", "name": "builder", "namespace": namespace}],
        ),
        _binding(
            namespace=namespace,
            name="system:image-pullers",
            role_kind="ClusterRole",
            role_name="system:image-puller",
            subjects=[{"apiGroup": RBAC_API_GROUP, "kind": "Group", "name": f"system:serviceaccounts:{namespace}"}],
        ),
    ]


def install_role_binding(namespace: str) -> dict[str, Any]:
    return _binding(
        namespace=namespace,
        name=f"{OPERATOR_NAME}:install",
        role_kind="Role",
        role_name=OPERATOR_NAME,
        subjects=[_operator_subject(namespace)],
    )


def view_role_binding(namespace: str) -> dict[str, Any]:
    return _binding(
        namespace=namespace,
        name=f"{OPERATOR_NAME}:view",
        role_kind="ClusterRole",
        role_name="view",
        subjects=[_operator_subject(namespace)],
    )


def edit_role_binding(namespace: str) -> dict[str, Any]:
    return _binding(
        namespace=namespace,
        name=f"{OPERATOR_NAME}:edit",
        role_kind="ClusterRole",
        role_name="edit",
        subjects=[_operator_subject(namespace)],
    )


def user_view_role_binding(namespace: str, username: str) -> dict[str, Any]:
    return _binding(
        namespace=namespace,
        generate_name=f"{OPERATOR_NAME}:view-",
        role_kind="ClusterRole",
        role_name="view",
        subjects=[_user_subject(username)],
    )


def user_edit_role_binding(namespace: str, username: str) -> dict[str, Any]:
    return _binding(
        namespace=namespace,
        generate_name=f"{OPERATOR_NAME}:edit-",
        role_kind="ClusterRole",
        role_name="edit",
        subjects=[_user_subject(username)],
    )


def user_role_binding(namespace: str, username: str) -> dict[str, Any]:
    return _binding(
        namespace=namespace,
        generate_name=f"{USER_ROLE_NAME}-",
        role_kind="Role",
        role_name=USER_ROLE_NAME,
        subjects=[_user_subject(username)],
    )


def cluster_role(namespace: str) -> dict[str, Any]:
    return {
        "apiVersion": _RBAC,
        "kind": "ClusterRole",
        "metadata": {"name": cluster_scoped_name(namespace)},
        "rules": [
            {"apiGroups": [RHPAM_API_GROUP], "resources": list(_RHPAM_RESOURCES), "verbs": list(_READ_VERBS)},
            {"apiGroups": [""], "resources": list(_CORE_RESOURCES), "verbs": list(_READ_VERBS)},
            {"apiGroups": ["apps"], "resources": ["deployments"], "verbs": list(_READ_VERBS)},
        ],
    }


def cluster_role_binding(namespace: str) -> dict[str, Any]:
    return {
        "apiVersion": _RBAC,
        "kind": "ClusterRoleBinding",
        "metadata": {"name": cluster_scoped_name(namespace)},
        "roleRef": {"apiGroup": RBAC_API_GROUP, "kind": "ClusterRole", "name": cluster_scoped_name(namespace)},
        "subjects": [_operator_subject(namespace)],
    }


def operator_deployment(namespace: str, config: BrokerConfig) -> dict[str, Any]:
    labels = {"name": OPERATOR_NAME}
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": OPERATOR_NAME, "namespace": namespace},
        "spec": {
            "replicas": 1,
            "strategy": {"type": "Recreate"},
            "selector": {"matchLabels": dict(labels)},
            "template": {
                "metadata": {"labels": dict(labels)},
                "spec": {
                    "serviceAccountName": OPERATOR_NAME,
                    "containers": [
                        {
                            "name": OPERATOR_NAME,
                            "image": config.operator_image,
                            "imagePullPolicy": "IfNotPresent",
                            "command": [OPERATOR_NAME],
                            "env": [
                                {
                                    "name": "WATCH_NAMESPACE",
                                    "valueFrom": {"fieldRef": {"fieldPath": "metadata.namespace"}},
                                },
                                {
                                    "name": "POD_NAME",
                                    "valueFrom": {"fieldRef": {"fieldPath": "metadata.name"}},
                                },
                                {"name": "OPERATOR_NAME", "value": OPERATOR_NAME},
                                {"name": "SSO_NAMESPACE", "value": config.sso_namespace},
                                {
                                    "name": "SSO_ADMIN_CREDENTIALS_SECRET",
                                    "value": config.sso_admin_credentials_secret,
                                },
                            ],
                            "ports": [{"name": "metrics", "containerPort": 60000}],
                            "readinessProbe": {
                                "exec": {"command": ["stat", "/tmp/operator-sdk-ready"]},
                                "initialDelaySeconds": 4,
                                "periodSeconds": 10,
                                "failureThreshold": 1,
                            },
                        }
                    ],
                },
            },
        },
    }


def rhpam_dev(namespace: str, config: BrokerConfig) -> dict[str, Any]:
    return {
        "apiVersion": RHPAM_API_VERSION,
        "kind": RHPAM_DEV.kind,
        "metadata": {"namespace": namespace, "generateName": RHPAM_DEV_GENERATE_NAME},
        "spec": {"domain": config.route_suffix or ""},
    }


def rhpam_user(namespace: str) -> dict[str, Any]:
    # Seed users for the development plan; the operator owns their lifecycle afterwards.
    return {
        "apiVersion": RHPAM_API_VERSION,
        "kind": RHPAM_USER.kind,
        "metadata": {"namespace": namespace, "generateName": RHPAM_USER_GENERATE_NAME},
        "spec": {
            "roles": [{"name": "group1"}, {"name": "group2"}],
            "users": [
                {"username": "user1", "password": "password", "roles": ["user", "kie-server", "group1"]},
                {"username": "user2", "password": "password", "roles": ["user", "kie-server", "group2"]},
            ],
        },
    }
