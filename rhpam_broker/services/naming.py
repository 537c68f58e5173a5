from __future__ import annotations

import re

from rhpam_broker.services.errors import IntegrityException

DNS_LABEL_RE = re.compile(r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?$")
MAX_DNS_LABEL_LEN = 63


def is_valid_dns_label(value: str) -> bool:
    return bool(DNS_LABEL_RE.fullmatch(value))


def namespace_for_instance(instance_id: str, *, prefix: str) -> str:
    """Map an instance id to its tenant namespace.

    The mapping is a stable external contract: deprovisioning and status polling
    rebuild the namespace from the id alone, so it must never change shape.
    """
    if not instance_id:
        raise IntegrityException("instance_id must not be empty")
    namespace = f"{prefix}-{instance_id}"
    if len(namespace) > MAX_DNS_LABEL_LEN or not is_valid_dns_label(namespace):
        raise IntegrityException(f"instance_id {instance_id!r} does not yield a valid namespace name")
    return namespace


def dashboard_url(namespace: str, *, route_suffix: str | None) -> str:
    host = namespace if route_suffix is None else f"{namespace}.{route_suffix}"
    return f"https://rhpam-bc-{host}"
