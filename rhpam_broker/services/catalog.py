from __future__ import annotations

from copy import deepcopy
from typing import Any

from jsonschema import SchemaError, ValidationError
from jsonschema import validate as jsonschema_validate

from rhpam_broker.services.errors import IntegrityException

SERVICE_ID = "rhpam-service-id"
SERVICE_NAME = "rhpam-dev"
PLAN_ID = "default-rhpam"

# Provisioning takes no tuning knobs today; anything but an object is a client error.
INSTANCE_CREATE_PARAMETERS_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
}

_SERVICES: list[dict[str, Any]] = [
    {
        "id": SERVICE_ID,
        "name": SERVICE_NAME,
        "description": "rhpam-dev",
        "bindable": False,
        "plan_updateable": False,
        "metadata": {"serviceName": SERVICE_NAME, "serviceType": SERVICE_NAME},
        "plans": [
            {
                "id": PLAN_ID,
                "name": "default-rhpam",
                "description": "default rhpam plan",
                "free": True,
                "schemas": {
                    "service_instance": {"create": {"parameters": INSTANCE_CREATE_PARAMETERS_SCHEMA}},
                    "service_binding": {"create": {"parameters": {}}},
                },
            }
        ],
    }
]


def list_services() -> list[dict[str, Any]]:
    """Return a copy of the service catalog offered by this broker."""
    return deepcopy(_SERVICES)


def find_plan(service_id: str | None, plan_id: str | None) -> dict[str, Any]:
    """Resolve a service/plan pair, raising ``IntegrityException`` when either is unknown."""
    for service in _SERVICES:
        if service["id"] != service_id:
            continue
        for plan in service["plans"]:
            if plan["id"] == plan_id:
                return deepcopy(plan)
        raise IntegrityException(f"plan {plan_id!r} is not offered by service {service_id!r}")
    raise IntegrityException(f"service {service_id!r} is not in the catalog")


def validate_instance_parameters(plan: dict[str, Any], parameters: Any) -> None:
    """Validate provision request parameters against the plan's create schema."""
    schema = plan.get("schemas", {}).get("service_instance", {}).get("create", {}).get("parameters")
    if not schema:
        return
    if parameters is None:
        parameters = {}
    try:
        jsonschema_validate(instance=parameters, schema=schema)
    except ValidationError as exc:
        raise IntegrityException(f"parameters are invalid: {exc.message}") from exc
    except SchemaError as exc:
        raise IntegrityException(f"plan {plan.get('id')!r} has an invalid parameters schema: {exc.message}") from exc
