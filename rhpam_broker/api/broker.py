from __future__ import annotations

import base64
import binascii
import json

from fastapi import APIRouter, Depends, Header, Query, status

from rhpam_broker.deps import get_broker
from rhpam_broker.models import (
    CatalogResponse,
    DeprovisionResponse,
    ErrorResponse,
    LastOperationResponse,
    ProvisionRequest,
    ProvisionResponse,
)
from rhpam_broker.services import catalog
from rhpam_broker.services.broker import RhpamBroker
from rhpam_broker.services.errors import AsyncRequiredException, IntegrityException

router = APIRouter(
    prefix="/v2",
    tags=["broker"],
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)


def parse_originating_identity(header: str | None) -> str:
    """Extract the username from an ``X-Broker-API-Originating-Identity`` header.

    The header is ``<platform> <base64 JSON>``; the JSON must carry ``username``.
    """
    if not header:
        raise IntegrityException("X-Broker-API-Originating-Identity header is required")
    platform, _, encoded = header.strip().partition(" ")
    if not encoded:
        raise IntegrityException("X-Broker-API-Originating-Identity must be '<platform> <base64 value>'")
    try:
        payload = json.loads(base64.b64decode(encoded.strip(), validate=True))
    except (binascii.Error, ValueError) as exc:
        raise IntegrityException(f"X-Broker-API-Originating-Identity value is not base64 JSON: {exc}") from exc
    username = payload.get("username") if isinstance(payload, dict) else None
    if not isinstance(username, str) or not username:
        raise IntegrityException(f"originating identity from platform {platform!r} has no username")
    return username


def _require_async(accepts_incomplete: bool) -> None:
    if not accepts_incomplete:
        raise AsyncRequiredException("This service plan requires client support for asynchronous service operations.")


@router.get("/catalog", response_model=CatalogResponse)
def get_catalog(broker: RhpamBroker = Depends(get_broker)) -> CatalogResponse:
    return CatalogResponse(services=broker.get_catalog())


@router.put(
    "/service_instances/{instance_id}",
    response_model=ProvisionResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def provision(
    instance_id: str,
    payload: ProvisionRequest,
    accepts_incomplete: bool = Query(False),
    originating_identity: str | None = Header(None, alias="X-Broker-API-Originating-Identity"),
    broker: RhpamBroker = Depends(get_broker),
) -> ProvisionResponse:
    _require_async(accepts_incomplete)
    username = parse_originating_identity(originating_identity)
    result = broker.provision(
        instance_id,
        username,
        service_id=payload.service_id,
        plan_id=payload.plan_id,
        parameters=payload.parameters,
    )
    return ProvisionResponse(dashboard_url=result.dashboard_url, operation=result.operation)


@router.delete(
    "/service_instances/{instance_id}",
    response_model=DeprovisionResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def deprovision(
    instance_id: str,
    accepts_incomplete: bool = Query(False),
    service_id: str | None = Query(None),
    plan_id: str | None = Query(None),
    broker: RhpamBroker = Depends(get_broker),
) -> DeprovisionResponse:
    _require_async(accepts_incomplete)
    if service_id is not None or plan_id is not None:
        catalog.find_plan(service_id, plan_id)
    return DeprovisionResponse(operation=broker.deprovision(instance_id))


@router.get("/service_instances/{instance_id}/last_operation", response_model=LastOperationResponse)
def last_operation(
    instance_id: str,
    operation: str = Query(""),
    broker: RhpamBroker = Depends(get_broker),
) -> LastOperationResponse:
    result = broker.last_operation(instance_id, operation)
    return LastOperationResponse(state=result.state, description=result.description)
