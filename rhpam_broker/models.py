from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

from rhpam_broker.services.operations import OperationState


class CatalogResponse(BaseModel):
    services: list[dict[str, Any]]


class ProvisionRequest(BaseModel):
    service_id: str
    plan_id: str
    organization_guid: Optional[str] = None
    space_guid: Optional[str] = None
    parameters: Optional[dict[str, Any]] = None
    context: Optional[dict[str, Any]] = None


class ProvisionResponse(BaseModel):
    dashboard_url: str
    operation: str


class DeprovisionResponse(BaseModel):
    operation: str


class LastOperationResponse(BaseModel):
    state: OperationState
    description: str


class ErrorResponse(BaseModel):
    error: str
    description: str = Field(default="")
