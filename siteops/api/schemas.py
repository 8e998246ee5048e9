"""API request/response models."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

from siteops.persistence.models import ShipmentStatus


class Envelope(BaseModel):
    success: bool = Field(description="true when the operation succeeded")
    data: Any = Field(default=None)
    error: Optional[str] = Field(default=None, description="human-readable failure reason")
    message: Optional[str] = Field(default=None)
    warning: Optional[str] = Field(default=None, description="set when a degraded fallback was served")


class HealthResponse(BaseModel):
    status: str = "ok"


class SiteCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200, description="site display name")
    address: Optional[str] = Field(default=None, max_length=500)
    organization_id: Optional[str] = None


class ApprovalRequest(BaseModel):
    approve: bool
    comments: Optional[str] = Field(default=None, max_length=2000)
    approver_id: Optional[str] = None


class ShipmentStatusRequest(BaseModel):
    status: ShipmentStatus


def ok(data: Any = None, *, message: Optional[str] = None, warning: Optional[str] = None) -> dict[str, Any]:
    return Envelope(success=True, data=data, message=message, warning=warning).model_dump(exclude_none=True)


def failure(error: str) -> dict[str, Any]:
    return Envelope(success=False, error=error).model_dump(exclude_none=True)


__all__ = [
    "ApprovalRequest",
    "Envelope",
    "HealthResponse",
    "ShipmentStatusRequest",
    "SiteCreateRequest",
    "failure",
    "ok",
]
