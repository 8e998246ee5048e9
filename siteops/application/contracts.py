"""Application request contracts."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from siteops.persistence.models import DailyReportStatus, PhotoType, ShipmentStatus

_DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class WorkerDetail(BaseModel):
    worker_name: str = Field(default="", max_length=100)
    labor_hours: float = Field(default=0, ge=0)
    worker_id: Optional[str] = None


class MaterialUsage(BaseModel):
    material_type: str = Field(min_length=1, max_length=100)
    quantity: float = Field(default=0, ge=0)
    unit: Optional[str] = Field(default=None, max_length=20)


class DailyReportDraft(BaseModel):
    """Create-or-update intent from the mobile report form.

    ``site_id`` and ``work_date`` are optional here so their absence can be
    reported as a domain validation error rather than a schema error.
    """

    site_id: Optional[str] = None
    work_date: Optional[str] = Field(default=None, pattern=_DATE_PATTERN)
    partner_company_id: Optional[str] = None
    member_name: Optional[str] = Field(default=None, max_length=100)
    process_type: Optional[str] = Field(default=None, max_length=100)
    total_workers: Optional[int] = Field(default=None, ge=0)
    npc1000_incoming: Optional[float] = None
    npc1000_used: Optional[float] = None
    npc1000_remaining: Optional[float] = None
    issues: Optional[str] = None
    hq_request: Optional[str] = None
    work_content: Optional[dict[str, Any]] = None
    location_info: Optional[dict[str, Any]] = None
    status: Literal["draft", "submitted"] = "draft"
    created_by: Optional[str] = None
    workers: Optional[list[WorkerDetail]] = None
    materials: Optional[list[MaterialUsage]] = None


class DailyReportChanges(BaseModel):
    work_date: Optional[str] = Field(default=None, pattern=_DATE_PATTERN)
    partner_company_id: Optional[str] = None
    member_name: Optional[str] = Field(default=None, max_length=100)
    process_type: Optional[str] = Field(default=None, max_length=100)
    total_workers: Optional[int] = Field(default=None, ge=0)
    npc1000_incoming: Optional[float] = None
    npc1000_used: Optional[float] = None
    npc1000_remaining: Optional[float] = None
    issues: Optional[str] = None
    hq_request: Optional[str] = None
    notes: Optional[str] = None
    work_content: Optional[dict[str, Any]] = None
    location_info: Optional[dict[str, Any]] = None


class DailyReportFilters(BaseModel):
    site_id: Optional[str] = None
    start_date: Optional[str] = Field(default=None, pattern=_DATE_PATTERN)
    end_date: Optional[str] = Field(default=None, pattern=_DATE_PATTERN)
    status: Optional[DailyReportStatus] = None
    created_by: Optional[str] = None
    limit: int = Field(default=50, ge=1, le=200)
    offset: int = Field(default=0, ge=0)


class AdditionalPhotoInput(BaseModel):
    photo_type: PhotoType
    file_url: str = Field(min_length=1, max_length=2000)
    description: Optional[str] = Field(default=None, max_length=500)


class ShipmentOrder(BaseModel):
    site_id: str = Field(min_length=1)
    quantity_shipped: float
    material_request_id: Optional[str] = None
    planned_delivery_date: Optional[str] = Field(default=None, pattern=_DATE_PATTERN)
    tracking_number: Optional[str] = Field(default=None, max_length=100)
    carrier: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = None
    created_by: Optional[str] = None


class ShipmentInfoUpdate(BaseModel):
    planned_delivery_date: Optional[str] = Field(default=None, pattern=_DATE_PATTERN)
    tracking_number: Optional[str] = Field(default=None, max_length=100)
    carrier: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = None
    shipping_cost: Optional[float] = Field(default=None, ge=0)
    payment_method: Optional[str] = Field(default=None, max_length=50)


class ShipmentFilters(BaseModel):
    start_date: Optional[str] = Field(default=None, pattern=_DATE_PATTERN)
    end_date: Optional[str] = Field(default=None, pattern=_DATE_PATTERN)
    status: Optional[ShipmentStatus] = None
    limit: Optional[int] = Field(default=None, ge=1, le=500)


__all__ = [
    "AdditionalPhotoInput",
    "DailyReportChanges",
    "DailyReportDraft",
    "DailyReportFilters",
    "MaterialUsage",
    "ShipmentFilters",
    "ShipmentInfoUpdate",
    "ShipmentOrder",
    "WorkerDetail",
]
