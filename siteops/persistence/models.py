"""Table names, status vocabularies and column groups for persisted records."""

from __future__ import annotations

from enum import Enum

SITES = "sites"
DAILY_REPORTS = "daily_reports"
DAILY_REPORT_WORKERS = "daily_report_workers"
DAILY_REPORT_MATERIALS = "daily_report_materials"
DAILY_REPORT_PHOTOS = "daily_report_additional_photos"
HEADQUARTERS_REQUESTS = "headquarters_requests"
MATERIAL_REQUESTS = "material_requests"
SHIPMENT_RECORDS = "shipment_records"


class DailyReportStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class ShipmentStatus(str, Enum):
    PREPARING = "preparing"
    SHIPPED = "shipped"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PhotoType(str, Enum):
    BEFORE = "before"
    AFTER = "after"


# A daily report without these is meaningless; they are never dropped.
DAILY_REPORT_ESSENTIAL = frozenset({"site_id", "work_date"})

# Columns added after the first schema revision or only present in some deployments.
DAILY_REPORT_REMOVABLE = frozenset(
    {
        "partner_company_id",
        "member_name",
        "process_type",
        "total_workers",
        "npc1000_incoming",
        "npc1000_used",
        "npc1000_remaining",
        "issues",
        "hq_request",
        "created_by",
        "notes",
        "work_content",
        "location_info",
        "additional_before_photos",
        "additional_after_photos",
        "updated_at",
    }
)

# JSON-bearing columns dropped speculatively when the schema cache is stale.
DAILY_REPORT_STALE_CACHE_COLUMNS = (
    "work_content",
    "location_info",
    "additional_before_photos",
    "additional_after_photos",
)

DAILY_REPORT_CONFLICT_KEYS = ("site_id", "work_date")

SHIPMENT_OPTIONAL = frozenset(
    {
        "planned_delivery_date",
        "tracking_number",
        "carrier",
        "notes",
        "shipping_cost",
        "payment_method",
        "actual_delivery_date",
        "updated_at",
    }
)


__all__ = [
    "DAILY_REPORTS",
    "DAILY_REPORT_CONFLICT_KEYS",
    "DAILY_REPORT_ESSENTIAL",
    "DAILY_REPORT_MATERIALS",
    "DAILY_REPORT_PHOTOS",
    "DAILY_REPORT_REMOVABLE",
    "DAILY_REPORT_STALE_CACHE_COLUMNS",
    "DAILY_REPORT_WORKERS",
    "DailyReportStatus",
    "HEADQUARTERS_REQUESTS",
    "MATERIAL_REQUESTS",
    "PhotoType",
    "SHIPMENT_OPTIONAL",
    "SHIPMENT_RECORDS",
    "SITES",
    "ShipmentStatus",
]
