"""Material shipment tracking."""

from __future__ import annotations

import logging
import time
from typing import Any, Iterable, Literal, Optional

from siteops.application.context import AppContext
from siteops.application.contracts import ShipmentFilters, ShipmentInfoUpdate, ShipmentOrder
from siteops.persistence.models import MATERIAL_REQUESTS, SHIPMENT_OPTIONAL, SHIPMENT_RECORDS, ShipmentStatus
from siteops.persistence.store import Store
from siteops.services.sites import find_site
from siteops.shared.exceptions import AppError, NotFoundError, ValidationError
from siteops.upsert.healer import update_with_column_healing

_logger = logging.getLogger("siteops.shipments")

Period = Literal["week", "month", "year"]


def _now() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def _today() -> str:
    return time.strftime("%Y-%m-%d", time.gmtime())


def _require_shipment(store: Store, shipment_id: str) -> dict[str, Any]:
    result = store.select(SHIPMENT_RECORDS, filters={"id": shipment_id}, limit=1)
    if result.error is not None:
        raise AppError(f"failed to load shipment: {result.error.message}")
    if not result.data:
        raise NotFoundError("shipment record not found")
    return result.data[0]


def process_shipment(ctx: AppContext, order: ShipmentOrder) -> dict[str, Any]:
    if order.quantity_shipped <= 0:
        raise ValidationError("quantity_shipped must be positive")
    if find_site(ctx, order.site_id) is None:
        raise NotFoundError("site not found")
    if order.material_request_id:
        request = ctx.store.select(MATERIAL_REQUESTS, filters={"id": order.material_request_id}, limit=1)
        if request.error is None and not request.data:
            raise NotFoundError("material request not found")

    payload = order.model_dump(exclude_none=True)
    payload.update({"shipment_date": _today(), "status": ShipmentStatus.PREPARING.value})
    result = ctx.store.insert(SHIPMENT_RECORDS, payload)
    if result.error is not None:
        _logger.error("Error creating shipment record: %s", result.error.message)
        raise AppError(f"failed to create shipment record: {result.error.message}")
    return result.data


def update_shipment_status(ctx: AppContext, shipment_id: str, status: ShipmentStatus) -> dict[str, Any]:
    _require_shipment(ctx.store, shipment_id)
    changes: dict[str, Any] = {"status": status.value, "updated_at": _now()}
    if status is ShipmentStatus.DELIVERED:
        changes["actual_delivery_date"] = _today()

    record = update_with_column_healing(
        ctx.store,
        SHIPMENT_RECORDS,
        changes,
        match={"id": shipment_id},
        optional_columns=SHIPMENT_OPTIONAL,
        known_missing=ctx.known_missing,
    )

    if status is ShipmentStatus.DELIVERED and record.get("material_request_id"):
        tasks = ctx.post_commit()
        tasks.add(
            "mark_material_request_delivered",
            ctx.store.update,
            MATERIAL_REQUESTS,
            {"status": "delivered"},
            match={"id": record["material_request_id"]},
        )
        tasks.run()
    return record


def update_shipment_info(ctx: AppContext, shipment_id: str, changes: ShipmentInfoUpdate) -> dict[str, Any]:
    """Apply optional field changes, skipping columns this deployment does not have."""
    _require_shipment(ctx.store, shipment_id)
    payload = changes.model_dump(exclude_unset=True)
    payload["updated_at"] = _now()
    return update_with_column_healing(
        ctx.store,
        SHIPMENT_RECORDS,
        payload,
        match={"id": shipment_id},
        optional_columns=SHIPMENT_OPTIONAL,
        known_missing=ctx.known_missing,
    )


def get_shipment_history(
    ctx: AppContext,
    site_id: Optional[str] = None,
    filters: Optional[ShipmentFilters] = None,
) -> list[dict[str, Any]]:
    filters = filters or ShipmentFilters()
    equals: dict[str, Any] = {}
    if site_id:
        equals["site_id"] = site_id
    if filters.status is not None:
        equals["status"] = filters.status.value
    result = ctx.store.select(
        SHIPMENT_RECORDS,
        filters=equals,
        gte={"shipment_date": filters.start_date} if filters.start_date else None,
        lte={"shipment_date": filters.end_date} if filters.end_date else None,
        order_by="shipment_date",
        descending=True,
        limit=filters.limit,
    )
    if result.error is not None:
        raise AppError(f"failed to load shipment history: {result.error.message}")
    return result.data


def build_shipment_analytics(records: Iterable[dict[str, Any]], period: Period = "month") -> list[dict[str, Any]]:
    """Bucket shipments by day (week view), month or year; newest bucket first."""
    buckets: dict[str, dict[str, float]] = {}
    for record in records:
        shipment_date = record.get("shipment_date")
        if not shipment_date:
            continue
        year, month, day = str(shipment_date)[:10].split("-")
        if period == "week":
            key = f"{year}-{month}-{day}"
        elif period == "year":
            key = year
        else:
            key = f"{year}-{month}"
        bucket = buckets.setdefault(key, {"total_quantity": 0, "shipments": 0})
        bucket["total_quantity"] += record.get("quantity_shipped") or 0
        bucket["shipments"] += 1
    return [
        {"period": key, "total_quantity": value["total_quantity"], "shipments": int(value["shipments"])}
        for key, value in sorted(buckets.items(), key=lambda item: item[0], reverse=True)
    ]


def get_shipment_analytics(ctx: AppContext, period: Period = "month") -> list[dict[str, Any]]:
    result = ctx.store.select(SHIPMENT_RECORDS, order_by="shipment_date", descending=True)
    if result.error is not None:
        raise AppError(f"failed to load shipment analytics: {result.error.message}")
    return build_shipment_analytics(result.data, period)


def track_delivery(ctx: AppContext, tracking_number: str) -> dict[str, Any]:
    result = ctx.store.select(SHIPMENT_RECORDS, filters={"tracking_number": tracking_number}, limit=1)
    if result.error is not None:
        raise AppError(f"failed to track delivery: {result.error.message}")
    if not result.data:
        raise NotFoundError("tracking number not found")
    shipment = result.data[0]
    site = find_site(ctx, shipment["site_id"]) or {}
    return {
        "tracking_number": shipment.get("tracking_number"),
        "carrier": shipment.get("carrier"),
        "status": shipment.get("status"),
        "shipment_date": shipment.get("shipment_date"),
        "planned_delivery_date": shipment.get("planned_delivery_date"),
        "actual_delivery_date": shipment.get("actual_delivery_date"),
        "site_name": site.get("name"),
        "site_address": site.get("address"),
        "quantity_shipped": shipment.get("quantity_shipped"),
        "notes": shipment.get("notes"),
    }


__all__ = [
    "build_shipment_analytics",
    "get_shipment_analytics",
    "get_shipment_history",
    "process_shipment",
    "track_delivery",
    "update_shipment_info",
    "update_shipment_status",
]
