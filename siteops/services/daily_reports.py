"""Daily work report use cases."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional

from siteops.application.context import AppContext
from siteops.application.contracts import (
    AdditionalPhotoInput,
    DailyReportChanges,
    DailyReportDraft,
    DailyReportFilters,
    MaterialUsage,
    WorkerDetail,
)
from siteops.persistence.models import (
    DAILY_REPORT_CONFLICT_KEYS,
    DAILY_REPORT_ESSENTIAL,
    DAILY_REPORT_MATERIALS,
    DAILY_REPORT_PHOTOS,
    DAILY_REPORT_REMOVABLE,
    DAILY_REPORT_STALE_CACHE_COLUMNS,
    DAILY_REPORT_WORKERS,
    DAILY_REPORTS,
    HEADQUARTERS_REQUESTS,
    DailyReportStatus,
    PhotoType,
)
from siteops.persistence.store import QueryResult, Store
from siteops.services.sites import find_site
from siteops.shared.exceptions import AppError, ForbiddenError, NotFoundError, ValidationError
from siteops.upsert.executor import DefaultRule, UpsertRequest
from siteops.upsert.healer import update_with_column_healing

_logger = logging.getLogger("siteops.daily_reports")

FALLBACK_MEMBER_NAME = "Unassigned"


@dataclass
class SavedDailyReport:
    report: dict[str, Any]
    created: bool
    attempts: int
    dropped_columns: list[str] = field(default_factory=list)
    failed_side_effects: list[str] = field(default_factory=list)


def _now() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def _not_null_defaults(target_status: str) -> dict[str, DefaultRule]:
    return {
        "member_name": lambda payload: payload.get("created_by") or FALLBACK_MEMBER_NAME,
        "process_type": "",
        "total_workers": 0,
        "npc1000_incoming": 0,
        "npc1000_used": 0,
        "npc1000_remaining": 0,
        "status": target_status,
    }


def _find_by_site_and_date(store: Store, site_id: str, work_date: str) -> Optional[dict[str, Any]]:
    result = store.select(DAILY_REPORTS, filters={"site_id": site_id, "work_date": work_date}, limit=1)
    if result.error is not None:
        # The insert path still resolves duplicates through the unique-violation redirect.
        _logger.warning("Existing report lookup failed: %s", result.error.message)
        return None
    return result.data[0] if result.data else None


def _require_report(store: Store, report_id: str) -> dict[str, Any]:
    result = store.select(DAILY_REPORTS, filters={"id": report_id}, limit=1)
    if result.error is not None:
        raise AppError(f"failed to load daily report: {result.error.message}")
    if not result.data:
        raise NotFoundError("daily report not found")
    return result.data[0]


def _ensure_editable(report: dict[str, Any]) -> None:
    if report.get("status") == DailyReportStatus.APPROVED.value:
        raise ForbiddenError("approved daily reports cannot be modified")


def _report_payload(draft: DailyReportDraft, *, is_update: bool) -> dict[str, Any]:
    payload = draft.model_dump(exclude_none=True, exclude={"workers", "materials", "status"})
    payload["status"] = draft.status
    if draft.total_workers is None and draft.workers:
        payload["total_workers"] = sum(1 for worker in draft.workers if worker.worker_name and worker.labor_hours > 0)
    if is_update:
        payload.pop("created_by", None)
        payload["updated_at"] = _now()
    return payload


def _replace_workers(store: Store, report_id: str, workers: list[WorkerDetail]) -> QueryResult:
    cleared = store.delete(DAILY_REPORT_WORKERS, match={"daily_report_id": report_id})
    if cleared.error is not None:
        return cleared
    inserted = 0
    for worker in workers:
        if not worker.worker_name or worker.labor_hours <= 0:
            continue
        result = store.insert(
            DAILY_REPORT_WORKERS,
            {"daily_report_id": report_id, "worker_name": worker.worker_name, "work_hours": worker.labor_hours},
        )
        if result.error is not None:
            return result
        inserted += 1
    return QueryResult(data=inserted)


def _replace_materials(store: Store, report_id: str, materials: list[MaterialUsage]) -> QueryResult:
    cleared = store.delete(DAILY_REPORT_MATERIALS, match={"daily_report_id": report_id})
    if cleared.error is not None:
        return cleared
    for material in materials:
        result = store.insert(
            DAILY_REPORT_MATERIALS,
            {
                "daily_report_id": report_id,
                "material_type": material.material_type,
                "quantity": material.quantity,
                "unit": material.unit,
            },
        )
        if result.error is not None:
            return result
    return QueryResult(data=len(materials))


def _create_headquarters_request(
    store: Store,
    requester_id: Optional[str],
    site_id: str,
    content: str,
    work_date: str,
) -> QueryResult:
    return store.insert(
        HEADQUARTERS_REQUESTS,
        {
            "requester_id": requester_id,
            "site_id": site_id,
            "category": "general",
            "subject": f"{work_date} daily report request",
            "content": content,
            "urgency": "medium",
            "status": "pending",
            "request_date": work_date,
        },
    )


def _aggregate_additional_photos(store: Store, report_id: str) -> QueryResult:
    """Copy the report's additional photos into its before/after JSON columns."""
    rows = store.select(DAILY_REPORT_PHOTOS, filters={"daily_report_id": report_id}, order_by="upload_order")
    if rows.error is not None:
        return rows
    before: list[dict[str, Any]] = []
    after: list[dict[str, Any]] = []
    for row in rows.data:
        item = {"url": row["file_url"], "description": row.get("description"), "order": row.get("upload_order") or 0}
        if row["photo_type"] == PhotoType.BEFORE.value:
            before.append(item)
        elif row["photo_type"] == PhotoType.AFTER.value:
            after.append(item)
    return store.update(
        DAILY_REPORTS,
        {"additional_before_photos": before, "additional_after_photos": after},
        match={"id": report_id},
    )


def save_daily_report(ctx: AppContext, draft: DailyReportDraft) -> SavedDailyReport:
    """Create the report for (site, work date) or update the one already there."""
    if not draft.site_id or not draft.work_date:
        raise ValidationError("site_id and work_date are required")
    if find_site(ctx, draft.site_id) is None:
        raise NotFoundError("site not found")

    existing = _find_by_site_and_date(ctx.store, draft.site_id, draft.work_date)
    if existing is not None:
        _ensure_editable(existing)

    outcome = ctx.executor().execute(
        UpsertRequest(
            table=DAILY_REPORTS,
            payload=_report_payload(draft, is_update=existing is not None),
            record_id=existing["id"] if existing is not None else None,
            removable=DAILY_REPORT_REMOVABLE,
            essential=DAILY_REPORT_ESSENTIAL,
            not_null_defaults=_not_null_defaults(draft.status),
            stale_cache_columns=DAILY_REPORT_STALE_CACHE_COLUMNS,
            conflict_keys=DAILY_REPORT_CONFLICT_KEYS,
            max_attempts=ctx.settings.daily_report_max_attempts,
        )
    )
    report = outcome.row

    tasks = ctx.post_commit()
    if draft.workers is not None:
        tasks.add("replace_workers", _replace_workers, ctx.store, report["id"], draft.workers)
    if draft.materials is not None:
        tasks.add("replace_materials", _replace_materials, ctx.store, report["id"], draft.materials)
    if draft.hq_request and draft.hq_request.strip():
        tasks.add(
            "headquarters_request",
            _create_headquarters_request,
            ctx.store,
            draft.created_by,
            draft.site_id,
            draft.hq_request.strip(),
            draft.work_date,
        )
    failed = [item.name for item in tasks.run() if not item.ok]

    return SavedDailyReport(
        report=report,
        created=outcome.mode == "insert",
        attempts=outcome.attempts,
        dropped_columns=outcome.dropped,
        failed_side_effects=failed,
    )


def update_daily_report(ctx: AppContext, report_id: str, changes: DailyReportChanges) -> dict[str, Any]:
    existing = _require_report(ctx.store, report_id)
    _ensure_editable(existing)

    payload = changes.model_dump(exclude_unset=True, exclude_none=True)
    if not payload:
        raise ValidationError("no changes supplied")
    payload["updated_at"] = _now()

    outcome = ctx.executor().execute(
        UpsertRequest(
            table=DAILY_REPORTS,
            payload=payload,
            record_id=report_id,
            removable=DAILY_REPORT_REMOVABLE,
            essential=DAILY_REPORT_ESSENTIAL,
            not_null_defaults=_not_null_defaults(existing.get("status") or DailyReportStatus.DRAFT.value),
            stale_cache_columns=DAILY_REPORT_STALE_CACHE_COLUMNS,
            max_attempts=ctx.settings.daily_report_update_max_attempts,
        )
    )
    return outcome.row


def submit_daily_report(ctx: AppContext, report_id: str) -> dict[str, Any]:
    _require_report(ctx.store, report_id)
    try:
        report = update_with_column_healing(
            ctx.store,
            DAILY_REPORTS,
            {"status": DailyReportStatus.SUBMITTED.value, "updated_at": _now()},
            match={"id": report_id, "status": DailyReportStatus.DRAFT.value},
            optional_columns={"updated_at"},
            known_missing=ctx.known_missing,
        )
    except NotFoundError:
        raise NotFoundError("daily report not found or already submitted") from None

    tasks = ctx.post_commit()
    tasks.add("aggregate_additional_photos", _aggregate_additional_photos, ctx.store, report_id)
    tasks.run()
    return _require_report(ctx.store, report_id)


def approve_daily_report(
    ctx: AppContext,
    report_id: str,
    approve: bool,
    *,
    approver_id: Optional[str] = None,
    comments: Optional[str] = None,
) -> dict[str, Any]:
    _require_report(ctx.store, report_id)
    now = _now()
    changes: dict[str, Any] = {
        "status": (DailyReportStatus.APPROVED if approve else DailyReportStatus.REJECTED).value,
        "approved_by": approver_id,
        "approved_at": now,
        "updated_at": now,
    }
    if comments:
        changes["notes"] = comments
    try:
        return update_with_column_healing(
            ctx.store,
            DAILY_REPORTS,
            changes,
            match={"id": report_id, "status": DailyReportStatus.SUBMITTED.value},
            optional_columns={"approved_by", "approved_at", "notes", "updated_at"},
            known_missing=ctx.known_missing,
        )
    except NotFoundError:
        raise NotFoundError("daily report not found or not awaiting approval") from None


def list_daily_reports(ctx: AppContext, filters: DailyReportFilters) -> list[dict[str, Any]]:
    equals: dict[str, Any] = {}
    if filters.site_id:
        equals["site_id"] = filters.site_id
    if filters.status is not None:
        equals["status"] = filters.status.value
    if filters.created_by:
        equals["created_by"] = filters.created_by
    result = ctx.store.select(
        DAILY_REPORTS,
        filters=equals,
        gte={"work_date": filters.start_date} if filters.start_date else None,
        lte={"work_date": filters.end_date} if filters.end_date else None,
        order_by="work_date",
        descending=True,
        limit=filters.limit,
        offset=filters.offset,
    )
    if result.error is not None:
        raise AppError(f"failed to list daily reports: {result.error.message}")
    return result.data


def _related_rows(store: Store, table: str, report_id: str, order_by: str) -> list[dict[str, Any]]:
    result = store.select(table, filters={"daily_report_id": report_id}, order_by=order_by)
    if result.error is not None:
        _logger.warning("Related %s rows unavailable: %s", table, result.error.message)
        return []
    return result.data


def get_daily_report(ctx: AppContext, report_id: str) -> dict[str, Any]:
    report = _require_report(ctx.store, report_id)
    report["workers"] = _related_rows(ctx.store, DAILY_REPORT_WORKERS, report_id, "created_at")
    report["materials"] = _related_rows(ctx.store, DAILY_REPORT_MATERIALS, report_id, "created_at")
    report["additional_photos"] = _related_rows(ctx.store, DAILY_REPORT_PHOTOS, report_id, "upload_order")
    return report


def add_additional_photo(ctx: AppContext, report_id: str, photo: AdditionalPhotoInput) -> dict[str, Any]:
    report = _require_report(ctx.store, report_id)
    _ensure_editable(report)
    latest = ctx.store.select(
        DAILY_REPORT_PHOTOS,
        filters={"daily_report_id": report_id, "photo_type": photo.photo_type.value},
        order_by="upload_order",
        descending=True,
        limit=1,
    )
    if latest.error is not None:
        raise AppError(f"failed to load additional photos: {latest.error.message}")
    # Deleted slots are not reused.
    next_order = (latest.data[0].get("upload_order") or 0) + 1 if latest.data else 1
    result = ctx.store.insert(
        DAILY_REPORT_PHOTOS,
        {
            "daily_report_id": report_id,
            "photo_type": photo.photo_type.value,
            "file_url": photo.file_url,
            "description": photo.description,
            "upload_order": next_order,
        },
    )
    if result.error is not None:
        raise AppError(f"failed to save additional photo: {result.error.message}")
    return result.data


def list_additional_photos(ctx: AppContext, report_id: str) -> list[dict[str, Any]]:
    _require_report(ctx.store, report_id)
    result = ctx.store.select(DAILY_REPORT_PHOTOS, filters={"daily_report_id": report_id}, order_by="upload_order")
    if result.error is not None:
        raise AppError(f"failed to load additional photos: {result.error.message}")
    return result.data


def delete_additional_photo(ctx: AppContext, photo_id: str) -> None:
    result = ctx.store.delete(DAILY_REPORT_PHOTOS, match={"id": photo_id})
    if result.error is not None:
        raise AppError(f"failed to delete additional photo: {result.error.message}")
    if not result.data:
        raise NotFoundError("additional photo not found")


__all__ = [
    "FALLBACK_MEMBER_NAME",
    "SavedDailyReport",
    "add_additional_photo",
    "approve_daily_report",
    "delete_additional_photo",
    "get_daily_report",
    "list_additional_photos",
    "list_daily_reports",
    "save_daily_report",
    "submit_daily_report",
    "update_daily_report",
]
