"""FastAPI application for the site operations backend."""

from __future__ import annotations

import logging
import time
from typing import Any, Literal, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from siteops.api.schemas import (
    ApprovalRequest,
    HealthResponse,
    ShipmentStatusRequest,
    SiteCreateRequest,
    failure,
    ok,
)
from siteops.application.context import AppContext, make_app_context
from siteops.application.contracts import (
    AdditionalPhotoInput,
    DailyReportChanges,
    DailyReportDraft,
    DailyReportFilters,
    ShipmentFilters,
    ShipmentInfoUpdate,
    ShipmentOrder,
)
from siteops.config.settings import load_settings
from siteops.persistence.models import ShipmentStatus
from siteops.security.redact import redact_sensitive
from siteops.services import daily_reports, shipments, sites
from siteops.shared.exceptions import AppError

_api_logger = logging.getLogger("siteops.api")

load_dotenv()

_settings = load_settings()

app = FastAPI(
    title="siteops",
    version="0.3.0",
    docs_url="/docs" if _settings.enable_docs else None,
    redoc_url=None,
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Attach security response headers."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cache-Control"] = "no-store"
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-client sliding window on write requests (in-process)."""

    _WRITE_METHODS = frozenset({"POST", "PATCH", "DELETE"})

    def __init__(self, app, max_requests: int = 60, window_seconds: int = 60):
        super().__init__(app)
        self._max = max_requests
        self._window = window_seconds
        self._counters: dict[str, list[float]] = {}

    async def dispatch(self, request: Request, call_next):
        if request.method not in self._WRITE_METHODS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.time()
        hits = [t for t in self._counters.get(client_ip, []) if now - t < self._window]
        if len(hits) >= self._max:
            return JSONResponse(status_code=429, content=failure("too many requests, retry later"))
        hits.append(now)
        self._counters[client_ip] = hits
        return await call_next(request)


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    RateLimitMiddleware,
    max_requests=_settings.rate_limit_max,
    window_seconds=_settings.rate_limit_window,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["*"],
)


_context: Optional[AppContext] = None


def get_context() -> AppContext:
    global _context
    if _context is None:
        _context = make_app_context(_settings)
    return _context


def _context_resolver(request: Request):
    """Hand the context factory to routes that must guard its construction."""
    return request.app.dependency_overrides.get(get_context, get_context)


def _safe_log_exception(context: str, exc: Exception) -> None:
    _api_logger.error("%s: %s", context, redact_sensitive(f"{type(exc).__name__}: {exc}"))


@app.exception_handler(AppError)
def _handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        _safe_log_exception(f"{request.method} {request.url.path}", exc)
    return JSONResponse(status_code=exc.status_code, content=failure(exc.message))


@app.exception_handler(Exception)
def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    _safe_log_exception(f"{request.method} {request.url.path}", exc)
    return JSONResponse(status_code=500, content=failure("internal server error"))


@app.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok")


# -- sites -----------------------------------------------------------------


@app.post("/api/sites", status_code=201)
def create_site(req: SiteCreateRequest, ctx: AppContext = Depends(get_context)):
    site = sites.create_site(ctx, req.name, address=req.address, organization_id=req.organization_id)
    return ok(site)


@app.get("/api/sites")
def list_sites(organization_id: Optional[str] = None, ctx: AppContext = Depends(get_context)):
    return ok(sites.list_sites(ctx, organization_id))


# -- daily reports ---------------------------------------------------------


@app.post("/api/mobile/daily-reports")
def save_daily_report(draft: DailyReportDraft, ctx: AppContext = Depends(get_context)):
    """Create or update the report for a site and work date."""
    saved = daily_reports.save_daily_report(ctx, draft)
    warning = None
    if saved.failed_side_effects:
        warning = "partial: " + ", ".join(saved.failed_side_effects)
    return ok(
        saved.report,
        message="daily report created" if saved.created else "daily report updated",
        warning=warning,
    )


@app.get("/api/mobile/daily-reports")
def list_mobile_daily_reports(
    site_id: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    status: Optional[str] = None,
    created_by: Optional[str] = None,
    limit: Optional[str] = None,
    offset: Optional[str] = None,
    resolve_context=Depends(_context_resolver),
):
    """Listing for the mobile client; degrades to an empty list instead of failing."""
    try:
        ctx = resolve_context()
        params: dict[str, Any] = {
            "site_id": site_id,
            "start_date": start_date,
            "end_date": end_date,
            "status": status,
            "created_by": created_by,
        }
        if limit is not None:
            params["limit"] = limit
        if offset is not None:
            params["offset"] = offset
        filters = DailyReportFilters.model_validate(params)
        return ok(daily_reports.list_daily_reports(ctx, filters))
    except Exception as exc:
        _safe_log_exception("mobile daily report listing failed", exc)
        return ok([], warning="fallback")


@app.get("/api/daily-reports/{report_id}")
def get_daily_report(report_id: str, ctx: AppContext = Depends(get_context)):
    return ok(daily_reports.get_daily_report(ctx, report_id))


@app.patch("/api/daily-reports/{report_id}")
def update_daily_report(report_id: str, changes: DailyReportChanges, ctx: AppContext = Depends(get_context)):
    return ok(daily_reports.update_daily_report(ctx, report_id, changes), message="daily report updated")


@app.post("/api/daily-reports/{report_id}/submit")
def submit_daily_report(report_id: str, ctx: AppContext = Depends(get_context)):
    return ok(daily_reports.submit_daily_report(ctx, report_id), message="daily report submitted")


@app.post("/api/daily-reports/{report_id}/approve")
def approve_daily_report(report_id: str, req: ApprovalRequest, ctx: AppContext = Depends(get_context)):
    report = daily_reports.approve_daily_report(
        ctx,
        report_id,
        req.approve,
        approver_id=req.approver_id,
        comments=req.comments,
    )
    return ok(report, message="daily report approved" if req.approve else "daily report rejected")


@app.post("/api/daily-reports/{report_id}/photos", status_code=201)
def add_additional_photo(report_id: str, photo: AdditionalPhotoInput, ctx: AppContext = Depends(get_context)):
    return ok(daily_reports.add_additional_photo(ctx, report_id, photo))


@app.get("/api/daily-reports/{report_id}/photos")
def list_additional_photos(report_id: str, ctx: AppContext = Depends(get_context)):
    return ok(daily_reports.list_additional_photos(ctx, report_id))


@app.delete("/api/daily-reports/photos/{photo_id}")
def delete_additional_photo(photo_id: str, ctx: AppContext = Depends(get_context)):
    daily_reports.delete_additional_photo(ctx, photo_id)
    return ok(message="additional photo deleted")


# -- shipments -------------------------------------------------------------


@app.post("/api/shipments", status_code=201)
def process_shipment(order: ShipmentOrder, ctx: AppContext = Depends(get_context)):
    return ok(shipments.process_shipment(ctx, order), message="shipment created")


@app.get("/api/shipments")
def get_shipment_history(
    site_id: Optional[str] = None,
    start_date: Optional[str] = Query(default=None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
    end_date: Optional[str] = Query(default=None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
    status: Optional[ShipmentStatus] = None,
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    ctx: AppContext = Depends(get_context),
):
    filters = ShipmentFilters(start_date=start_date, end_date=end_date, status=status, limit=limit)
    return ok(shipments.get_shipment_history(ctx, site_id, filters))


@app.get("/api/shipments/analytics")
def get_shipment_analytics(
    period: Literal["week", "month", "year"] = "month",
    ctx: AppContext = Depends(get_context),
):
    return ok(shipments.get_shipment_analytics(ctx, period))


@app.get("/api/shipments/track/{tracking_number}")
def track_delivery(tracking_number: str, ctx: AppContext = Depends(get_context)):
    return ok(shipments.track_delivery(ctx, tracking_number))


@app.patch("/api/shipments/{shipment_id}")
def update_shipment_info(shipment_id: str, changes: ShipmentInfoUpdate, ctx: AppContext = Depends(get_context)):
    return ok(shipments.update_shipment_info(ctx, shipment_id, changes), message="shipment updated")


@app.post("/api/shipments/{shipment_id}/status")
def update_shipment_status(shipment_id: str, req: ShipmentStatusRequest, ctx: AppContext = Depends(get_context)):
    return ok(shipments.update_shipment_status(ctx, shipment_id, req.status), message="shipment status updated")
