"""Site registry."""

from __future__ import annotations

from typing import Any, Optional

from siteops.application.context import AppContext
from siteops.persistence.models import SITES
from siteops.shared.exceptions import AppError, NotFoundError, ValidationError


def create_site(
    ctx: AppContext,
    name: str,
    address: Optional[str] = None,
    organization_id: Optional[str] = None,
) -> dict[str, Any]:
    if not name.strip():
        raise ValidationError("site name is required")
    result = ctx.store.insert(
        SITES,
        {"name": name.strip(), "address": address, "organization_id": organization_id},
    )
    if result.error is not None:
        raise AppError(f"failed to create site: {result.error.message}")
    return result.data


def list_sites(ctx: AppContext, organization_id: Optional[str] = None) -> list[dict[str, Any]]:
    filters = {"organization_id": organization_id} if organization_id else None
    result = ctx.store.select(SITES, filters=filters, order_by="name")
    if result.error is not None:
        raise AppError(f"failed to list sites: {result.error.message}")
    return result.data


def find_site(ctx: AppContext, site_id: str) -> Optional[dict[str, Any]]:
    result = ctx.store.select(SITES, filters={"id": site_id}, limit=1)
    if result.error is not None:
        raise AppError(f"failed to load site: {result.error.message}")
    return result.data[0] if result.data else None


def get_site(ctx: AppContext, site_id: str) -> dict[str, Any]:
    site = find_site(ctx, site_id)
    if site is None:
        raise NotFoundError("site not found")
    return site


__all__ = ["create_site", "find_site", "get_site", "list_sites"]
