"""Admin Quote Routes — quote review, status changes and add-on management.

Invariants:
    - Every route requires an admin session
    - Status changes follow the same transition table as the payment flow
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from smokehouse.api.dependencies import require_admin
from smokehouse.api.routes.catering_quotes import get_quote_service
from smokehouse.core.domain_types import QuoteStatus
from smokehouse.schemas.catering import AddonCreate, AddonUpdate, QuoteStatusUpdate
from smokehouse.services.quotes import QuoteService, serialize_addon, serialize_quote

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/v1/admin", tags=["admin-quotes"],
    dependencies=[Depends(require_admin)],
)


@router.get("/quotes")
async def list_quotes(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    status_filter: QuoteStatus | None = Query(None, alias="status"),
    email: str | None = Query(None, max_length=254),
    service: QuoteService = Depends(get_quote_service),
):
    quotes, total = await service.list_quotes(
        email=email, status=status_filter, limit=limit, offset=offset,
    )
    return {
        "quotes": [serialize_quote(q) for q in quotes],
        "total": total,
        "pagination": {"limit": limit, "offset": offset},
    }


@router.get("/quotes/{quote_id}")
async def get_quote(quote_id: UUID, service: QuoteService = Depends(get_quote_service)):
    quote = await service.get_quote(quote_id)
    return {"quote": serialize_quote(quote)}


@router.patch("/quotes/{quote_id}/status")
async def update_quote_status(
    quote_id: UUID,
    body: QuoteStatusUpdate,
    service: QuoteService = Depends(get_quote_service),
):
    quote = await service.update_status(quote_id, body.status, body.notes)
    return {"quote": serialize_quote(quote)}


# ─── Add-ons ─────────────────────────────────────────────────────

@router.get("/addons")
async def list_addons(service: QuoteService = Depends(get_quote_service)):
    addons = await service.list_addons(include_inactive=True)
    return {"addons": [serialize_addon(a) for a in addons]}


@router.post("/addons", status_code=status.HTTP_201_CREATED)
async def create_addon(body: AddonCreate, service: QuoteService = Depends(get_quote_service)):
    addon = await service.create_addon(body)
    return {"addon": serialize_addon(addon)}


@router.patch("/addons/{addon_id}")
async def update_addon(
    addon_id: UUID, body: AddonUpdate, service: QuoteService = Depends(get_quote_service),
):
    addon = await service.update_addon(addon_id, body)
    return {"addon": serialize_addon(addon)}


@router.delete("/addons/{addon_id}")
async def delete_addon(addon_id: UUID, service: QuoteService = Depends(get_quote_service)):
    await service.delete_addon(addon_id)
    return {"id": str(addon_id), "deleted": True}
