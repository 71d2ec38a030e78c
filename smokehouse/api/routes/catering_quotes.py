"""Catering Quote Routes — public estimates, quote submission and add-on listing.

Invariants:
    - Prices are always computed server-side from DB menu/add-on prices and admin settings
    - Submitted quotes start in `pending`; status changes live under /admin/quotes
    - delivery-check estimates distance from the address alone; an address outside the
      radius is reported (is_within_radius false), not rejected
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from smokehouse.api.dependencies import get_notifier
from smokehouse.infrastructure.database import get_db
from smokehouse.schemas.catering import DeliveryCheck, QuoteCreate, QuoteEstimate
from smokehouse.services.notification_automation import NotificationAutomation
from smokehouse.services.quotes import QuoteService, serialize_addon, serialize_quote

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/catering", tags=["catering"])


def get_quote_service(
    db: AsyncSession = Depends(get_db),
    notifier: NotificationAutomation = Depends(get_notifier),
) -> QuoteService:
    return QuoteService(db, notifier)


@router.post("/quotes/estimate")
async def estimate_quote(body: QuoteEstimate, service: QuoteService = Depends(get_quote_service)):
    """Detailed pricing for a prospective quote; nothing is stored."""
    return await service.estimate(body)


@router.post("/delivery-check")
async def check_delivery(body: DeliveryCheck, service: QuoteService = Depends(get_quote_service)):
    """Estimated distance and driving time for an event address; nothing is stored."""
    result = await service.check_delivery(body.address)
    return {"delivery": result.to_dict()}


@router.post("/quotes", status_code=status.HTTP_201_CREATED)
async def create_quote(body: QuoteCreate, service: QuoteService = Depends(get_quote_service)):
    quote = await service.create_quote(body)
    return {"quote": serialize_quote(quote)}


@router.get("/quotes/{quote_id}")
async def get_quote(quote_id: UUID, service: QuoteService = Depends(get_quote_service)):
    quote = await service.get_quote(quote_id)
    return {"quote": serialize_quote(quote)}


@router.get("/addons")
async def list_addons(service: QuoteService = Depends(get_quote_service)):
    addons = await service.list_addons()
    return {"addons": [serialize_addon(a) for a in addons]}
