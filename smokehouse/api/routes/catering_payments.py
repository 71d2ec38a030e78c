"""Catering Payment Routes — deposit and balance payments for approved quotes.

Invariants:
    - Automated clients never reach deposit/balance submission
    - Every response here is no-store (middleware, by path prefix)
    - A retried payment with the same reference answers 200 with is_duplicate=true
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from smokehouse.api.dependencies import (
    get_notifier, get_payment_gateways, reject_automated_clients,
)
from smokehouse.config import Settings, get_settings
from smokehouse.infrastructure.database import get_db
from smokehouse.schemas.payments import (
    BalancePaymentRequest, DepositPaymentRequest,
    PaymentIntentRequest, SendBalanceLinkRequest,
)
from smokehouse.services.catering_payments import CateringPaymentService
from smokehouse.services.notification_automation import NotificationAutomation

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/catering/payments", tags=["catering-payments"])


def get_payment_service(
    db=Depends(get_db),
    settings: Settings = Depends(get_settings),
    gateways=Depends(get_payment_gateways),
    notifier: NotificationAutomation = Depends(get_notifier),
) -> CateringPaymentService:
    return CateringPaymentService(db, settings, gateways, notifier)


@router.post("/intent")
async def create_payment_intent(
    body: PaymentIntentRequest,
    service: CateringPaymentService = Depends(get_payment_service),
):
    return await service.create_intent(body)


@router.post("/deposit", dependencies=[Depends(reject_automated_clients)])
async def pay_deposit(
    body: DepositPaymentRequest,
    service: CateringPaymentService = Depends(get_payment_service),
):
    return await service.process_deposit(body)


@router.get("/deposit")
async def get_deposit_status(
    quote_id: UUID = Query(...),
    service: CateringPaymentService = Depends(get_payment_service),
):
    return await service.deposit_status(quote_id)


@router.post("/balance", dependencies=[Depends(reject_automated_clients)])
async def pay_balance(
    body: BalancePaymentRequest,
    service: CateringPaymentService = Depends(get_payment_service),
):
    """Balance payment; requires the signed token from the balance link."""
    return await service.process_balance(body)


@router.post("/send-balance-link")
async def send_balance_link(
    body: SendBalanceLinkRequest,
    service: CateringPaymentService = Depends(get_payment_service),
):
    return await service.send_balance_link(body)
