"""Email Preference Routes — token-authenticated preference management.

Invariants:
    - The unsubscribe token from an email link is the only credential
    - Unknown token → 404
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from smokehouse.config import Settings, get_settings
from smokehouse.infrastructure.database import get_db
from smokehouse.schemas.email_preferences import PreferencesUpdate, UnsubscribeRequest
from smokehouse.services.email_preferences import (
    EmailPreferenceService, serialize_preferences,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/email-preferences", tags=["email-preferences"])


def get_preference_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> EmailPreferenceService:
    return EmailPreferenceService(db, settings)


@router.get("")
async def get_preferences(
    token: str = Query(..., min_length=1, max_length=64),
    service: EmailPreferenceService = Depends(get_preference_service),
):
    pref = await service.get_by_token(token)
    return {"preferences": serialize_preferences(pref)}


@router.put("")
async def update_preferences(
    body: PreferencesUpdate,
    service: EmailPreferenceService = Depends(get_preference_service),
):
    flags = body.flags.model_dump(exclude_none=True)
    pref = await service.update_by_token(body.token, **flags)
    return {"preferences": serialize_preferences(pref)}


@router.post("/unsubscribe")
async def unsubscribe(
    body: UnsubscribeRequest,
    service: EmailPreferenceService = Depends(get_preference_service),
):
    """Drop one category, or everything optional when no category is given."""
    if body.category is None:
        pref = await service.unsubscribe_all(body.token)
    else:
        pref = await service.unsubscribe_from_category(body.token, body.category)
    return {"success": True, "preferences": serialize_preferences(pref)}
