"""Admin Settings Routes — read/replace the storefront settings document."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from smokehouse.api.dependencies import require_admin
from smokehouse.infrastructure.database import get_db
from smokehouse.schemas.admin_settings import AdminSettings
from smokehouse.services.settings_store import load_admin_settings, save_admin_settings

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/v1/admin/settings", tags=["admin-settings"],
    dependencies=[Depends(require_admin)],
)


@router.get("")
async def get_settings_document(db: AsyncSession = Depends(get_db)):
    settings = await load_admin_settings(db)
    return {"settings": settings.model_dump(mode="json")}


@router.put("")
async def put_settings_document(body: AdminSettings, db: AsyncSession = Depends(get_db)):
    """Replace the whole document; pydantic has already range-checked every field."""
    settings = await save_admin_settings(db, body)
    return {"settings": settings.model_dump(mode="json")}
