"""Admin Settings Store — load/save the single-row settings document.

Invariants:
    - A missing row reads as AdminSettings() defaults
    - Writes always store the fully validated document (model_dump mode="json")
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from smokehouse.models.admin_settings import AdminSettingsRecord, SETTINGS_ROW_ID
from smokehouse.schemas.admin_settings import AdminSettings

logger = logging.getLogger(__name__)


async def load_admin_settings(db: AsyncSession) -> AdminSettings:
    record = await db.get(AdminSettingsRecord, SETTINGS_ROW_ID)
    if record is None or not record.config:
        return AdminSettings()
    return AdminSettings.model_validate(record.config)


async def save_admin_settings(db: AsyncSession, settings: AdminSettings) -> AdminSettings:
    config = settings.model_dump(mode="json")
    record = await db.get(AdminSettingsRecord, SETTINGS_ROW_ID)
    if record is None:
        db.add(AdminSettingsRecord(id=SETTINGS_ROW_ID, config=config))
    else:
        record.config = config
    await db.commit()
    logger.info("Admin settings updated")
    return settings
