"""AdminSettingsRecord ORM — single-row JSON configuration store.

Invariants:
    - At most one row (id = 1); config validated by schemas/admin_settings.AdminSettings
      on every write
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, JSON
from sqlalchemy.orm import Mapped, mapped_column

from smokehouse.db.base import Base

SETTINGS_ROW_ID = 1


class AdminSettingsRecord(Base):
    __tablename__ = "admin_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=SETTINGS_ROW_ID)
    config: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
