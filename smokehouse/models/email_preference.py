"""EmailPreference ORM — per-recipient opt-in flags and unsubscribe token.

Invariants:
    - email unique (stored lower-cased); unsubscribe_token unique, random uuid4
    - Transactional categories default on, marketing/newsletters default off
    - email, unsubscribe_token and created_at never change after insert
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from smokehouse.db.base import Base

PREFERENCE_FLAGS = (
    "quotes", "payments", "order_updates", "event_reminders",
    "marketing", "newsletters", "unsubscribed_all",
)


class EmailPreference(Base):
    __tablename__ = "email_preferences"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    quotes: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    payments: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    order_updates: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    event_reminders: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    marketing: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    newsletters: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    unsubscribed_all: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    unsubscribe_token: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True, index=True,
        default=lambda: str(uuid.uuid4()),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def flags(self) -> dict[str, bool]:
        return {name: getattr(self, name) for name in PREFERENCE_FLAGS}
