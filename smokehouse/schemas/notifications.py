"""Notification Schemas — one business event to be mailed now or later."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator

from smokehouse.core.domain_types import EmailPriority, NotificationTrigger


class NotificationEvent(BaseModel):
    trigger: NotificationTrigger
    recipient_email: str = Field(min_length=3, max_length=254)
    data: dict[str, Any] = Field(default_factory=dict)
    priority: EmailPriority = EmailPriority.NORMAL
    schedule_for: datetime | None = None

    @field_validator("schedule_for")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v
