"""Email Preference Schemas — token-authenticated preference edits."""

from pydantic import BaseModel, Field

from smokehouse.core.domain_types import PreferenceCategory


class PreferenceFlags(BaseModel):
    """Partial flag update: omitted flags keep their stored value."""
    quotes: bool | None = None
    payments: bool | None = None
    order_updates: bool | None = None
    event_reminders: bool | None = None
    marketing: bool | None = None
    newsletters: bool | None = None
    unsubscribed_all: bool | None = None


class PreferencesUpdate(BaseModel):
    token: str = Field(min_length=1, max_length=64)
    flags: PreferenceFlags


class UnsubscribeRequest(BaseModel):
    token: str = Field(min_length=1, max_length=64)
    category: PreferenceCategory | None = None
