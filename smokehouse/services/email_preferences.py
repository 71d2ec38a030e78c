"""Email Preferences Service — per-recipient opt-ins, unsubscribe tokens and links.

Invariants:
    - Emails are stored lower-cased; lookups normalize the same way
    - email, unsubscribe_token and created_at are never changed by an update
    - can_receive() delegates to the pure rule in core/notification_rules.py

Design Decisions:
    - Token is the only credential for the public preference endpoints: whoever holds
      the link from an email may manage that address
"""

import logging
from urllib.parse import quote

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from smokehouse.config import Settings
from smokehouse.core.domain_types import PreferenceCategory
from smokehouse.core.errors import ResourceNotFoundError
from smokehouse.core.notification_rules import can_receive as preference_allows
from smokehouse.models.email_preference import EmailPreference, PREFERENCE_FLAGS

logger = logging.getLogger(__name__)


def serialize_preferences(pref: EmailPreference) -> dict:
    return {
        "email": pref.email,
        **pref.flags(),
        "created_at": pref.created_at.isoformat(),
        "updated_at": pref.updated_at.isoformat(),
    }


class EmailPreferenceService:
    """CRUD over email_preferences plus the preference gate."""

    def __init__(self, db: AsyncSession, settings: Settings):
        self.db = db
        self.settings = settings

    async def get_preferences(self, email: str) -> EmailPreference | None:
        result = await self.db.execute(
            select(EmailPreference).where(EmailPreference.email == email.strip().lower()),
        )
        return result.scalar_one_or_none()

    async def get_by_token(self, token: str) -> EmailPreference:
        result = await self.db.execute(
            select(EmailPreference).where(EmailPreference.unsubscribe_token == token),
        )
        pref = result.scalar_one_or_none()
        if pref is None:
            raise ResourceNotFoundError("Email preferences", "token")
        return pref

    async def set_preferences(self, email: str, **flags: bool) -> EmailPreference:
        """Create with defaults + overrides, or partially update an existing row."""
        updates = {k: v for k, v in flags.items() if k in PREFERENCE_FLAGS and v is not None}
        pref = await self.get_preferences(email)
        if pref is None:
            pref = EmailPreference(email=email.strip().lower(), **updates)
            self.db.add(pref)
        else:
            for name, value in updates.items():
                setattr(pref, name, value)
        await self.db.commit()
        await self.db.refresh(pref)
        return pref

    async def ensure_preferences(self, email: str) -> EmailPreference:
        pref = await self.get_preferences(email)
        if pref is not None:
            return pref
        return await self.set_preferences(email)

    async def can_receive(self, email: str, category: PreferenceCategory | None) -> bool:
        pref = await self.get_preferences(email)
        return preference_allows(pref.flags() if pref else None, category)

    async def unsubscribe_from_category(
        self, token: str, category: PreferenceCategory,
    ) -> EmailPreference:
        pref = await self.get_by_token(token)
        setattr(pref, category.value, False)
        await self.db.commit()
        await self.db.refresh(pref)
        logger.info(f"Unsubscribed from {category.value}")
        return pref

    async def unsubscribe_all(self, token: str) -> EmailPreference:
        pref = await self.get_by_token(token)
        pref.unsubscribed_all = True
        pref.marketing = False
        pref.newsletters = False
        pref.event_reminders = False
        await self.db.commit()
        await self.db.refresh(pref)
        logger.info("Unsubscribed from all optional email")
        return pref

    async def update_by_token(self, token: str, **flags: bool) -> EmailPreference:
        pref = await self.get_by_token(token)
        return await self.set_preferences(pref.email, **flags)

    def unsubscribe_url(self, token: str) -> str:
        return f"{self._base()}/email-preferences/unsubscribe?token={quote(token)}"

    def preferences_url(self, token: str) -> str:
        return f"{self._base()}/email-preferences?token={quote(token)}"

    def _base(self) -> str:
        return self.settings.public_base_url.rstrip("/")
