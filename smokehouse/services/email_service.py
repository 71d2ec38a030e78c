"""Email Service — render a typed message and hand it to the transport.

Invariants:
    - send_email never raises for delivery failures: it returns EmailResult(success=False)
    - Every outgoing message carries X-Priority, X-Email-Type and X-Mailer headers
    - send_bulk is sequential with a fixed delay between messages (provider rate limits)

Design Decisions:
    - Rendering (core/email_templates.py) and transport (infrastructure/email_transport.py)
      are injected seams; this module only assembles the provider payload
    - verify_domain reports "failed" instead of raising: it backs an admin diagnostics page
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from smokehouse.config import Settings
from smokehouse.core.domain_types import EmailPriority, EmailType
from smokehouse.core.email_templates import EmailBrand, render
from smokehouse.core.errors import EmailDeliveryError
from smokehouse.core.payment_token import hash_sensitive
from smokehouse.infrastructure.email_transport import EmailTransport

logger = logging.getLogger(__name__)

MAILER = "Troy BBQ Email Service"

PRIORITY_HEADERS = {
    EmailPriority.URGENT: "1",
    EmailPriority.HIGH: "2",
    EmailPriority.NORMAL: "3",
    EmailPriority.LOW: "4",
}


@dataclass
class EmailMessage:
    to: list[str]
    subject: str
    email_type: EmailType
    data: dict[str, Any] = field(default_factory=dict)
    priority: EmailPriority = EmailPriority.NORMAL
    reply_to: str | None = None
    cc: list[str] | None = None
    bcc: list[str] | None = None


@dataclass(frozen=True)
class EmailResult:
    success: bool
    message_id: str | None = None
    error: str | None = None
    error_type: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message_id": self.message_id,
            "error": self.error,
            "timestamp": self.timestamp.isoformat(),
        }


class EmailService:
    """Renders and sends transactional email through the configured transport."""

    def __init__(self, transport: EmailTransport, settings: Settings):
        self.transport = transport
        self.settings = settings

    @property
    def brand(self) -> EmailBrand:
        return EmailBrand(
            business_name=self.settings.business_name,
            support_email=self.settings.support_email,
            support_phone=self.settings.support_phone,
            website_url=self.settings.public_base_url,
        )

    def build_payload(self, message: EmailMessage) -> dict[str, Any]:
        html, text = render(message.email_type, message.data, self.brand)
        payload: dict[str, Any] = {
            "from": self.settings.email_from_address,
            "to": message.to,
            "subject": message.subject,
            "html": html,
            "text": text,
            "reply_to": message.reply_to or self.settings.email_reply_to,
            "headers": {
                "X-Priority": PRIORITY_HEADERS[message.priority],
                "X-Email-Type": message.email_type.value,
                "X-Mailer": MAILER,
            },
        }
        if message.cc:
            payload["cc"] = message.cc
        if message.bcc:
            payload["bcc"] = message.bcc
        return payload

    async def send_email(self, message: EmailMessage) -> EmailResult:
        try:
            message_id = await self.transport.send(self.build_payload(message))
        except EmailDeliveryError as e:
            logger.error(
                f"Email sending failed: {e.message}",
                extra={
                    "error_code": e.code,
                    "recipient": self._recipient_ref(message),
                },
            )
            return EmailResult(False, error=e.message, error_type=e.error_type)
        logger.info(
            f"Email sent: {message.email_type.value}",
            extra={"recipient": self._recipient_ref(message)},
        )
        return EmailResult(True, message_id=message_id)

    async def send_bulk(
        self, messages: list[EmailMessage], delay_ms: int = 100,
    ) -> list[EmailResult]:
        results: list[EmailResult] = []
        for index, message in enumerate(messages):
            results.append(await self.send_email(message))
            if delay_ms > 0 and index < len(messages) - 1:
                await asyncio.sleep(delay_ms / 1000)
        return results

    async def verify_domain(self) -> dict[str, Any]:
        domain = self.settings.email_domain
        try:
            records = await self.transport.domain_records(domain)
        except EmailDeliveryError as e:
            logger.error(f"Domain verification failed: {e.message}", extra={"provider": "resend"})
            return {
                "domain": domain, "dkim": False, "spf": False, "dmarc": False,
                "status": "failed", "error": e.message,
            }

        def verified(kind: str) -> bool:
            matching = [r for r in records if r.record.upper() == kind]
            return bool(matching) and all(r.status == "verified" for r in matching)

        dkim, spf = verified("DKIM"), verified("SPF")
        dmarc = any(
            r.name.lower().startswith("_dmarc") and r.status == "verified" for r in records
        )
        return {
            "domain": domain,
            "dkim": dkim,
            "spf": spf,
            "dmarc": dmarc,
            "status": "verified" if dkim and spf else "pending",
        }

    def _recipient_ref(self, message: EmailMessage) -> str:
        return hash_sensitive(self.settings.session_secret, ",".join(message.to))
