"""API Dependencies — FastAPI providers for settings, clients, services and admin auth.

Invariants:
    - Payment gateways and the email transport are created once per app (app.state) and
      closed in the lifespan; tests replace them through dependency_overrides
    - require_admin raises 401 AUTHENTICATION_REQUIRED and sets the renewed cookie when due
    - Automated clients (empty user agent or "bot") never reach payment routes

Design Decisions:
    - Lazy app.state initialization: ASGITransport in tests does not run the lifespan,
      so every provider builds what it needs on first use
"""

import hmac
import logging

from fastapi import Depends, Header, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from smokehouse.config import Settings, get_settings
from smokehouse.core.domain_types import PaymentProvider, SecurityEventType, SecuritySeverity
from smokehouse.core.errors import AccessDeniedError, AuthenticationError
from smokehouse.core.rate_limit import client_ip
from smokehouse.core.session_tokens import SessionData, device_fingerprint, parse_cookies
from smokehouse.infrastructure.database import get_db
from smokehouse.infrastructure.email_transport import EmailTransport, ResendTransport
from smokehouse.infrastructure.payment_gateways import (
    PaymentGateway, SquareGateway, StripeGateway,
)
from smokehouse.services.admin_auth import AdminAuthService, ClientInfo
from smokehouse.services.email_service import EmailService
from smokehouse.services.notification_automation import NotificationAutomation
from smokehouse.services.order_events import OrderEventBroker
from smokehouse.services.security_state import SecurityState, build_security_state

logger = logging.getLogger(__name__)


# ─── App-scoped singletons ───────────────────────────────────────

def get_security(request: Request) -> SecurityState:
    state = getattr(request.app.state, "security", None)
    if state is None:
        state = build_security_state(get_settings())
        request.app.state.security = state
    return state


def get_order_events(request: Request) -> OrderEventBroker:
    broker = getattr(request.app.state, "order_events", None)
    if broker is None:
        broker = OrderEventBroker(get_settings().order_stream_queue_size)
        request.app.state.order_events = broker
    return broker


def build_payment_gateways(settings: Settings) -> dict[PaymentProvider, PaymentGateway]:
    retry = {
        "max_retries": settings.gateway_max_retries,
        "base_delay_ms": settings.gateway_base_delay_ms,
        "max_delay_ms": settings.gateway_max_delay_ms,
    }
    return {
        PaymentProvider.STRIPE: StripeGateway(
            settings.stripe_secret_key, settings.stripe_api_version, **retry,
        ),
        PaymentProvider.SQUARE: SquareGateway(
            settings.square_access_token,
            settings.square_location_id,
            settings.square_base_url,
            settings.square_api_version,
            timeout_seconds=settings.gateway_timeout_seconds,
            **retry,
        ),
    }


def build_email_transport(settings: Settings) -> ResendTransport:
    return ResendTransport(
        settings.resend_api_key,
        base_url=settings.resend_api_url,
        timeout_seconds=settings.gateway_timeout_seconds,
        max_retries=settings.gateway_max_retries,
        base_delay_ms=settings.gateway_base_delay_ms,
        max_delay_ms=settings.gateway_max_delay_ms,
    )


def get_payment_gateways(request: Request) -> dict[PaymentProvider, PaymentGateway]:
    gateways = getattr(request.app.state, "payment_gateways", None)
    if gateways is None:
        gateways = build_payment_gateways(get_settings())
        request.app.state.payment_gateways = gateways
    return gateways


def get_email_transport(request: Request) -> EmailTransport:
    transport = getattr(request.app.state, "email_transport", None)
    if transport is None:
        transport = build_email_transport(get_settings())
        request.app.state.email_transport = transport
    return transport


# ─── Request-scoped services ─────────────────────────────────────

def get_email_service(
    transport: EmailTransport = Depends(get_email_transport),
    settings: Settings = Depends(get_settings),
) -> EmailService:
    return EmailService(transport, settings)


def get_notifier(
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
    settings: Settings = Depends(get_settings),
) -> NotificationAutomation:
    return NotificationAutomation(db, email_service, settings)


def get_client_info(
    request: Request, settings: Settings = Depends(get_settings),
) -> ClientInfo:
    user_agent = request.headers.get("user-agent", "")
    return ClientInfo(
        ip=client_ip(request.headers, request.client.host if request.client else None),
        user_agent=user_agent,
        fingerprint=device_fingerprint(
            settings.session_secret,
            user_agent,
            request.headers.get("accept-language", ""),
            request.headers.get("accept-encoding", ""),
        ),
    )


def get_admin_auth(
    settings: Settings = Depends(get_settings),
    security: SecurityState = Depends(get_security),
) -> AdminAuthService:
    return AdminAuthService(settings, security)


def session_token(request: Request, settings: Settings = Depends(get_settings)) -> str | None:
    return parse_cookies(request.headers.get("cookie")).get(settings.session_cookie_name)


# ─── Guards ──────────────────────────────────────────────────────

def require_admin(
    response: Response,
    token: str | None = Depends(session_token),
    client: ClientInfo = Depends(get_client_info),
    auth: AdminAuthService = Depends(get_admin_auth),
) -> SessionData:
    session, renewed = auth.authenticate(token, client)
    if renewed:
        response.headers.append("set-cookie", auth.session_cookie(renewed))
    return session


def reject_automated_clients(
    request: Request,
    client: ClientInfo = Depends(get_client_info),
    security: SecurityState = Depends(get_security),
) -> None:
    user_agent = client.user_agent.strip()
    if user_agent and "bot" not in user_agent.lower():
        return
    security.monitor.log_event(
        SecurityEventType.SUSPICIOUS_REQUEST, SecuritySeverity.MEDIUM,
        client_ip=client.ip, user_agent=user_agent or None,
        details={"reason": "automated_client", "path": request.url.path},
    )
    raise AccessDeniedError("Automated requests are not allowed")


def require_cron_secret(
    x_cron_secret: str | None = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    if not x_cron_secret or not hmac.compare_digest(
        x_cron_secret.encode(), settings.cron_secret.encode(),
    ):
        raise AuthenticationError("Invalid cron secret", code="INVALID_CRON_SECRET")
