"""Smokehouse Storefront API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map StorefrontError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database, payment gateways, email transport, security state and the order event
      broker are created in the lifespan and released on shutdown

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Insecure development defaults are logged loudly at startup rather than refused,
      so local runs work without secrets
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from smokehouse.api.dependencies import build_email_transport, build_payment_gateways
from smokehouse.api.error_handlers import register_error_handlers
from smokehouse.api.middleware import register_middleware
from smokehouse.api.routes import (
    admin_auth, admin_catalog, admin_email_system, admin_orders, admin_quotes,
    admin_security, admin_settings, admin_uploads, cache_policy, carts,
    catering_payments, catering_quotes, checkout, email_preferences, health,
    notifications, orders, store,
)
from smokehouse.config import get_settings
from smokehouse.infrastructure import database
from smokehouse.infrastructure.observability import setup_logging
from smokehouse.services.order_events import OrderEventBroker
from smokehouse.services.security_state import build_security_state

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    for warning in settings.security_warnings():
        logger.warning(f"Insecure configuration: {warning}")
    database.init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    app.state.security = build_security_state(settings)
    app.state.order_events = OrderEventBroker(settings.order_stream_queue_size)
    app.state.payment_gateways = build_payment_gateways(settings)
    app.state.email_transport = build_email_transport(settings)
    logger.info(f"Smokehouse API started ({settings.environment})")
    yield
    logger.info("Smokehouse API shutting down")
    for gateway in app.state.payment_gateways.values():
        aclose = getattr(gateway, "aclose", None)
        if aclose is not None:
            await aclose()
    await app.state.email_transport.aclose()
    if database.db_manager is not None:
        await database.db_manager.close()


app = FastAPI(
    title="Smokehouse Storefront API", version="1.0.0", lifespan=lifespan,
)

# CORS origins come from settings
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_middleware(app)
register_error_handlers(app)

# Routes
app.include_router(health.router)
app.include_router(cache_policy.router)
app.include_router(store.router)
app.include_router(carts.router)
app.include_router(checkout.router)
app.include_router(orders.router)
app.include_router(catering_quotes.router)
app.include_router(catering_payments.router)
app.include_router(email_preferences.router)
app.include_router(notifications.router)
app.include_router(admin_auth.router)
app.include_router(admin_catalog.router)
app.include_router(admin_quotes.router)
app.include_router(admin_orders.router)
app.include_router(admin_settings.router)
app.include_router(admin_uploads.router)
app.include_router(admin_security.router)
app.include_router(admin_email_system.router)

# Storefront build, when present; mounted AFTER API routes so /api/v1/* takes precedence
if os.path.isdir("static"):
    app.mount("/", StaticFiles(directory="static", html=True), name="static")
