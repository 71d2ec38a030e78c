"""Service test fixtures — async DB, fake providers and the FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use test DB session
    - db_manager initialized for code paths that bypass get_db
    - Payment gateways and the email transport are fakes (tests/services/fake_providers.py)
    - Every client gets a fresh SecurityState: rate-limit counters, sessions and security
      events never leak between tests
    - Every client gets a fresh OrderEventBroker, so stream subscribers never leak either

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for route tests
      (PostgreSQL-specific features not exercised here)
    - Fakes injected through dependency_overrides, not monkeypatching: the routes
      resolve providers only through api/dependencies.py
    - admin_headers carries the session cookie explicitly and clears the client jar,
      so unauthenticated requests in the same test stay unauthenticated
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from smokehouse.api.dependencies import get_email_transport, get_payment_gateways
from smokehouse.config import get_settings
from smokehouse.core.domain_types import PaymentProvider, QuoteStatus
from smokehouse.db.base import Base
from smokehouse.infrastructure.database import get_db, DatabaseSessionManager
from smokehouse.models.catering_addon import CateringAddon
from smokehouse.models.catering_quote import CateringQuote
from smokehouse.models.order import Order
from smokehouse.models.product import Product
from smokehouse.models.product_variant import ProductVariant
from smokehouse.services.order_events import OrderEventBroker
from smokehouse.services.security_state import build_security_state
import smokehouse.infrastructure.database as db_module
from smokehouse.main import app

from tests.conftest import ADMIN_EMAIL, ADMIN_PASSWORD
from tests.services.fake_providers import FakeEmailTransport, FakeGateway

# 20 guests x (brisket 18.00 + mac 6.00), 10 miles at 1.50/mi, 8% tax, 30% deposit
MENU_CENTS = 48000
DELIVERY_CENTS = 1500
SUBTOTAL_CENTS = MENU_CENTS + DELIVERY_CENTS
TAX_CENTS = 3960
TOTAL_CENTS = SUBTOTAL_CENTS + TAX_CENTS
DEPOSIT_CENTS = 16038
BALANCE_CENTS = TOTAL_CENTS - DEPOSIT_CENTS


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def gateways():
    return {
        PaymentProvider.STRIPE: FakeGateway(PaymentProvider.STRIPE),
        PaymentProvider.SQUARE: FakeGateway(PaymentProvider.SQUARE),
    }


@pytest.fixture
def outbox():
    return FakeEmailTransport()


@pytest.fixture
async def client(test_engine, test_session_factory, gateways, outbox):
    """FastAPI test client with DB and provider dependencies overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateways] = lambda: gateways
    app.dependency_overrides[get_email_transport] = lambda: outbox

    original_manager = db_module.db_manager
    db_module.db_manager = DatabaseSessionManager.from_factory(
        test_engine, test_session_factory,
    )

    app.state.security = build_security_state(get_settings())
    app.state.order_events = OrderEventBroker()

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


@pytest.fixture
async def admin_headers(client):
    """Log in as the configured admin and return headers carrying the session cookie."""
    response = await client.post(
        "/api/v1/admin/auth/login",
        json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200
    cookie_name = get_settings().session_cookie_name
    set_cookie = response.headers["set-cookie"]
    token = set_cookie.split(";", 1)[0].split("=", 1)[1]
    client.cookies.clear()
    return {"cookie": f"{cookie_name}={token}"}


# ─── Seed data ───────────────────────────────────────────────────

def _product(title: str, handle: str, price_cents: int, **variant_fields) -> Product:
    product = Product(title=title, handle=handle, status="published", metadata_={})
    product.variants = [
        ProductVariant(
            title="Default",
            sku=f"{handle}-default",
            price_cents=price_cents,
            inventory_quantity=variant_fields.get("inventory_quantity", 10),
            manage_inventory=variant_fields.get("manage_inventory", True),
            allow_backorder=variant_fields.get("allow_backorder", False),
            variant_rank=0,
        ),
    ]
    return product


@pytest.fixture
async def seed_product(test_db):
    """A published retail product with one stocked variant (10 on hand, $18.00)."""
    product = _product("Brisket Plate", "brisket-plate", 1800)
    test_db.add(product)
    await test_db.commit()
    await test_db.refresh(product)
    return product


@pytest.fixture
async def seed_menu(test_db):
    """Catering menu: one protein, one side and one active add-on."""
    protein = _product("Smoked Brisket", "smoked-brisket", 1800, manage_inventory=False)
    side = _product("Mac & Cheese", "mac-and-cheese", 600, manage_inventory=False)
    addon = CateringAddon(name="Chafing Dishes", price_cents=2500, is_active=True, category="equipment")
    test_db.add_all([protein, side, addon])
    await test_db.commit()
    for row in (protein, side, addon):
        await test_db.refresh(row)
    return {"protein": protein, "side": side, "addon": addon}


def quote_selection(menu: dict) -> list[dict]:
    return [{
        "protein_id": str(menu["protein"].id),
        "side_id": str(menu["side"].id),
        "quantity": 20,
    }]


@pytest.fixture
def make_quote(test_db):
    """Factory for stored quotes with the reference pricing (total $534.60)."""
    async def _make(
        status: QuoteStatus = QuoteStatus.APPROVED,
        days_out: int = 14,
        email: str = "pat@example.com",
    ) -> CateringQuote:
        quote = CateringQuote(
            customer_email=email,
            customer_name="Pat Pitmaster",
            customer_phone="5555550100",
            event_type="corporate",
            event_date=datetime.now(timezone.utc) + timedelta(days=days_out),
            guest_count=20,
            hunger_level="normal",
            location_address="100 Main St, Troy, NY",
            distance_miles=10,
            menu_selections=[],
            add_ons=[],
            pricing={
                "subtotal_cents": SUBTOTAL_CENTS,
                "tax_cents": TAX_CENTS,
                "delivery_fee_cents": DELIVERY_CENTS,
                "total_cents": TOTAL_CENTS,
                "deposit_cents": DEPOSIT_CENTS,
                "balance_cents": BALANCE_CENTS,
            },
            status=status.value,
        )
        test_db.add(quote)
        await test_db.commit()
        await test_db.refresh(quote)
        return quote
    return _make


@pytest.fixture
async def seed_order(test_db):
    """A confirmed pickup order for lookup and admin status tests."""
    order = Order(
        display_id="TB-ABC123",
        email="sam@example.com",
        customer_name="Sam Smoke",
        status="confirmed",
        fulfillment_type="pickup",
        items=[{
            "title": "Brisket Plate", "variant_title": "Default",
            "quantity": 2, "unit_price_cents": 1800, "total_cents": 3600,
        }],
        subtotal_cents=3600,
        tax_cents=288,
        delivery_fee_cents=0,
        total_cents=3888,
        payment_provider="stripe",
        transaction_id="txn_seed",
        payment_reference="pi_seed",
    )
    test_db.add(order)
    await test_db.commit()
    await test_db.refresh(order)
    return order
