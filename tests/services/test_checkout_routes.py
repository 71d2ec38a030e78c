"""Checkout and order route tests — payment intents, order completion, tracking, admin board.

Tests cover:
    - Payment intent amount is the server-computed cart total
    - Completion creates one order (201), decrements stock and emails a receipt
    - Re-posting the same payment_reference is an idempotent 200 with the same order
    - Gateway capturing a different amount never creates an order
    - A completed cart is frozen (409 CART_COMPLETED)
    - Customer lookup needs the matching email; admin routes need a session
    - Admin status changes follow the transition table
    - Order streams: email-gated, closed orders end at once, status changes are published
"""

import json

from sqlalchemy import select

from smokehouse.core.domain_types import PaymentProvider
from smokehouse.main import app
from smokehouse.models.order import Order
from smokehouse.models.product_variant import ProductVariant

CUSTOMER = {"email": "Sam@Example.com", "name": "Sam Smoke", "phone": "(555) 555-0100"}


async def _filled_cart(client, product, quantity: int = 2) -> str:
    cart_id = (await client.post("/api/v1/carts", json={})).json()["cart"]["id"]
    await client.post(
        f"/api/v1/carts/{cart_id}/line-items",
        json={"variant_id": str(product.variants[0].id), "quantity": quantity},
    )
    return cart_id


async def _complete(client, cart_id: str, reference: str = "pi_test_1"):
    return await client.post(
        f"/api/v1/checkout/{cart_id}/complete",
        json={
            "provider": "stripe",
            "payment_reference": reference,
            "customer": CUSTOMER,
            "fulfillment_type": "pickup",
        },
    )


async def test_payment_intent_uses_cart_total(client, seed_product, gateways):
    cart_id = await _filled_cart(client, seed_product)
    response = await client.post(
        f"/api/v1/checkout/{cart_id}/payment-intent", json={"fulfillment_type": "pickup"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["amount_cents"] == 3600 + 288
    assert body["currency"] == "USD"
    assert body["client_secret"].startswith("pi_fake_")
    assert gateways[PaymentProvider.STRIPE].intent_calls[0]["amount_cents"] == 3888


async def test_payment_intent_for_empty_cart_is_400(client):
    cart_id = (await client.post("/api/v1/carts", json={})).json()["cart"]["id"]
    response = await client.post(f"/api/v1/checkout/{cart_id}/payment-intent", json={})
    assert response.status_code == 400


async def test_complete_checkout_creates_order(client, test_session_factory, seed_product, outbox):
    cart_id = await _filled_cart(client, seed_product)
    response = await _complete(client, cart_id)
    assert response.status_code == 201
    body = response.json()
    order = body["order"]
    assert body["created"] is True
    assert order["display_id"].startswith("TB-")
    assert order["email"] == "sam@example.com"
    assert order["total_cents"] == 3888
    assert order["status"] == "pending"
    assert body["tracking_url"].endswith(f"order={order['display_id']}")

    async with test_session_factory() as session:
        variant = await session.get(ProductVariant, seed_product.variants[0].id)
        assert variant.inventory_quantity == 8
    assert outbox.sent_to("sam@example.com")


async def test_complete_checkout_replay_returns_same_order(client, test_session_factory, seed_product):
    cart_id = await _filled_cart(client, seed_product)
    first = await _complete(client, cart_id)
    replay = await _complete(client, cart_id)

    assert replay.status_code == 200
    assert replay.json()["created"] is False
    assert replay.json()["order"]["id"] == first.json()["order"]["id"]
    async with test_session_factory() as session:
        orders = (await session.execute(select(Order))).scalars().all()
        assert len(orders) == 1


async def test_completed_cart_rejects_other_reference(client, seed_product):
    cart_id = await _filled_cart(client, seed_product)
    await _complete(client, cart_id)
    response = await _complete(client, cart_id, reference="pi_other")
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "CART_COMPLETED"


async def test_completed_cart_is_frozen(client, seed_product):
    cart_id = await _filled_cart(client, seed_product)
    await _complete(client, cart_id)
    response = await client.post(
        f"/api/v1/carts/{cart_id}/line-items",
        json={"variant_id": str(seed_product.variants[0].id), "quantity": 1},
    )
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "CART_COMPLETED"


async def test_captured_amount_mismatch_creates_no_order(
    client, test_session_factory, seed_product, gateways,
):
    gateways[PaymentProvider.STRIPE].captured_cents = 100
    cart_id = await _filled_cart(client, seed_product)
    response = await _complete(client, cart_id)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "PAYMENT_AMOUNT_MISMATCH"
    async with test_session_factory() as session:
        assert (await session.execute(select(Order))).scalars().first() is None


async def test_unfinished_payment_is_rejected(client, seed_product, gateways):
    gateways[PaymentProvider.SQUARE].status = "PENDING"
    cart_id = await _filled_cart(client, seed_product)
    response = await client.post(
        f"/api/v1/checkout/{cart_id}/complete",
        json={"provider": "square", "payment_reference": "cnon:card", "customer": CUSTOMER},
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "PAYMENT_NOT_COMPLETED"


async def test_transaction_of_another_cart_is_refused(client, test_session_factory, seed_product):
    first_cart = await _filled_cart(client, seed_product)
    assert (await _complete(client, first_cart, reference="pi_shared")).status_code == 201

    second_cart = await _filled_cart(client, seed_product)
    response = await client.post(
        f"/api/v1/checkout/{second_cart}/complete",
        json={
            "provider": "stripe",
            "payment_reference": "pi_shared",
            "customer": {"email": "eve@example.com", "name": "Eve"},
        },
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "PAYMENT_MISMATCH"
    assert "sam@example.com" not in response.text
    async with test_session_factory() as session:
        assert len((await session.execute(select(Order))).scalars().all()) == 1


async def test_captured_currency_must_match(client, test_session_factory, seed_product, gateways):
    gateways[PaymentProvider.STRIPE].captured_currency = "CAD"
    cart_id = await _filled_cart(client, seed_product)
    response = await _complete(client, cart_id)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "PAYMENT_MISMATCH"
    async with test_session_factory() as session:
        assert (await session.execute(select(Order))).scalars().first() is None


async def test_declined_payment_can_be_retried_with_a_new_card(client, seed_product, gateways):
    square = gateways[PaymentProvider.SQUARE]
    square.status = "FAILED"
    cart_id = await _filled_cart(client, seed_product)
    payload = {"provider": "square", "customer": CUSTOMER}
    declined = await client.post(
        f"/api/v1/checkout/{cart_id}/complete",
        json={**payload, "payment_reference": "cnon:declined"},
    )
    assert declined.status_code == 400

    square.status = "COMPLETED"
    retried = await client.post(
        f"/api/v1/checkout/{cart_id}/complete",
        json={**payload, "payment_reference": "cnon:good-card"},
    )
    assert retried.status_code == 201
    first_key, second_key = (c["idempotency_key"] for c in square.confirm_calls)
    assert first_key != second_key
    assert all(len(key) <= 45 for key in (first_key, second_key))


async def test_delivery_requires_address(client, seed_product):
    cart_id = await _filled_cart(client, seed_product)
    response = await client.post(
        f"/api/v1/checkout/{cart_id}/complete",
        json={
            "provider": "stripe", "payment_reference": "pi_x",
            "customer": CUSTOMER, "fulfillment_type": "delivery",
        },
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


# ─── Tracking ────────────────────────────────────────────────────

async def test_lookup_requires_matching_email(client, seed_order):
    found = await client.post(
        "/api/v1/orders/lookup", json={"display_id": "tb-abc123", "email": "SAM@example.com"},
    )
    assert found.status_code == 200
    order = found.json()["order"]
    assert order["display_id"] == "TB-ABC123"
    assert order["progress"] == 20
    assert "transaction_id" not in order

    wrong = await client.post(
        "/api/v1/orders/lookup", json={"display_id": "TB-ABC123", "email": "eve@example.com"},
    )
    assert wrong.status_code == 404


async def test_admin_orders_require_session(client, seed_order):
    response = await client.get("/api/v1/admin/orders")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTHENTICATION_REQUIRED"


async def test_admin_status_flow(client, admin_headers, seed_order, outbox):
    board = await client.get("/api/v1/admin/orders", headers=admin_headers)
    assert board.status_code == 200
    assert board.json()["status_counts"]["confirmed"] == 1

    response = await client.patch(
        f"/api/v1/admin/orders/{seed_order.id}/status",
        json={"status": "preparing", "note": "On the smoker"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    order = response.json()["order"]
    assert order["status"] == "preparing"
    assert [s["status"] for s in order["next_statuses"]] == ["ready"]
    assert outbox.sent_to("sam@example.com")


async def test_admin_cannot_skip_statuses(client, admin_headers, seed_order):
    response = await client.patch(
        f"/api/v1/admin/orders/{seed_order.id}/status",
        json={"status": "delivered"},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_STATUS_TRANSITION"


# ─── Order stream ────────────────────────────────────────────────

def _sse_events(body: str) -> list[dict]:
    return [
        json.loads(line[len("data: "):])
        for line in body.split("\n\n") if line.startswith("data: ")
    ]


async def test_stream_of_closed_order_sends_snapshot_then_done(client, test_db, seed_order):
    seed_order.status = "delivered"
    await test_db.commit()

    response = await client.get(
        f"/api/v1/orders/{seed_order.id}/stream", params={"email": "SAM@example.com"},
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    events = _sse_events(response.text)
    assert [e["type"] for e in events] == ["connected", "done"]
    assert events[0]["order"]["display_id"] == "TB-ABC123"
    assert "transaction_id" not in events[0]["order"]
    assert events[1]["reason"] == "order_closed"
    assert app.state.order_events.subscriber_count() == 0


async def test_stream_requires_matching_email(client, seed_order):
    response = await client.get(
        f"/api/v1/orders/{seed_order.id}/stream", params={"email": "eve@example.com"},
    )
    assert response.status_code == 404
    assert app.state.order_events.subscriber_count() == 0


async def test_admin_status_change_reaches_order_streams(client, admin_headers, seed_order):
    order_stream = app.state.order_events.subscribe(seed_order.id)
    board_stream = app.state.order_events.subscribe()
    response = await client.patch(
        f"/api/v1/admin/orders/{seed_order.id}/status",
        json={"status": "cancelled", "note": "Sold out"},
        headers=admin_headers,
    )
    assert response.status_code == 200

    for stream in (order_stream, board_stream):
        update = stream.queue.get_nowait()
        assert update.status == "cancelled"
        assert update.is_active is False
        assert update.data["note"] == "Sold out"
        assert "transaction_id" not in update.data


async def test_rejected_transition_publishes_nothing(client, admin_headers, seed_order):
    stream = app.state.order_events.subscribe(seed_order.id)
    await client.patch(
        f"/api/v1/admin/orders/{seed_order.id}/status",
        json={"status": "delivered"},
        headers=admin_headers,
    )
    assert stream.queue.empty()


async def test_order_board_stream_requires_session(client):
    response = await client.get("/api/v1/admin/orders/stream")
    assert response.status_code == 401
    assert app.state.order_events.subscriber_count() == 0
