"""HTTP middleware tests — security headers, scan blocking, API rate limit, cache headers.

Tests cover:
    - Every response carries the security headers, error responses included
    - Scanner paths and user agents are refused with 403 and logged
    - Percent-encoded markup in the path or query string is refused as well
    - Over the per-route API limit → 429 with Retry-After; health checks exempt
    - GET responses advertise their cache strategy; payment/admin paths are no-store
    - The cache-policy document is served as-is
"""

from smokehouse.core.rate_limit import FixedWindowRateLimiter
from smokehouse.main import app


async def test_security_headers_on_success_and_error(client):
    ok = await client.get("/api/v1/health/")
    missing = await client.get("/api/v1/store/products/unknown-handle")
    for response in (ok, missing):
        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["x-frame-options"] == "DENY"
        assert response.headers["referrer-policy"] == "strict-origin-when-cross-origin"


async def test_scanner_path_is_blocked(client):
    response = await client.get("/wp-admin/setup-config.php")
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "ACCESS_DENIED"
    assert response.headers["x-frame-options"] == "DENY"

    events = app.state.security.monitor.events
    assert [e.type.value for e in events] == ["security_scan_detected"]


async def test_scanner_user_agent_is_blocked(client):
    response = await client.get("/api/v1/store/products", headers={"user-agent": "sqlmap/1.7"})
    assert response.status_code == 403


async def test_encoded_script_in_path_or_query_is_blocked(client):
    in_path = await client.get("/menu/%3Cscript%3Ealert(1)%3C/script%3E")
    assert in_path.status_code == 403

    in_query = await client.get(
        "/api/v1/store/products", params={"q": "<script>alert(1)</script>"},
    )
    assert in_query.status_code == 403

    plain = await client.get("/api/v1/store/products", params={"q": "mac & cheese"})
    assert plain.status_code == 200


async def test_api_rate_limit(client):
    app.state.security.api_limiter = FixedWindowRateLimiter(2, 60)
    for _ in range(2):
        assert (await client.get("/api/v1/store/products")).status_code == 200

    limited = await client.get("/api/v1/store/products")
    assert limited.status_code == 429
    assert limited.json()["error"]["code"] == "RATE_LIMIT_EXCEEDED"
    assert 0 < int(limited.headers["retry-after"]) <= 60

    # counted per method and path
    assert (await client.get("/api/v1/store/categories")).status_code == 200
    events = [e.type.value for e in app.state.security.monitor.events]
    assert events == ["rate_limit_exceeded"]


async def test_health_is_not_rate_limited(client):
    app.state.security.api_limiter = FixedWindowRateLimiter(1, 60)
    for _ in range(3):
        assert (await client.get("/api/v1/health/")).status_code == 200


async def test_api_get_is_network_first(client):
    response = await client.get("/api/v1/store/products")
    assert response.headers["x-cache-strategy"] == "network-first"
    assert response.headers["cache-control"] == "no-cache"


async def test_payment_and_admin_paths_are_no_store(client, make_quote):
    quote = await make_quote()
    payment = await client.get(f"/api/v1/catering/payments/deposit?quote_id={quote.id}")
    assert payment.headers["cache-control"] == "no-store"

    admin = await client.get("/api/v1/admin/orders")
    assert admin.status_code == 401
    assert admin.headers["cache-control"] == "no-store"


async def test_cache_policy_document(client):
    response = await client.get("/api/v1/cache-policy")
    assert response.status_code == 200
    body = response.json()
    assert body["version"] == "troy-bbq-v1.5.0"
    assert body["rules"][0]["strategy"] == "network-first"
    assert "/offline.html" in body["precache"]


async def test_request_id_is_echoed_or_generated(client):
    echoed = await client.get("/api/v1/health/", headers={"x-request-id": "req-42"})
    assert echoed.headers["x-request-id"] == "req-42"

    generated = await client.get("/api/v1/health/")
    assert len(generated.headers["x-request-id"]) == 32
