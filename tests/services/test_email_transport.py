"""Resend Email Transport — tests against httpx.MockTransport.

Tests cover:
    - successful send returns the provider id, bearer key forwarded
    - 429 and 5xx retried; exhausted retries keep the error_type
    - 4xx fails at once with the provider's message
    - missing API key never reaches the network
    - domain records looked up by domain name
"""

import httpx
import pytest

from smokehouse.core.errors import EmailDeliveryError
from smokehouse.infrastructure.email_transport import ResendTransport

PAYLOAD = {"from": "Troy BBQ <orders@troybbq.com>", "to": ["sam@example.com"], "subject": "Hi"}


class ResendStub:
    def __init__(self, *responses: httpx.Response):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


def _transport(stub: ResendStub, api_key: str = "re_test") -> ResendTransport:
    return ResendTransport(
        api_key, base_url="https://resend.test", max_retries=2,
        base_delay_ms=0, max_delay_ms=0, transport=httpx.MockTransport(stub),
    )


async def test_send_returns_message_id():
    stub = ResendStub(httpx.Response(200, json={"id": "msg_1"}))
    transport = _transport(stub)
    assert await transport.send(PAYLOAD) == "msg_1"
    await transport.aclose()
    assert stub.requests[0].headers["authorization"] == "Bearer re_test"
    assert stub.requests[0].url.path == "/emails"


async def test_rate_limit_and_server_errors_are_retried():
    stub = ResendStub(
        httpx.Response(429), httpx.Response(502), httpx.Response(200, json={"id": "msg_2"}),
    )
    transport = _transport(stub)
    assert await transport.send(PAYLOAD) == "msg_2"
    await transport.aclose()
    assert len(stub.requests) == 3


async def test_exhausted_retries_keep_error_type():
    stub = ResendStub(httpx.Response(429))
    transport = _transport(stub)
    with pytest.raises(EmailDeliveryError) as exc:
        await transport.send(PAYLOAD)
    await transport.aclose()
    assert exc.value.error_type == "rate_limit"
    assert len(stub.requests) == 3


async def test_client_error_is_not_retried():
    stub = ResendStub(httpx.Response(422, json={"name": "validation_error", "message": "Invalid `to`"}))
    transport = _transport(stub)
    with pytest.raises(EmailDeliveryError) as exc:
        await transport.send(PAYLOAD)
    await transport.aclose()
    assert len(stub.requests) == 1
    assert exc.value.error_type == "client_error"
    assert "Invalid `to`" in exc.value.message


async def test_missing_api_key_is_not_configured():
    stub = ResendStub(httpx.Response(200, json={"id": "never"}))
    transport = _transport(stub, api_key="")
    with pytest.raises(EmailDeliveryError) as exc:
        await transport.send(PAYLOAD)
    await transport.aclose()
    assert exc.value.error_type == "not_configured"
    assert stub.requests == []


async def test_domain_records_for_registered_domain():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/domains":
            return httpx.Response(200, json={"data": [
                {"id": "d_other", "name": "example.org"},
                {"id": "d_1", "name": "troybbq.com"},
            ]})
        assert request.url.path == "/domains/d_1"
        return httpx.Response(200, json={"records": [
            {"record": "SPF", "name": "send", "status": "verified"},
            {"record": "DKIM", "name": "resend._domainkey", "status": "pending"},
        ]})

    transport = ResendTransport(
        "re_test", base_url="https://resend.test", transport=httpx.MockTransport(handler),
    )
    records = await transport.domain_records("troybbq.com")
    await transport.aclose()
    assert [(r.record, r.status) for r in records] == [("SPF", "verified"), ("DKIM", "pending")]


async def test_unknown_domain_is_reported():
    stub = ResendStub(httpx.Response(200, json={"data": []}))
    transport = _transport(stub)
    with pytest.raises(EmailDeliveryError) as exc:
        await transport.domain_records("troybbq.com")
    await transport.aclose()
    assert exc.value.error_type == "domain_not_found"
