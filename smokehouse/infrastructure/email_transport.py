"""Resend Email Transport — HTTP client for the Resend API with retry and error mapping.

Invariants:
    - 429 / 5xx / connection errors retried with exponential backoff (±25% jitter)
    - 4xx (except 429) fails immediately
    - Every failure surfaces as EmailDeliveryError carrying an error_type
    - An empty API key never reaches the network: send fails with error_type "not_configured"

Design Decisions:
    - Transport only moves payloads; rendering and preference checks live in
      services/email_service.py so tests can fake this class alone
    - httpx over the Resend SDK: the API is three endpoints and httpx is already in the stack
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from smokehouse.core.errors import EmailDeliveryError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DomainRecord:
    record: str
    name: str
    status: str


class EmailTransport(Protocol):
    async def send(self, payload: dict[str, Any]) -> str: ...

    async def domain_records(self, domain: str) -> list[DomainRecord]: ...


class ResendTransport:
    """POST /emails, GET /domains, GET /domains/{id}."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.resend.com",
        timeout_seconds: float = 30,
        max_retries: int = 3,
        base_delay_ms: int = 500,
        max_delay_ms: int = 10_000,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
            transport=transport,
            headers={"Authorization": f"Bearer {api_key}"},
        )

    async def send(self, payload: dict[str, Any]) -> str:
        """Send one message; returns the provider message id."""
        data = await self._request("POST", "/emails", json=payload)
        return str(data.get("id", ""))

    async def domain_records(self, domain: str) -> list[DomainRecord]:
        listing = await self._request("GET", "/domains")
        match = next(
            (d for d in listing.get("data", []) if d.get("name") == domain), None,
        )
        if match is None:
            raise EmailDeliveryError(f"Domain {domain} is not registered", "domain_not_found")
        detail = await self._request("GET", f"/domains/{match['id']}")
        return [
            DomainRecord(
                record=str(r.get("record", "")),
                name=str(r.get("name", "")),
                status=str(r.get("status", "")),
            )
            for r in detail.get("records", [])
        ]

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        if not self.api_key:
            raise EmailDeliveryError("Resend API key is not configured", "not_configured")
        for attempt in range(self.max_retries + 1):
            try:
                response = await self._client.request(method, path, **kwargs)
            except (httpx.ConnectError, httpx.TimeoutException) as e:
                await self._retry_or_raise(attempt, "connection_error", str(e))
                continue
            if response.status_code == 429 or response.status_code >= 500:
                error_type = "rate_limit" if response.status_code == 429 else "server_error"
                await self._retry_or_raise(attempt, error_type, f"HTTP {response.status_code}")
                continue
            if response.status_code >= 400:
                message = _error_message(response)
                raise EmailDeliveryError(message, "client_error")
            return response.json()
        raise EmailDeliveryError("Retry loop exhausted", "unknown")

    async def _retry_or_raise(self, attempt: int, error_type: str, message: str) -> None:
        if attempt >= self.max_retries:
            raise EmailDeliveryError(
                f"Transient failure after {self.max_retries} retries: {message}", error_type,
            )
        delay = self._backoff(attempt)
        logger.warning(
            f"Resend {error_type}, retry after {delay}ms",
            extra={"provider": "resend", "attempt": attempt + 1},
        )
        await asyncio.sleep(delay / 1000)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311

    async def aclose(self) -> None:
        await self._client.aclose()


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    return str(body.get("message") or body.get("name") or f"HTTP {response.status_code}")
