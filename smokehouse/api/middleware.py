"""HTTP Middleware — scan blocking, API rate limiting, security and cache headers.

Invariants:
    - Requests matching scanner paths or user agents get 403 before routing
    - /api/ requests (health checks excepted) are counted per METHOD:path:ip;
      over the limit → 429 with Retry-After and a rate_limit_exceeded event
    - Every response carries the security headers, including the 403/429 above
    - Every response echoes X-Request-ID (the caller's, or a fresh one) and log lines
      emitted while handling it carry the same id
    - GET responses get X-Cache-Strategy and a Cache-Control from core/cache_policy.py
      unless the handler set one; payment and admin API paths are always no-store

Design Decisions:
    - Errors here are rendered directly: exceptions raised in HTTP middleware bypass
      the app's exception handlers
"""

import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from smokehouse.api.dependencies import get_security
from smokehouse.config import get_settings
from smokehouse.core.cache_policy import (
    cache_control_header, determine_strategy, is_no_store_path,
)
from smokehouse.core.domain_types import SecurityEventType, SecuritySeverity
from smokehouse.core.errors import AccessDeniedError, RateLimitExceededError
from smokehouse.core.rate_limit import client_ip, request_key
from smokehouse.infrastructure.observability import request_id_var

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}
RATE_LIMIT_EXEMPT_PREFIXES = ("/api/v1/health",)


def register_middleware(app: FastAPI) -> None:
    """Register the storefront HTTP middleware on the FastAPI app."""

    @app.middleware("http")
    async def storefront_guard(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        token = request_id_var.set(request_id)
        try:
            response = await _guard(request) or await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = request_id
        _apply_cache_headers(request, response)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


async def _guard(request: Request) -> JSONResponse | None:
    security = get_security(request)
    settings = get_settings()
    ip = client_ip(request.headers, request.client.host if request.client else None)
    user_agent = request.headers.get("user-agent", "")
    raw_path = request.scope.get("raw_path") or request.url.path.encode()
    path = raw_path.decode("latin-1") if isinstance(raw_path, bytes) else str(raw_path)
    query = request.scope.get("query_string", b"").decode("latin-1")

    if security.monitor.detect_security_scan(ip, user_agent, path, query):
        error = AccessDeniedError("Request blocked")
        return JSONResponse(status_code=error.http_status, content=error.to_response())

    if (
        settings.rate_limit_enabled
        and request.url.path.startswith("/api/")
        and not request.url.path.startswith(RATE_LIMIT_EXEMPT_PREFIXES)
    ):
        decision = security.api_limiter.hit(request_key(request.method, request.url.path, ip))
        if not decision.allowed:
            security.monitor.log_event(
                SecurityEventType.RATE_LIMIT_EXCEEDED, SecuritySeverity.MEDIUM,
                client_ip=ip, user_agent=user_agent or None,
                details={"path": request.url.path, "method": request.method},
            )
            error = RateLimitExceededError(decision.retry_after_seconds)
            return JSONResponse(
                status_code=error.http_status,
                content=error.to_response(),
                headers={"Retry-After": str(decision.retry_after_seconds)},
            )
    return None


def _apply_cache_headers(request: Request, response) -> None:
    path = request.url.path
    if is_no_store_path(path):
        response.headers["Cache-Control"] = "no-store"
        return
    if request.method != "GET":
        return
    strategy = determine_strategy(path, request.headers.get("sec-fetch-dest"))
    response.headers["X-Cache-Strategy"] = strategy.value
    if "cache-control" not in response.headers:
        response.headers["Cache-Control"] = cache_control_header(strategy)
