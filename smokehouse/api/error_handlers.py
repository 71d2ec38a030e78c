"""Error Handlers — every failure leaves the API in the same JSON error envelope.

Invariants:
    - StorefrontError → its own code/category/severity and HTTP status
    - RateLimitExceededError responses carry Retry-After
    - MaliciousInputError is recorded once here as a malicious_input security event
    - RequestValidationError → 400 VALIDATION_ERROR with per-field details
    - Routing misses (unknown path, wrong method) → 404/405 in the envelope
    - Anything else → 500 INTERNAL_ERROR; the exception text never reaches the client
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from smokehouse.core.domain_types import SecurityEventType, SecuritySeverity
from smokehouse.core.errors import (
    ErrorSeverity, MaliciousInputError, RateLimitExceededError, StorefrontError,
)
from smokehouse.core.rate_limit import client_ip

logger = logging.getLogger(__name__)

HTTP_CODES = {
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def _envelope(code: str, message: str, category: str, severity: ErrorSeverity, **extra) -> dict:
    error = {"code": code, "message": message, "category": category, "severity": severity.value}
    error.update(extra)
    return {"error": error}


def register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(StorefrontError)
    async def storefront_error_handler(request: Request, exc: StorefrontError):
        log = logger.error if exc.http_status >= 500 else logger.warning
        log(
            f"{exc.code} on {request.method} {request.url.path}: {exc.message}",
            extra={"error_code": exc.code, "path": request.url.path},
        )
        if isinstance(exc, MaliciousInputError):
            _record_malicious_input(request, exc)
        headers = None
        if isinstance(exc, RateLimitExceededError):
            headers = {"Retry-After": str(exc.retry_after_seconds)}
        return JSONResponse(
            status_code=exc.http_status, content=exc.to_response(), headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = [
            {
                "field": ".".join(str(loc) for loc in e["loc"] if loc != "body"),
                "message": e["msg"],
                "type": e["type"],
            }
            for e in exc.errors()
        ]
        logger.warning(
            f"Rejected payload on {request.url.path}: {[d['field'] for d in details]}",
            extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_envelope(
                "VALIDATION_ERROR", "Invalid request data", "validation",
                ErrorSeverity.ERROR, details=details,
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        code = HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
        return JSONResponse(
            status_code=exc.status_code,
            content=_envelope(code, str(exc.detail), "routing", ErrorSeverity.WARNING),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.url.path}: {exc!r}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_envelope(
                "INTERNAL_ERROR", "An unexpected error occurred", "internal",
                ErrorSeverity.CRITICAL,
            ),
        )


def _record_malicious_input(request: Request, exc: MaliciousInputError) -> None:
    security = getattr(request.app.state, "security", None)
    if security is None:
        return
    security.monitor.log_event(
        SecurityEventType.MALICIOUS_INPUT,
        SecuritySeverity.HIGH,
        client_ip=client_ip(request.headers, request.client.host if request.client else None),
        user_agent=request.headers.get("user-agent"),
        details={"field": exc.field, "path": request.url.path},
    )
