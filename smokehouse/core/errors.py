"""Error Hierarchy — typed, categorized exceptions for all storefront failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - to_response() produces the REST envelope used by every error response
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with StorefrontError base: FastAPI global handler catches all (ADR: uniform error shape)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    AUTHENTICATION = "authentication"
    SECURITY = "security"
    RATE_LIMIT = "rate_limit"
    PAYMENT = "payment"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    quote_id: str | None = None
    order_id: str | None = None
    provider: str | None = None
    details: dict[str, Any] | None = None
    retry_after_seconds: int | None = None


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        ctx = {
            "quote_id": self.context.quote_id,
            "order_id": self.context.order_id,
            "provider": self.context.provider,
            "retry_after_seconds": self.context.retry_after_seconds,
        }
        if self.context.details:
            ctx.update(self.context.details)
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {k: v for k, v in ctx.items() if v is not None},
            }
        }


def _with_details(context: ErrorContext | None, **details: Any) -> ErrorContext:
    ctx = context or ErrorContext()
    merged = dict(ctx.details or {})
    merged.update({k: v for k, v in details.items() if v is not None})
    ctx.details = merged or None
    return ctx


# ─── Domain Errors (400-level) ──────────────────────────────────

class InputValidationError(StorefrontError):
    """Request data failed a business-level validation rule."""
    def __init__(
        self, message: str, field: str | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, _with_details(context, field=field), 400,
        )
        self.field = field


class MaliciousInputError(StorefrontError):
    """Input matched a blocked injection pattern."""
    def __init__(self, field: str | None = None, context: ErrorContext | None = None):
        super().__init__(
            "Input contains potentially malicious content",
            "MALICIOUS_INPUT", ErrorCategory.SECURITY,
            ErrorSeverity.WARNING, _with_details(context, field=field), 400,
        )
        self.field = field


class ResourceNotFoundError(StorefrontError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type


class ResourceConflictError(StorefrontError):
    """Unique constraint on a business key (handle, sku) would be violated."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "RESOURCE_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


class InvalidStatusTransitionError(StorefrontError):
    """Status change not allowed from the current state."""
    def __init__(
        self, entity: str, current: str, requested: str,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Cannot change {entity} status from '{current}' to '{requested}'",
            "INVALID_STATUS_TRANSITION", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR,
            _with_details(context, current_status=current, requested_status=requested),
            400,
        )
        self.current = current
        self.requested = requested


class PricingCalculationError(StorefrontError):
    """Catering pricing rejected the quote inputs."""
    def __init__(self, pricing_code: str, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, pricing_code, ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 400,
        )
        self.pricing_code = pricing_code


class PaymentAmountMismatchError(StorefrontError):
    """Submitted or confirmed amount differs from the amount owed."""
    def __init__(
        self, expected_cents: int, received_cents: int,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            "Payment amount does not match the amount due",
            "PAYMENT_AMOUNT_MISMATCH", ErrorCategory.PAYMENT,
            ErrorSeverity.ERROR,
            _with_details(context, expected_cents=expected_cents, received_cents=received_cents),
            400,
        )
        self.expected_cents = expected_cents
        self.received_cents = received_cents


class PaymentNotCompletedError(StorefrontError):
    """Provider reports the payment is not in a final successful state."""
    def __init__(self, provider_status: str, context: ErrorContext | None = None):
        super().__init__(
            f"Payment not completed (status: {provider_status})",
            "PAYMENT_NOT_COMPLETED", ErrorCategory.PAYMENT,
            ErrorSeverity.ERROR, _with_details(context, provider_status=provider_status), 400,
        )
        self.provider_status = provider_status


class PaymentMismatchError(StorefrontError):
    """Captured payment is in another currency or belongs to another cart or quote."""
    def __init__(self, reason: str, context: ErrorContext | None = None):
        super().__init__(
            reason, "PAYMENT_MISMATCH", ErrorCategory.PAYMENT,
            ErrorSeverity.ERROR, context, 400,
        )


class PaymentTokenError(StorefrontError):
    """Payment link token missing, invalid, or issued for something else."""
    def __init__(self, reason: str, context: ErrorContext | None = None):
        super().__init__(
            reason, "INVALID_PAYMENT_TOKEN", ErrorCategory.SECURITY,
            ErrorSeverity.WARNING, context, 403,
        )


class AccessDeniedError(StorefrontError):
    """Caller is identified but not allowed to perform the action."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "ACCESS_DENIED", ErrorCategory.SECURITY,
            ErrorSeverity.WARNING, context, 403,
        )


class AuthenticationError(StorefrontError):
    """Missing or invalid admin credentials / session."""
    def __init__(
        self, message: str = "Authentication required",
        code: str = "AUTHENTICATION_REQUIRED", context: ErrorContext | None = None,
    ):
        super().__init__(
            message, code, ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class RateLimitExceededError(StorefrontError):
    """Caller exceeded a request or attempt budget."""
    def __init__(
        self, retry_after_seconds: int, message: str = "Too many requests",
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_seconds = retry_after_seconds
        super().__init__(
            message, "RATE_LIMIT_EXCEEDED", ErrorCategory.RATE_LIMIT,
            ErrorSeverity.WARNING, ctx, 429,
        )
        self.retry_after_seconds = retry_after_seconds


class UploadRejectedError(StorefrontError):
    """Uploaded file failed validation or the security scan."""
    def __init__(self, errors: list[str], context: ErrorContext | None = None):
        super().__init__(
            "File upload rejected: " + "; ".join(errors),
            "UPLOAD_REJECTED", ErrorCategory.SECURITY,
            ErrorSeverity.WARNING, _with_details(context, errors=errors), 400,
        )
        self.errors = errors


class CartStateError(StorefrontError):
    """Cart can no longer be modified (already checked out)."""
    def __init__(self, cart_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"Cart '{cart_id}' has already been completed",
            "CART_COMPLETED", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


class InsufficientInventoryError(StorefrontError):
    """Requested quantity exceeds stock for a managed variant."""
    def __init__(
        self, sku: str | None, available: int, requested: int,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Only {available} in stock for '{sku or 'variant'}' (requested {requested})",
            "INSUFFICIENT_INVENTORY", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR,
            _with_details(context, available=available, requested=requested),
            409,
        )


class QuoteNotPayableError(StorefrontError):
    """Quote status does not allow the requested payment phase."""
    def __init__(self, message: str, current_status: str, context: ErrorContext | None = None):
        super().__init__(
            message, "QUOTE_NOT_PAYABLE", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, _with_details(context, current_status=current_status), 400,
        )
        self.current_status = current_status


class EventDatePassedError(StorefrontError):
    """Catering event is already in the past."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Event date has already passed",
            "EVENT_DATE_PASSED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 400,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(StorefrontError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class PaymentProviderError(StorefrontError):
    """Payment provider call failed (network, auth, declined request)."""
    def __init__(
        self,
        provider: str,
        message: str,
        error_type: str,
        http_status: int = 502,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.provider = provider
        super().__init__(
            f"Payment provider error ({provider}/{error_type}): {message}",
            "PAYMENT_PROVIDER_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.CRITICAL, ctx, http_status,
        )
        self.error_type = error_type


class EmailDeliveryError(StorefrontError):
    """Email provider rejected or failed to accept a message."""
    def __init__(self, message: str, error_type: str, context: ErrorContext | None = None):
        super().__init__(
            f"Email delivery failed ({error_type}): {message}",
            "EMAIL_DELIVERY_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, context, 502,
        )
        self.error_type = error_type
