"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - QuoteId, OrderId, ProductId, CartId wrap UUIDs — never use bare UUID in domain logic
    - Money is always integer cents (Cents); dollars only at the API boundary
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON and DB columns without custom encoders
"""

from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

QuoteId = NewType("QuoteId", UUID)
OrderId = NewType("OrderId", UUID)
ProductId = NewType("ProductId", UUID)
CartId = NewType("CartId", UUID)


# ─── Value Types ─────────────────────────────────────────────────

Cents = NewType("Cents", int)


# ─── Catalog ─────────────────────────────────────────────────────

class ProductStatus(str, Enum):
    DRAFT = "draft"
    PROPOSED = "proposed"
    PUBLISHED = "published"
    REJECTED = "rejected"


# ─── Catering ────────────────────────────────────────────────────

class QuoteStatus(str, Enum):
    """Catering quote lifecycle — maps to catering_quotes.status."""
    PENDING = "pending"
    APPROVED = "approved"
    DEPOSIT_PAID = "deposit_paid"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class EventType(str, Enum):
    CORPORATE = "corporate"
    PRIVATE = "private"


class HungerLevel(str, Enum):
    """Portion sizing; each maps to a menu-cost multiplier in admin settings."""
    NORMAL = "normal"
    PRETTY_HUNGRY = "pretty_hungry"
    REALLY_HUNGRY = "really_hungry"


# ─── Payments ────────────────────────────────────────────────────

class PaymentProvider(str, Enum):
    STRIPE = "stripe"
    SQUARE = "square"


class PaymentPurpose(str, Enum):
    """Purpose claim carried inside signed payment-link tokens."""
    DEPOSIT_PAYMENT = "deposit_payment"
    BALANCE_PAYMENT = "balance_payment"


class PaymentType(str, Enum):
    """Which phase of a catering payment a recorded transaction settles."""
    DEPOSIT = "deposit"
    BALANCE = "balance"


# ─── Orders ──────────────────────────────────────────────────────

class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class FulfillmentType(str, Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"


class ActorRole(str, Enum):
    """Who may drive an order status change."""
    ADMIN = "admin"
    STAFF = "staff"
    SYSTEM = "system"
    CUSTOMER = "customer"


# ─── Email & Notifications ───────────────────────────────────────

class EmailType(str, Enum):
    QUOTE_CONFIRMATION = "quote_confirmation"
    QUOTE_APPROVED = "quote_approved"
    PAYMENT_CONFIRMATION = "payment_confirmation"
    PAYMENT_RECEIPT = "payment_receipt"
    ORDER_STATUS_UPDATE = "order_status_update"
    EVENT_REMINDER_24H = "event_reminder_24h"
    EVENT_REMINDER_2H = "event_reminder_2h"
    ADMIN_NEW_QUOTE = "admin_new_quote"
    ADMIN_PAYMENT_RECEIVED = "admin_payment_received"
    WELCOME = "welcome"
    NEWSLETTER = "newsletter"
    BALANCE_PAYMENT_REQUEST = "balance_payment_request"


class EmailPriority(str, Enum):
    URGENT = "urgent"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


class PreferenceCategory(str, Enum):
    """Opt-in categories stored per recipient in email_preferences."""
    QUOTES = "quotes"
    PAYMENTS = "payments"
    ORDER_UPDATES = "order_updates"
    EVENT_REMINDERS = "event_reminders"
    MARKETING = "marketing"
    NEWSLETTERS = "newsletters"


class NotificationTrigger(str, Enum):
    """Business events that produce an email."""
    QUOTE_SUBMITTED = "quote_submitted"
    QUOTE_APPROVED = "quote_approved"
    DEPOSIT_PAID = "deposit_paid"
    BALANCE_PAID = "balance_paid"
    BALANCE_DUE = "balance_due"
    ORDER_PLACED = "order_placed"
    ORDER_STATUS_CHANGED = "order_status_changed"
    ORDER_CONFIRMED = "order_confirmed"
    ORDER_COMPLETED = "order_completed"
    EVENT_APPROACHING = "event_approaching"
    EVENT_IMMINENT = "event_imminent"
    CUSTOMER_REGISTERED = "customer_registered"
    NEWSLETTER_ISSUED = "newsletter_issued"
    ADMIN_QUOTE_SUBMITTED = "admin_quote_submitted"
    ADMIN_PAYMENT_RECEIVED = "admin_payment_received"


class NotificationStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
    CANCELLED = "cancelled"


# ─── Caching ─────────────────────────────────────────────────────

class CacheStrategy(str, Enum):
    CACHE_FIRST = "cache-first"
    NETWORK_FIRST = "network-first"
    STALE_WHILE_REVALIDATE = "stale-while-revalidate"
    NETWORK_ONLY = "network-only"


# ─── Security ────────────────────────────────────────────────────

class SecurityEventType(str, Enum):
    AUTH_FAILURE = "auth_failure"
    SUSPICIOUS_REQUEST = "suspicious_request"
    FILE_UPLOAD_BLOCKED = "file_upload_blocked"
    DATABASE_ERROR = "database_error"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    MALICIOUS_INPUT = "malicious_input"
    SECURITY_SCAN_DETECTED = "security_scan_detected"


class SecuritySeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"
