"""QuotePayment ORM — one captured deposit or balance payment for a catering quote.

Invariants:
    - (provider, transaction_id) unique: the idempotency key for payment replays
    - payment_type in PaymentType (deposit | balance)
    - amount_cents is what the provider confirmed, never the client-submitted amount
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from smokehouse.db.base import Base


class QuotePayment(Base):
    __tablename__ = "quote_payments"
    __table_args__ = (
        UniqueConstraint("provider", "transaction_id", name="uq_quote_payment_transaction"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    quote_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("catering_quotes.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    payment_type: Mapped[str] = mapped_column(String(20), nullable=False)
    provider: Mapped[str] = mapped_column(String(20), nullable=False)
    transaction_id: Mapped[str] = mapped_column(String(255), nullable=False)
    payment_reference: Mapped[str] = mapped_column(String(255), nullable=False)
    order_reference: Mapped[str] = mapped_column(String(64), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    quote: Mapped["CateringQuote"] = relationship("CateringQuote", back_populates="payments")
