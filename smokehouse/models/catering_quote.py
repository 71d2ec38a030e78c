"""CateringQuote ORM — catering request progressing pending → ... → completed.

Invariants:
    - status in QuoteStatus; transitions validated by core/quote_workflow.py
    - pricing is the server-computed PricingBreakdown (JSON); never client-supplied
    - deposit_order_id set when the deposit is captured, balance_order_id when the balance is
    - guest_count 1..1000, distance_miles 0..100 (CHECK constraints)

Design Decisions:
    - menu_selections / add_ons / pricing as JSON: read and written as whole documents,
      never queried by field
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, Float, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from smokehouse.db.base import Base


class CateringQuote(Base):
    __tablename__ = "catering_quotes"
    __table_args__ = (
        CheckConstraint("guest_count BETWEEN 1 AND 1000", name="ck_quote_guest_count"),
        CheckConstraint("distance_miles >= 0 AND distance_miles <= 100", name="ck_quote_distance"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    event_type: Mapped[str] = mapped_column(String(20), nullable=False)
    event_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    guest_count: Mapped[int] = mapped_column(Integer, nullable=False)
    hunger_level: Mapped[str] = mapped_column(String(20), nullable=False, default="normal")
    location_address: Mapped[str] = mapped_column(Text, nullable=False)
    distance_miles: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    menu_selections: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    add_ons: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    pricing: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", index=True)
    deposit_order_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    balance_order_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    payments: Mapped[list["QuotePayment"]] = relationship(
        "QuotePayment", back_populates="quote",
        cascade="all, delete-orphan", lazy="selectin",
        order_by="QuotePayment.created_at",
    )

    @property
    def total_cents(self) -> int:
        return int(self.pricing.get("total_cents", 0))

    @property
    def deposit_cents(self) -> int:
        return int(self.pricing.get("deposit_cents", 0))

    @property
    def balance_cents(self) -> int:
        return int(self.pricing.get("balance_cents", 0))
