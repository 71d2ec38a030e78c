"""Order ORM — a paid retail order created at checkout.

Invariants:
    - display_id ("TB-1A2B3C") is unique and is what customers see
    - (payment_provider, transaction_id) unique: one order per captured payment
    - payment_reference is what the client submitted (intent id or card source id);
      re-posting it for a completed cart returns this order
    - items is an immutable JSON snapshot of the cart lines at checkout
    - status follows core/order_tracking.py; every change appends an OrderStatusEvent
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Integer, JSON, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from smokehouse.db.base import Base


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("payment_provider", "transaction_id", name="uq_order_transaction"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    display_id: Mapped[str] = mapped_column(String(20), nullable=False, unique=True, index=True)
    cart_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("carts.id", ondelete="SET NULL"), nullable=True,
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="pending", index=True)
    fulfillment_type: Mapped[str] = mapped_column(String(20), nullable=False, default="pickup")
    delivery_address: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    items: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    subtotal_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    tax_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    delivery_fee_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    payment_provider: Mapped[str] = mapped_column(String(20), nullable=False)
    transaction_id: Mapped[str] = mapped_column(String(255), nullable=False)
    payment_reference: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    estimated_ready_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    status_events: Mapped[list["OrderStatusEvent"]] = relationship(
        "OrderStatusEvent", back_populates="order",
        cascade="all, delete-orphan", lazy="selectin",
        order_by="OrderStatusEvent.created_at",
    )
