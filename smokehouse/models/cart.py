"""Cart ORM — server-side shopping cart keyed by UUID.

Invariants:
    - status is "active" until checkout, then "completed" (terminal, no more mutations)
    - line_items owned by the cart (cascade delete)
    - order_id set exactly when status == "completed"
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from smokehouse.db.base import Base

CART_ACTIVE = "active"
CART_COMPLETED = "completed"


class Cart(Base):
    __tablename__ = "carts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=CART_ACTIVE)
    fulfillment_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    order_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
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
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    line_items: Mapped[list["CartLineItem"]] = relationship(
        "CartLineItem", back_populates="cart",
        cascade="all, delete-orphan", lazy="selectin",
        order_by="CartLineItem.created_at",
    )

    @property
    def is_completed(self) -> bool:
        return self.status == CART_COMPLETED
