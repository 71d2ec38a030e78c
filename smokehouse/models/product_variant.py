"""ProductVariant ORM — priced, stock-tracked purchasable option of a product.

Invariants:
    - price_cents >= 0 and inventory_quantity >= 0 (CHECK constraints)
    - sku unique when present
    - Inventory is enforced only when manage_inventory and not allow_backorder
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from smokehouse.db.base import Base


class ProductVariant(Base):
    __tablename__ = "product_variants"
    __table_args__ = (
        CheckConstraint("price_cents >= 0", name="ck_variant_price_non_negative"),
        CheckConstraint("inventory_quantity >= 0", name="ck_variant_inventory_non_negative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    inventory_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    allow_backorder: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    manage_inventory: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    variant_rank: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    product: Mapped["Product"] = relationship("Product", back_populates="variants")

    @property
    def tracks_stock(self) -> bool:
        return self.manage_inventory and not self.allow_backorder
