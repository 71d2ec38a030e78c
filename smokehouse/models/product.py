"""Product ORM — catalog aggregate root (variants, images, category and collection links).

Invariants:
    - handle is unique and URL-safe (slugified from title when not given)
    - status in ProductStatus; only "published" products are visible to the storefront
    - variants and images are owned: deleting a product deletes them

Design Decisions:
    - `metadata` column mapped as metadata_ (the name is reserved on declarative classes)
    - lazy="selectin" on every collection: async sessions cannot lazy-load on attribute access
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from smokehouse.db.base import Base
from smokehouse.models.product_links import product_category_links, product_collection_links


class Product(Base):
    """Sellable menu item."""
    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    subtitle: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    handle: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft", index=True)
    thumbnail: Mapped[str | None] = mapped_column(String(500), nullable=True)
    metadata_: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)
    discountable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
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

    # Relationships
    variants: Mapped[list["ProductVariant"]] = relationship(
        "ProductVariant", back_populates="product",
        cascade="all, delete-orphan", lazy="selectin",
        order_by="ProductVariant.variant_rank",
    )
    images: Mapped[list["ProductImage"]] = relationship(
        "ProductImage", back_populates="product",
        cascade="all, delete-orphan", lazy="selectin",
        order_by="ProductImage.sort_order",
    )
    categories: Mapped[list["ProductCategory"]] = relationship(
        "ProductCategory", secondary=product_category_links,
        back_populates="products", lazy="selectin",
    )
    collections: Mapped[list["ProductCollection"]] = relationship(
        "ProductCollection", secondary=product_collection_links,
        back_populates="products", lazy="selectin",
    )
