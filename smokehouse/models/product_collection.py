"""ProductCollection ORM — curated product grouping (e.g. "Family Packs")."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from smokehouse.db.base import Base
from smokehouse.models.product_links import product_collection_links


class ProductCollection(Base):
    __tablename__ = "product_collections"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    handle: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    products: Mapped[list["Product"]] = relationship(
        "Product", secondary=product_collection_links,
        back_populates="collections", lazy="raise", passive_deletes=True,
    )
