"""Product link tables — many-to-many joins between products and categories/collections."""

from sqlalchemy import Column, ForeignKey, Table
from sqlalchemy.dialects.postgresql import UUID

from smokehouse.db.base import Base

product_category_links = Table(
    "product_category_links",
    Base.metadata,
    Column(
        "product_id", UUID(as_uuid=True),
        ForeignKey("products.id", ondelete="CASCADE"), primary_key=True,
    ),
    Column(
        "category_id", UUID(as_uuid=True),
        ForeignKey("product_categories.id", ondelete="CASCADE"), primary_key=True,
    ),
)

product_collection_links = Table(
    "product_collection_links",
    Base.metadata,
    Column(
        "product_id", UUID(as_uuid=True),
        ForeignKey("products.id", ondelete="CASCADE"), primary_key=True,
    ),
    Column(
        "collection_id", UUID(as_uuid=True),
        ForeignKey("product_collections.id", ondelete="CASCADE"), primary_key=True,
    ),
)
