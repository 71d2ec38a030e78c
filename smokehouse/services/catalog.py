"""Catalog Service — public, read-only product browsing.

Invariants:
    - Only published products are ever visible here
    - list_products orders by title; q matches title or description, case-insensitively
    - Categories: only active ones, ordered by sort_order, returned flat and as a tree

Design Decisions:
    - Serializers live here and are reused by the admin catalog service, so public and
      admin responses share one product shape
"""

import logging
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from smokehouse.core.domain_types import ProductStatus
from smokehouse.core.errors import ResourceNotFoundError
from smokehouse.models.product import Product
from smokehouse.models.product_category import ProductCategory
from smokehouse.models.product_collection import ProductCollection
from smokehouse.models.product_variant import ProductVariant

logger = logging.getLogger(__name__)


def serialize_variant(variant: ProductVariant) -> dict:
    return {
        "id": str(variant.id),
        "title": variant.title,
        "sku": variant.sku,
        "price_cents": variant.price_cents,
        "inventory_quantity": variant.inventory_quantity,
        "allow_backorder": variant.allow_backorder,
        "manage_inventory": variant.manage_inventory,
        "variant_rank": variant.variant_rank,
        "in_stock": (
            not variant.tracks_stock or variant.inventory_quantity > 0
        ),
    }


def serialize_product(product: Product) -> dict:
    return {
        "id": str(product.id),
        "title": product.title,
        "subtitle": product.subtitle,
        "description": product.description,
        "handle": product.handle,
        "status": product.status,
        "thumbnail": product.thumbnail,
        "metadata": product.metadata_ or {},
        "discountable": product.discountable,
        "variants": [serialize_variant(v) for v in product.variants],
        "images": [
            {"id": str(i.id), "url": i.url, "alt_text": i.alt_text, "sort_order": i.sort_order}
            for i in product.images
        ],
        "categories": [
            {"id": str(c.id), "name": c.name, "handle": c.handle} for c in product.categories
        ],
        "collections": [
            {"id": str(c.id), "title": c.title, "handle": c.handle} for c in product.collections
        ],
        "created_at": product.created_at.isoformat(),
        "updated_at": product.updated_at.isoformat(),
    }


def serialize_category(category: ProductCategory) -> dict:
    return {
        "id": str(category.id),
        "name": category.name,
        "handle": category.handle,
        "description": category.description,
        "parent_id": str(category.parent_id) if category.parent_id else None,
        "is_active": category.is_active,
        "sort_order": category.sort_order,
    }


def build_category_tree(categories: list[dict]) -> list[dict]:
    """Nest flat category dicts by parent_id; orphans of hidden parents become roots."""
    nodes = {c["id"]: {**c, "children": []} for c in categories}
    roots = []
    for node in nodes.values():
        parent = nodes.get(node["parent_id"]) if node["parent_id"] else None
        if parent is None:
            roots.append(node)
        else:
            parent["children"].append(node)
    return roots


def _parse_uuid(value: str) -> UUID | None:
    try:
        return UUID(value)
    except ValueError:
        return None


class CatalogService:
    """Storefront reads over products, categories and collections."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_products(
        self,
        category_handle: str | None = None,
        collection_handle: str | None = None,
        q: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> dict:
        conditions = [Product.status == ProductStatus.PUBLISHED.value]
        if category_handle:
            conditions.append(Product.categories.any(ProductCategory.handle == category_handle))
        if collection_handle:
            conditions.append(
                Product.collections.any(ProductCollection.handle == collection_handle),
            )
        if q:
            pattern = f"%{q.lower()}%"
            conditions.append(or_(
                func.lower(Product.title).like(pattern),
                func.lower(Product.description).like(pattern),
            ))

        total = await self.db.scalar(select(func.count(Product.id)).where(*conditions))
        result = await self.db.execute(
            select(Product).where(*conditions)
            .order_by(Product.title).limit(limit).offset(offset),
        )
        return {
            "products": [serialize_product(p) for p in result.scalars().all()],
            "count": total or 0,
            "limit": limit,
            "offset": offset,
        }

    async def get_product(self, id_or_handle: str) -> Product:
        product_id = _parse_uuid(id_or_handle)
        condition = (
            Product.id == product_id if product_id else Product.handle == id_or_handle
        )
        result = await self.db.execute(
            select(Product).where(
                condition, Product.status == ProductStatus.PUBLISHED.value,
            ),
        )
        product = result.scalar_one_or_none()
        if product is None:
            raise ResourceNotFoundError("Product", id_or_handle)
        return product

    async def list_categories(self) -> dict:
        result = await self.db.execute(
            select(ProductCategory)
            .where(ProductCategory.is_active.is_(True))
            .order_by(ProductCategory.sort_order, ProductCategory.name),
        )
        flat = [serialize_category(c) for c in result.scalars().all()]
        return {"categories": flat, "tree": build_category_tree(flat)}

    async def list_collections(self) -> dict:
        result = await self.db.execute(
            select(ProductCollection).order_by(ProductCollection.title),
        )
        return {
            "collections": [
                {"id": str(c.id), "title": c.title, "handle": c.handle}
                for c in result.scalars().all()
            ],
        }
