"""Admin Catalog Service — product and category management.

Invariants:
    - Handles are unique; a clash is reported as ResourceConflictError (409) before insert
    - Missing handle is derived from the title with slugify()
    - Product free text is sanitized (title/subtitle plain, description basic HTML)
    - A category can never become its own ancestor
    - Deleting a category re-parents its children to the root

Design Decisions:
    - Variants/images in an update payload replace the stored set (delete-orphan cascade)
    - bulk_action processes ids one by one and reports per-id failures instead of
      aborting the batch
"""

import logging
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from smokehouse.core.domain_types import ProductStatus
from smokehouse.core.errors import (
    InputValidationError, ResourceConflictError, ResourceNotFoundError,
)
from smokehouse.core.sanitize import PLAIN_TEXT, RICH_TEXT, sanitize_input, sanitize_string, slugify
from smokehouse.models.product import Product
from smokehouse.models.product_category import ProductCategory
from smokehouse.models.product_collection import ProductCollection
from smokehouse.models.product_image import ProductImage
from smokehouse.models.product_variant import ProductVariant
from smokehouse.schemas.catalog import (
    CategoryCreate, CategoryUpdate, ImageIn, ProductCreate, ProductUpdate, VariantIn,
)

logger = logging.getLogger(__name__)

BULK_STATUS = {
    "publish": ProductStatus.PUBLISHED,
    "unpublish": ProductStatus.DRAFT,
}


class AdminCatalogService:
    """Write side of the catalog."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Products ────────────────────────────────────────────────

    async def list_products(
        self,
        status: ProductStatus | None = None,
        q: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Product], int]:
        conditions = []
        if status is not None:
            conditions.append(Product.status == status.value)
        if q:
            pattern = f"%{q.lower()}%"
            conditions.append(or_(
                func.lower(Product.title).like(pattern),
                func.lower(Product.handle).like(pattern),
            ))
        total = await self.db.scalar(select(func.count(Product.id)).where(*conditions))
        result = await self.db.execute(
            select(Product).where(*conditions)
            .order_by(Product.updated_at.desc()).limit(limit).offset(offset),
        )
        return list(result.scalars().all()), total or 0

    async def get_product(self, product_id: UUID) -> Product:
        product = await self.db.get(Product, product_id)
        if product is None:
            raise ResourceNotFoundError("Product", str(product_id))
        return product

    async def create_product(self, body: ProductCreate) -> Product:
        title = sanitize_string(body.title, PLAIN_TEXT, "title")
        handle = body.handle or slugify(title)
        if not handle:
            raise InputValidationError("Cannot derive a handle from the title", field="handle")
        await self._ensure_handle_free(Product, handle)

        product = Product(
            title=title,
            subtitle=self._plain(body.subtitle, "subtitle"),
            description=self._rich(body.description),
            handle=handle,
            status=body.status.value,
            thumbnail=body.thumbnail,
            metadata_=sanitize_input(body.metadata or {}, PLAIN_TEXT, "metadata"),
            discountable=body.discountable,
        )
        product.variants = [self._variant(v) for v in body.variants]
        product.images = [self._image(i) for i in body.images]
        product.categories = await self._load(ProductCategory, body.category_ids)
        product.collections = await self._load(ProductCollection, body.collection_ids)
        self.db.add(product)
        await self.db.commit()
        await self.db.refresh(product)
        logger.info(f"Product created: {product.handle}")
        return product

    async def update_product(self, product_id: UUID, body: ProductUpdate) -> Product:
        product = await self.get_product(product_id)
        changes = body.model_dump(exclude_unset=True)

        if "title" in changes and body.title is not None:
            product.title = sanitize_string(body.title, PLAIN_TEXT, "title")
        if "subtitle" in changes:
            product.subtitle = self._plain(body.subtitle, "subtitle")
        if "description" in changes:
            product.description = self._rich(body.description)
        if body.handle and body.handle != product.handle:
            await self._ensure_handle_free(Product, body.handle)
            product.handle = body.handle
        if body.status is not None:
            product.status = body.status.value
        if "thumbnail" in changes:
            product.thumbnail = body.thumbnail
        if "metadata" in changes:
            product.metadata_ = sanitize_input(body.metadata or {}, PLAIN_TEXT, "metadata")
        if body.discountable is not None:
            product.discountable = body.discountable
        if body.variants is not None:
            # old rows must be gone before new ones reuse their SKUs
            product.variants = []
            await self.db.flush()
            product.variants = [self._variant(v) for v in body.variants]
        if body.images is not None:
            product.images = [self._image(i) for i in body.images]
        if body.category_ids is not None:
            product.categories = await self._load(ProductCategory, body.category_ids)
        if body.collection_ids is not None:
            product.collections = await self._load(ProductCollection, body.collection_ids)

        await self.db.commit()
        await self.db.refresh(product)
        return product

    async def delete_product(self, product_id: UUID) -> None:
        product = await self.get_product(product_id)
        await self.db.delete(product)
        await self.db.commit()
        logger.info(f"Product deleted: {product_id}")

    async def bulk_action(self, action: str, product_ids: list[UUID]) -> dict:
        processed = 0
        failed: list[dict] = []
        for product_id in product_ids:
            product = await self.db.get(Product, product_id)
            if product is None:
                failed.append({"id": str(product_id), "error": "Product not found"})
                continue
            if action == "delete":
                await self.db.delete(product)
            else:
                product.status = BULK_STATUS[action].value
            processed += 1
        await self.db.commit()
        logger.info(f"Bulk {action}: {processed} processed, {len(failed)} failed")
        return {
            "action": action,
            "processed": processed,
            "failed": len(failed),
            "errors": failed,
        }

    # ─── Categories ──────────────────────────────────────────────

    async def list_categories(self) -> list[ProductCategory]:
        result = await self.db.execute(
            select(ProductCategory).order_by(ProductCategory.sort_order, ProductCategory.name),
        )
        return list(result.scalars().all())

    async def get_category(self, category_id: UUID) -> ProductCategory:
        category = await self.db.get(ProductCategory, category_id)
        if category is None:
            raise ResourceNotFoundError("Category", str(category_id))
        return category

    async def create_category(self, body: CategoryCreate) -> ProductCategory:
        name = sanitize_string(body.name, PLAIN_TEXT, "name")
        handle = body.handle or slugify(name)
        if not handle:
            raise InputValidationError("Cannot derive a handle from the name", field="handle")
        await self._ensure_handle_free(ProductCategory, handle)
        if body.parent_id is not None:
            await self.get_category(body.parent_id)
        category = ProductCategory(
            name=name,
            handle=handle,
            description=self._plain(body.description, "description"),
            parent_id=body.parent_id,
            is_active=body.is_active,
            sort_order=body.sort_order,
        )
        self.db.add(category)
        await self.db.commit()
        await self.db.refresh(category)
        return category

    async def update_category(self, category_id: UUID, body: CategoryUpdate) -> ProductCategory:
        category = await self.get_category(category_id)
        changes = body.model_dump(exclude_unset=True)
        if body.name is not None:
            category.name = sanitize_string(body.name, PLAIN_TEXT, "name")
        if body.handle and body.handle != category.handle:
            await self._ensure_handle_free(ProductCategory, body.handle)
            category.handle = body.handle
        if "description" in changes:
            category.description = self._plain(body.description, "description")
        if "parent_id" in changes:
            if body.parent_id is not None:
                await self._check_parent(category.id, body.parent_id)
            category.parent_id = body.parent_id
        if body.is_active is not None:
            category.is_active = body.is_active
        if body.sort_order is not None:
            category.sort_order = body.sort_order
        await self.db.commit()
        await self.db.refresh(category)
        return category

    async def delete_category(self, category_id: UUID) -> None:
        category = await self.get_category(category_id)
        await self.db.execute(
            update(ProductCategory)
            .where(ProductCategory.parent_id == category.id)
            .values(parent_id=None),
        )
        await self.db.delete(category)
        await self.db.commit()

    # ─── internals ───────────────────────────────────────────────

    async def _check_parent(self, category_id: UUID, parent_id: UUID) -> None:
        """Walk up from the proposed parent; meeting category_id means a cycle."""
        if parent_id == category_id:
            raise InputValidationError("A category cannot be its own parent", field="parent_id")
        seen: set[UUID] = set()
        current: UUID | None = parent_id
        while current is not None and current not in seen:
            if current == category_id:
                raise InputValidationError(
                    "A category cannot be moved under its own descendant", field="parent_id",
                )
            seen.add(current)
            node = await self.get_category(current)
            current = node.parent_id

    async def _ensure_handle_free(self, model, handle: str) -> None:
        existing = await self.db.scalar(select(model.id).where(model.handle == handle))
        if existing is not None:
            raise ResourceConflictError(f"Handle '{handle}' is already in use")

    async def _load(self, model, ids: list[UUID]) -> list:
        if not ids:
            return []
        result = await self.db.execute(select(model).where(model.id.in_(ids)))
        rows = list(result.scalars().all())
        if len(rows) != len(set(ids)):
            found = {r.id for r in rows}
            missing = next(i for i in ids if i not in found)
            raise ResourceNotFoundError(model.__name__, str(missing))
        return rows

    def _plain(self, value: str | None, field: str) -> str | None:
        return sanitize_string(value, PLAIN_TEXT, field) if value else value

    def _rich(self, value: str | None) -> str | None:
        return sanitize_string(value, RICH_TEXT, "description") if value else value

    def _variant(self, body: VariantIn) -> ProductVariant:
        return ProductVariant(
            title=sanitize_string(body.title, PLAIN_TEXT, "variant.title"),
            sku=body.sku,
            price_cents=body.price_cents,
            inventory_quantity=body.inventory_quantity,
            allow_backorder=body.allow_backorder,
            manage_inventory=body.manage_inventory,
            variant_rank=body.variant_rank,
        )

    def _image(self, body: ImageIn) -> ProductImage:
        return ProductImage(
            url=body.url,
            alt_text=self._plain(body.alt_text, "image.alt_text"),
            sort_order=body.sort_order,
        )
