"""Admin Catalog Routes — product, variant and category management.

Invariants:
    - Every route requires an admin session (router-level dependency)
    - Handle collisions → 409; a category cannot become its own ancestor → 400
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from smokehouse.api.dependencies import require_admin
from smokehouse.core.domain_types import ProductStatus
from smokehouse.infrastructure.database import get_db
from smokehouse.schemas.catalog import (
    BulkProductAction, CategoryCreate, CategoryUpdate, ProductCreate, ProductUpdate,
)
from smokehouse.services.admin_catalog import AdminCatalogService
from smokehouse.services.catalog import serialize_category, serialize_product

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/v1/admin", tags=["admin-catalog"],
    dependencies=[Depends(require_admin)],
)


# ─── Products ────────────────────────────────────────────────────

@router.get("/products")
async def list_products(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    status_filter: ProductStatus | None = Query(None, alias="status"),
    q: str | None = Query(None, max_length=100),
    db: AsyncSession = Depends(get_db),
):
    products, total = await AdminCatalogService(db).list_products(
        status=status_filter, q=q, limit=limit, offset=offset,
    )
    return {
        "products": [serialize_product(p) for p in products],
        "count": total,
        "pagination": {"limit": limit, "offset": offset},
    }


@router.post("/products", status_code=status.HTTP_201_CREATED)
async def create_product(body: ProductCreate, db: AsyncSession = Depends(get_db)):
    product = await AdminCatalogService(db).create_product(body)
    return {"product": serialize_product(product)}


@router.post("/products/bulk")
async def bulk_products(body: BulkProductAction, db: AsyncSession = Depends(get_db)):
    """Publish, unpublish (→ draft) or delete many products at once."""
    return await AdminCatalogService(db).bulk_action(body.action, body.product_ids)


@router.get("/products/{product_id}")
async def get_product(product_id: UUID, db: AsyncSession = Depends(get_db)):
    product = await AdminCatalogService(db).get_product(product_id)
    return {"product": serialize_product(product)}


@router.patch("/products/{product_id}")
async def update_product(
    product_id: UUID, body: ProductUpdate, db: AsyncSession = Depends(get_db),
):
    product = await AdminCatalogService(db).update_product(product_id, body)
    return {"product": serialize_product(product)}


@router.delete("/products/{product_id}")
async def delete_product(product_id: UUID, db: AsyncSession = Depends(get_db)):
    await AdminCatalogService(db).delete_product(product_id)
    return {"id": str(product_id), "deleted": True}


# ─── Categories ──────────────────────────────────────────────────

@router.get("/categories")
async def list_categories(db: AsyncSession = Depends(get_db)):
    categories = await AdminCatalogService(db).list_categories()
    return {"categories": [serialize_category(c) for c in categories]}


@router.post("/categories", status_code=status.HTTP_201_CREATED)
async def create_category(body: CategoryCreate, db: AsyncSession = Depends(get_db)):
    category = await AdminCatalogService(db).create_category(body)
    return {"category": serialize_category(category)}


@router.patch("/categories/{category_id}")
async def update_category(
    category_id: UUID, body: CategoryUpdate, db: AsyncSession = Depends(get_db),
):
    category = await AdminCatalogService(db).update_category(category_id, body)
    return {"category": serialize_category(category)}


@router.delete("/categories/{category_id}")
async def delete_category(category_id: UUID, db: AsyncSession = Depends(get_db)):
    """Delete a category; its children become top-level."""
    await AdminCatalogService(db).delete_category(category_id)
    return {"id": str(category_id), "deleted": True}
