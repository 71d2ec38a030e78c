"""Store Routes — public catalog reads (published products, categories, collections).

Invariants:
    - Only published products are ever returned here; drafts are admin-only
    - Unknown id/handle → 404 via ResourceNotFoundError
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from smokehouse.infrastructure.database import get_db
from smokehouse.services.catalog import CatalogService, serialize_product

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/store", tags=["store"])


@router.get("/products")
async def list_products(
    category: str | None = Query(None, max_length=255),
    collection: str | None = Query(None, max_length=255),
    q: str | None = Query(None, max_length=100),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """List published products, optionally filtered by category/collection handle."""
    return await CatalogService(db).list_products(
        category_handle=category, collection_handle=collection,
        q=q.strip() if q else None, limit=limit, offset=offset,
    )


@router.get("/products/{id_or_handle}")
async def get_product(id_or_handle: str, db: AsyncSession = Depends(get_db)):
    product = await CatalogService(db).get_product(id_or_handle)
    return {"product": serialize_product(product)}


@router.get("/categories")
async def list_categories(db: AsyncSession = Depends(get_db)):
    return await CatalogService(db).list_categories()


@router.get("/collections")
async def list_collections(db: AsyncSession = Depends(get_db)):
    return await CatalogService(db).list_collections()
