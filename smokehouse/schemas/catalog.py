"""Catalog Schemas — admin product and category payloads.

Invariants:
    - Money fields are integer cents, never negative
    - handle optional on create (derived from title); when given it must already be slug-shaped
    - ProductUpdate is partial: only fields present in the request are applied

Design Decisions:
    - Variants and images travel inside the product payload and replace the stored set
      wholesale, so the admin UI never reconciles row ids
"""

from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field

from smokehouse.core.domain_types import ProductStatus

HANDLE_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class VariantIn(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    sku: str | None = Field(None, max_length=255)
    price_cents: int = Field(ge=0)
    inventory_quantity: int = Field(0, ge=0)
    allow_backorder: bool = False
    manage_inventory: bool = True
    variant_rank: int = Field(0, ge=0)


class ImageIn(BaseModel):
    url: str = Field(min_length=1, max_length=500)
    alt_text: str | None = Field(None, max_length=255)
    sort_order: int = Field(0, ge=0)


class ProductCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    subtitle: str | None = Field(None, max_length=255)
    description: str | None = Field(None, max_length=10_000)
    handle: str | None = Field(None, max_length=255, pattern=HANDLE_PATTERN)
    status: ProductStatus = ProductStatus.DRAFT
    thumbnail: str | None = Field(None, max_length=500)
    metadata: dict[str, Any] | None = None
    discountable: bool = True
    variants: list[VariantIn] = Field(default_factory=list, max_length=100)
    images: list[ImageIn] = Field(default_factory=list, max_length=50)
    category_ids: list[UUID] = Field(default_factory=list)
    collection_ids: list[UUID] = Field(default_factory=list)


class ProductUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    subtitle: str | None = Field(None, max_length=255)
    description: str | None = Field(None, max_length=10_000)
    handle: str | None = Field(None, max_length=255, pattern=HANDLE_PATTERN)
    status: ProductStatus | None = None
    thumbnail: str | None = Field(None, max_length=500)
    metadata: dict[str, Any] | None = None
    discountable: bool | None = None
    variants: list[VariantIn] | None = Field(None, max_length=100)
    images: list[ImageIn] | None = Field(None, max_length=50)
    category_ids: list[UUID] | None = None
    collection_ids: list[UUID] | None = None


class BulkProductAction(BaseModel):
    action: Literal["publish", "unpublish", "delete"]
    product_ids: list[UUID] = Field(min_length=1, max_length=100)


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    handle: str | None = Field(None, max_length=255, pattern=HANDLE_PATTERN)
    description: str | None = Field(None, max_length=2000)
    parent_id: UUID | None = None
    is_active: bool = True
    sort_order: int = Field(0, ge=0)


class CategoryUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    handle: str | None = Field(None, max_length=255, pattern=HANDLE_PATTERN)
    description: str | None = Field(None, max_length=2000)
    parent_id: UUID | None = None
    is_active: bool | None = None
    sort_order: int | None = Field(None, ge=0)
