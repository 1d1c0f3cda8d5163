from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, constr

from app.schemas.common import CamelModel

Name = constr(strip_whitespace=True, min_length=1, max_length=255)


class CollectionCreate(CamelModel):
    name: Name  # type: ignore[valid-type]
    description: str | None = None
    workspace_id: int | None = None


class CollectionUpdate(CamelModel):
    name: Name | None = None  # type: ignore[valid-type]
    description: str | None = None


class CollectionOut(CamelModel):
    id: int
    workspace_id: int | None = None
    name: str
    description: str | None = None
    created_at: datetime | None = None


class CollectionListResponse(CamelModel):
    collections: list[CollectionOut]
    total: int


class CategoryCreate(CamelModel):
    collection_id: int
    name: Name  # type: ignore[valid-type]
    description: str | None = None
    parent_id: int | None = None
    order_index: int | None = Field(None, ge=0)


class CategoryUpdate(CamelModel):
    name: Name | None = None  # type: ignore[valid-type]
    description: str | None = None
    parent_id: int | None = None
    order_index: int | None = Field(None, ge=0)


class CategoryOut(CamelModel):
    id: int
    collection_id: int
    name: str
    description: str | None = None
    parent_id: int | None = None
    order_index: int | None = None
    created_at: datetime | None = None


class CategoryListResponse(CamelModel):
    categories: list[CategoryOut]
    total: int


class SubcategoryOut(BaseModel):
    name: str
    description: str | None = None


class TaxonomyCategoryOut(BaseModel):
    category: str
    description: str | None = None
    subcategories: list[str | SubcategoryOut]
