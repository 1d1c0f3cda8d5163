from __future__ import annotations

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.models import Collection, CollectionCategory, Workspace
from app.schemas.taxonomy import (
    CategoryCreate,
    CategoryListResponse,
    CategoryOut,
    CategoryUpdate,
    CollectionCreate,
    CollectionListResponse,
    CollectionOut,
    CollectionUpdate,
    TaxonomyCategoryOut,
)
from app.services.taxonomy_store import TaxonomyStore


class CategoryService:
    """CRUD over collections and their category rows.

    Writes go to the same rows TaxonomyStore reads on every classification
    request, so there is nothing to invalidate.
    """

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------ #
    # Collections
    # ------------------------------------------------------------------ #
    def list_collections(self, workspace_id: int | None = None) -> CollectionListResponse:
        query = select(Collection).order_by(Collection.id)
        if workspace_id is not None:
            query = query.where(Collection.workspace_id == workspace_id)
        rows = self.db.scalars(query).all()
        return CollectionListResponse(
            collections=[CollectionOut.model_validate(row) for row in rows],
            total=len(rows),
        )

    def get_collection(self, collection_id: int) -> CollectionOut:
        return CollectionOut.model_validate(self._get_collection(collection_id))

    def create_collection(self, payload: CollectionCreate) -> CollectionOut:
        if payload.workspace_id is not None and self.db.get(Workspace, payload.workspace_id) is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="workspace_not_found")
        collection = Collection(
            name=payload.name,
            description=payload.description,
            workspace_id=payload.workspace_id,
        )
        self.db.add(collection)
        self._commit_or_conflict("collection_name_taken")
        self.db.refresh(collection)
        return CollectionOut.model_validate(collection)

    def update_collection(self, collection_id: int, payload: CollectionUpdate) -> CollectionOut:
        collection = self._get_collection(collection_id)
        if payload.name is not None:
            collection.name = payload.name
        if payload.description is not None:
            collection.description = payload.description
        self._commit_or_conflict("collection_name_taken")
        self.db.refresh(collection)
        return CollectionOut.model_validate(collection)

    def delete_collection(self, collection_id: int) -> None:
        collection = self._get_collection(collection_id)
        self.db.delete(collection)
        self.db.commit()

    def get_taxonomy(self, collection_id: int) -> list[TaxonomyCategoryOut]:
        collection = self._get_collection(collection_id)
        store = TaxonomyStore(self.db)
        tree = store.build_tree(store.list_rows(collection.id))
        return [TaxonomyCategoryOut.model_validate(node.to_payload()) for node in tree]

    # ------------------------------------------------------------------ #
    # Categories
    # ------------------------------------------------------------------ #
    def list_categories(self, collection_id: int) -> CategoryListResponse:
        collection = self._get_collection(collection_id)
        rows = TaxonomyStore(self.db).list_rows(collection.id)
        return CategoryListResponse(
            categories=[CategoryOut.model_validate(row) for row in rows],
            total=len(rows),
        )

    def get_category(self, category_id: int) -> CategoryOut:
        return CategoryOut.model_validate(self._get_category(category_id))

    def create_category(self, payload: CategoryCreate) -> CategoryOut:
        collection = self._get_collection(payload.collection_id)
        if payload.parent_id is not None:
            self._check_parent(collection.id, payload.parent_id, category_id=None)

        order_index = payload.order_index
        if order_index is None:
            order_index = (
                self.db.scalar(
                    select(func.max(CollectionCategory.order_index)).where(
                        CollectionCategory.collection_id == collection.id,
                        CollectionCategory.parent_id.is_(None)
                        if payload.parent_id is None
                        else CollectionCategory.parent_id == payload.parent_id,
                    )
                )
                or 0
            ) + 1

        category = CollectionCategory(
            collection_id=collection.id,
            name=payload.name,
            description=payload.description,
            parent_id=payload.parent_id,
            order_index=order_index,
        )
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        return CategoryOut.model_validate(category)

    def update_category(self, category_id: int, payload: CategoryUpdate) -> CategoryOut:
        category = self._get_category(category_id)
        if payload.parent_id is not None and payload.parent_id != category.parent_id:
            self._check_parent(category.collection_id, payload.parent_id, category_id=category.id)
            if self._has_children(category.id):
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="category_has_children")
            category.parent_id = payload.parent_id
        if payload.name is not None:
            category.name = payload.name
        if payload.description is not None:
            category.description = payload.description
        if payload.order_index is not None:
            category.order_index = payload.order_index
        self.db.commit()
        self.db.refresh(category)
        return CategoryOut.model_validate(category)

    def delete_category(self, category_id: int) -> None:
        category = self._get_category(category_id)
        self.db.delete(category)
        self.db.commit()

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    def _get_collection(self, collection_id: int) -> Collection:
        collection = self.db.get(Collection, collection_id)
        if collection is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="collection_not_found")
        return collection

    def _get_category(self, category_id: int) -> CollectionCategory:
        category = self.db.get(CollectionCategory, category_id)
        if category is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="category_not_found")
        return category

    def _has_children(self, category_id: int) -> bool:
        query = select(func.count()).select_from(CollectionCategory).where(CollectionCategory.parent_id == category_id)
        return self.db.scalar(query) > 0

    def _check_parent(self, collection_id: int, parent_id: int, category_id: int | None) -> None:
        parent = self.db.get(CollectionCategory, parent_id)
        if parent is None or parent.collection_id != collection_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="parent_not_in_collection")
        # The taxonomy is two levels deep: a parent must itself be top-level.
        if parent.parent_id is not None or parent.id == category_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="parent_must_be_top_level")

    def _commit_or_conflict(self, detail: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail) from exc
