from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.models import CollectionCategory


class CategoryResolver:
    """Maps the LLM's category/subcategory names back to a subcategory row id.

    Matching is exact and case-sensitive, and the subcategory must hang off the
    named top-level category in the same collection.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def resolve(self, collection_id: int, category_name: str, subcategory_name: str) -> int | None:
        parent_id = self.db.scalar(
            select(CollectionCategory.id)
            .where(
                CollectionCategory.collection_id == collection_id,
                CollectionCategory.name == category_name,
                CollectionCategory.parent_id.is_(None),
            )
            .order_by(CollectionCategory.id)
            .limit(1)
        )
        if parent_id is None:
            return None

        return self.db.scalar(
            select(CollectionCategory.id)
            .where(
                CollectionCategory.collection_id == collection_id,
                CollectionCategory.name == subcategory_name,
                CollectionCategory.parent_id == parent_id,
            )
            .order_by(CollectionCategory.id)
            .limit(1)
        )
