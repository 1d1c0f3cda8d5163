"""Reads a collection's category rows and rebuilds the two-level taxonomy tree."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.models import Collection, CollectionCategory


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Subcategory:
    name: str
    description: str | None = None

    @property
    def is_bare(self) -> bool:
        return not self.description


@dataclass(slots=True)
class TaxonomyCategory:
    name: str
    description: str | None = None
    subcategories: list[Subcategory] = field(default_factory=list)

    def to_payload(self) -> dict:
        return {
            "category": self.name,
            "description": self.description,
            "subcategories": [
                sub.name if sub.is_bare else {"name": sub.name, "description": sub.description}
                for sub in self.subcategories
            ],
        }


class TaxonomyStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def find_collection(self, name: str, workspace_id: int | None = None) -> Collection | None:
        query = select(Collection).where(Collection.name == name)
        if workspace_id is not None:
            query = query.where(
                (Collection.workspace_id == workspace_id) | (Collection.workspace_id.is_(None))
            ).order_by(Collection.workspace_id.is_(None), Collection.id)
        else:
            query = query.order_by(Collection.workspace_id.is_not(None), Collection.id)
        return self.db.scalars(query.limit(1)).first()

    def get_taxonomy(self, collection_name: str, workspace_id: int | None = None) -> list[TaxonomyCategory]:
        collection = self.find_collection(collection_name, workspace_id)
        if collection is None:
            logger.warning("Collection %r not found; returning empty taxonomy", collection_name)
            return []
        return self.build_tree(self.list_rows(collection.id))

    def list_rows(self, collection_id: int) -> list[CollectionCategory]:
        query = (
            select(CollectionCategory)
            .where(CollectionCategory.collection_id == collection_id)
            .order_by(
                CollectionCategory.order_index.is_(None),
                CollectionCategory.order_index,
                CollectionCategory.id,
            )
        )
        return list(self.db.scalars(query).all())

    @staticmethod
    def build_tree(rows: list[CollectionCategory]) -> list[TaxonomyCategory]:
        parents = [row for row in rows if row.parent_id is None]
        children = [row for row in rows if row.parent_id is not None]
        return [
            TaxonomyCategory(
                name=parent.name,
                description=parent.description or None,
                subcategories=[
                    Subcategory(name=child.name, description=child.description or None)
                    for child in children
                    if child.parent_id == parent.id
                ],
            )
            for parent in parents
        ]
