"""Load a category taxonomy from JSON into a collection, skipping rows that already exist."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.models import Collection, CollectionCategory, Workspace


logger = logging.getLogger(__name__)

DEFAULT_WORKSPACE_NAME = "Default Workspace"


@dataclass(slots=True)
class LoadResult:
    collection_id: int
    categories_created: int = 0
    subcategories_created: int = 0


class TaxonomyLoader:
    def __init__(self, db: Session):
        self.db = db

    def load_from_file(self, file_path: str | Path) -> LoadResult:
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"Taxonomy file not found: {file_path}")

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid taxonomy JSON in {file_path}: {e}") from e

        if not isinstance(data, dict) or not data.get("collection") or not isinstance(data.get("categories"), list):
            raise ValueError("Taxonomy file needs a 'collection' name and a 'categories' list")

        return self.load(
            data["categories"],
            collection_name=data["collection"],
            description=data.get("description"),
        )

    def load(
        self,
        entries: list[dict[str, Any]],
        *,
        collection_name: str,
        description: str | None = None,
    ) -> LoadResult:
        """Insert missing categories and subcategories; existing rows are left untouched."""
        collection = self._get_or_create_collection(collection_name, description)
        result = LoadResult(collection_id=collection.id)

        for position, entry in enumerate(entries, start=1):
            parent = self._find_category(collection.id, entry["category"], parent_id=None)
            if parent is None:
                parent = CollectionCategory(
                    collection_id=collection.id,
                    name=entry["category"],
                    description=entry.get("description"),
                    order_index=position,
                )
                self.db.add(parent)
                self.db.flush()
                result.categories_created += 1
                logger.info("Created category: %s", parent.name)

            for sub_position, sub in enumerate(entry.get("subcategories") or [], start=1):
                if isinstance(sub, str):
                    name, sub_description = sub, None
                else:
                    name, sub_description = sub["name"], sub.get("description")
                if self._find_category(collection.id, name, parent_id=parent.id) is not None:
                    continue
                self.db.add(
                    CollectionCategory(
                        collection_id=collection.id,
                        parent_id=parent.id,
                        name=name,
                        description=sub_description,
                        order_index=sub_position,
                    )
                )
                result.subcategories_created += 1

        self.db.commit()
        return result

    def _get_or_create_collection(self, name: str, description: str | None) -> Collection:
        collection = self.db.scalars(select(Collection).where(Collection.name == name).limit(1)).first()
        if collection is not None:
            logger.info("Using existing collection: %s", name)
            return collection

        workspace = self.db.scalars(select(Workspace).order_by(Workspace.id).limit(1)).first()
        if workspace is None:
            workspace = Workspace(name=DEFAULT_WORKSPACE_NAME, description="Created by taxonomy seeder")
            self.db.add(workspace)
            self.db.flush()
            logger.info("Created workspace: %s", workspace.name)

        collection = Collection(workspace_id=workspace.id, name=name, description=description)
        self.db.add(collection)
        self.db.flush()
        logger.info("Created collection: %s", name)
        return collection

    def _find_category(self, collection_id: int, name: str, parent_id: int | None) -> CollectionCategory | None:
        query = select(CollectionCategory).where(
            CollectionCategory.collection_id == collection_id,
            CollectionCategory.name == name,
            CollectionCategory.parent_id.is_(None) if parent_id is None else CollectionCategory.parent_id == parent_id,
        )
        return self.db.scalars(query.limit(1)).first()
