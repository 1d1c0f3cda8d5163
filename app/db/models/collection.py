from __future__ import annotations

from datetime import datetime

from sqlalchemy import TIMESTAMP, ForeignKey, Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.types import BIGINT


class Collection(Base):
    __tablename__ = "collections"

    id: Mapped[int] = mapped_column(BIGINT, primary_key=True, autoincrement=True)
    workspace_id: Mapped[int | None] = mapped_column(BIGINT, ForeignKey("workspaces.id", ondelete="CASCADE"))
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime | None] = mapped_column(TIMESTAMP, server_default=func.now())

    workspace: Mapped["Workspace"] = relationship(back_populates="collections")
    categories: Mapped[list[CollectionCategory]] = relationship(
        "CollectionCategory",
        back_populates="collection",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("workspace_id", "name", name="uq_collections_workspace_name"),
        Index("ix_collections_name", "name"),
    )


class CollectionCategory(Base):
    """One taxonomy node. parent_id NULL marks a top-level category, otherwise a subcategory."""

    __tablename__ = "collection_categories"

    id: Mapped[int] = mapped_column(BIGINT, primary_key=True, autoincrement=True)
    collection_id: Mapped[int] = mapped_column(
        BIGINT,
        ForeignKey("collections.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    parent_id: Mapped[int | None] = mapped_column(
        BIGINT,
        ForeignKey("collection_categories.id", ondelete="CASCADE"),
    )
    order_index: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime | None] = mapped_column(TIMESTAMP, server_default=func.now())

    collection: Mapped[Collection] = relationship(back_populates="categories")
    parent: Mapped[CollectionCategory] = relationship(
        "CollectionCategory",
        remote_side=[id],
        back_populates="children",
    )
    children: Mapped[list[CollectionCategory]] = relationship(
        "CollectionCategory",
        back_populates="parent",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_collection_categories_lookup", "collection_id", "parent_id", "name"),
    )


__all__ = ["Collection", "CollectionCategory"]
