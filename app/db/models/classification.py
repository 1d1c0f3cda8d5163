from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, TIMESTAMP, Float, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.types import BIGINT


class Input(Base):
    __tablename__ = "inputs"

    id: Mapped[int] = mapped_column(BIGINT, primary_key=True, autoincrement=True)
    workspace_id: Mapped[int | None] = mapped_column(BIGINT, ForeignKey("workspaces.id", ondelete="SET NULL"))
    api_key_id: Mapped[int | None] = mapped_column(BIGINT, ForeignKey("api_keys.id", ondelete="SET NULL"))
    source: Mapped[str | None] = mapped_column(String(32))
    raw_text: Mapped[str] = mapped_column(Text, nullable=False)
    raw_metadata: Mapped[dict | None] = mapped_column(JSON)
    created_at: Mapped[datetime | None] = mapped_column(TIMESTAMP, server_default=func.now())


class ClassificationJob(Base):
    __tablename__ = "classification_jobs"

    id: Mapped[int] = mapped_column(BIGINT, primary_key=True, autoincrement=True)
    input_id: Mapped[int] = mapped_column(BIGINT, ForeignKey("inputs.id", ondelete="CASCADE"), nullable=False)
    collection_id: Mapped[int] = mapped_column(
        BIGINT,
        ForeignKey("collections.id", ondelete="CASCADE"),
        nullable=False,
    )
    # Free text at the storage layer; app.services.job_lifecycle.JobStatus owns the vocabulary.
    status: Mapped[str] = mapped_column(String(16), nullable=False, server_default="pending")
    priority: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    attempt_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    max_attempts: Mapped[int] = mapped_column(Integer, nullable=False, server_default="3")
    error_message: Mapped[str | None] = mapped_column(Text)

    provider: Mapped[str | None] = mapped_column(String(32))
    model: Mapped[str | None] = mapped_column(String(128))
    response_status: Mapped[int | None] = mapped_column(Integer)
    latency_ms: Mapped[int | None] = mapped_column(Integer)
    prompt_tokens: Mapped[int | None] = mapped_column(Integer)
    completion_tokens: Mapped[int | None] = mapped_column(Integer)
    total_tokens: Mapped[int | None] = mapped_column(Integer)
    cost_usd: Mapped[float | None] = mapped_column(Float)

    scheduled_at: Mapped[datetime | None] = mapped_column(TIMESTAMP, server_default=func.now())
    started_at: Mapped[datetime | None] = mapped_column(TIMESTAMP)
    completed_at: Mapped[datetime | None] = mapped_column(TIMESTAMP)
    created_at: Mapped[datetime | None] = mapped_column(TIMESTAMP, server_default=func.now())

    input: Mapped[Input] = relationship()

    __table_args__ = (
        Index("ix_classification_jobs_status_started", "status", "started_at"),
        Index("ix_classification_jobs_input", "input_id"),
    )


class Classification(Base):
    __tablename__ = "classifications"

    id: Mapped[int] = mapped_column(BIGINT, primary_key=True, autoincrement=True)
    job_id: Mapped[int | None] = mapped_column(BIGINT, ForeignKey("classification_jobs.id", ondelete="SET NULL"))
    input_id: Mapped[int] = mapped_column(BIGINT, ForeignKey("inputs.id", ondelete="CASCADE"), nullable=False)
    # Always the subcategory row, never its parent.
    category_id: Mapped[int] = mapped_column(
        BIGINT,
        ForeignKey("collection_categories.id", ondelete="CASCADE"),
        nullable=False,
    )
    confidence: Mapped[float | None] = mapped_column(Float)
    explanation: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime | None] = mapped_column(TIMESTAMP, server_default=func.now())

    job: Mapped[ClassificationJob] = relationship()
    category: Mapped["CollectionCategory"] = relationship()

    __table_args__ = (
        Index("ix_classifications_input", "input_id"),
        Index("ix_classifications_job", "job_id"),
    )


__all__ = ["Input", "ClassificationJob", "Classification"]
