"""Row-level operations on inputs, jobs and classifications.

Each write commits on its own; nothing here spans the whole job lifecycle.
This is also the only place where job status text is converted to and from
``JobStatus``.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, aliased, joinedload

from app.db.models import Classification, ClassificationJob, Collection, CollectionCategory, Input
from app.services.errors import PersistenceError
from app.services.job_lifecycle import InvalidJobTransitionError, JobStatus, check_transition
from app.services.token_utils import TokenUsage


logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class ClassificationRecords:
    def __init__(self, db: Session) -> None:
        self.db = db

    # ------------------------------------------------------------------ #
    # Inputs
    # ------------------------------------------------------------------ #
    def create_input(
        self,
        raw_text: str,
        *,
        source: str,
        workspace_id: int | None = None,
        api_key_id: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Input:
        record = Input(
            raw_text=raw_text,
            source=source,
            workspace_id=workspace_id,
            api_key_id=api_key_id,
            raw_metadata=metadata,
        )
        return self._add(record, "input")

    def get_input(self, input_id: int) -> Input | None:
        return self.db.get(Input, input_id)

    def find_cached_classification(self, raw_text: str, collection_name: str) -> Classification | None:
        """Earliest completed classification of identical text against a collection of that name."""
        query = (
            select(Classification)
            .join(Input, Classification.input_id == Input.id)
            .join(ClassificationJob, Classification.job_id == ClassificationJob.id)
            .join(Collection, ClassificationJob.collection_id == Collection.id)
            .where(
                Input.raw_text == raw_text,
                Collection.name == collection_name,
                ClassificationJob.status == JobStatus.COMPLETED.value,
            )
            .options(joinedload(Classification.category).joinedload(CollectionCategory.parent))
            .order_by(Classification.id)
            .limit(1)
        )
        return self.db.scalars(query).first()

    # ------------------------------------------------------------------ #
    # Jobs
    # ------------------------------------------------------------------ #
    def create_job(
        self,
        *,
        input_id: int,
        collection_id: int,
        provider: str,
        model: str,
        priority: int = 0,
    ) -> ClassificationJob:
        job = ClassificationJob(
            input_id=input_id,
            collection_id=collection_id,
            status=JobStatus.PENDING.value,
            priority=priority,
            provider=provider,
            model=model,
            scheduled_at=utcnow(),
        )
        return self._add(job, "classification job")

    def get_job(self, job_id: int) -> ClassificationJob | None:
        return self.db.get(ClassificationJob, job_id)

    @staticmethod
    def job_status(job: ClassificationJob) -> JobStatus:
        return JobStatus(job.status)

    def transition_job(
        self,
        job: ClassificationJob,
        target: JobStatus,
        *,
        error_message: str | None = None,
    ) -> ClassificationJob:
        current = self.job_status(job)
        check_transition(current, target)
        values: dict[str, Any] = {"status": target.value}
        if target is JobStatus.PROCESSING:
            values["started_at"] = utcnow()
            values["attempt_count"] = (job.attempt_count or 0) + 1
        if target.is_terminal:
            values["completed_at"] = utcnow()
        if error_message:
            values["error_message"] = error_message

        # Only applies if nobody else (e.g. the stale-job reaper) moved the row first.
        statement = (
            update(ClassificationJob)
            .where(ClassificationJob.id == job.id, ClassificationJob.status == current.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.db.execute(statement)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Failed to persist classification job: %s", exc)
            raise PersistenceError("Failed to persist classification job") from exc
        if result.rowcount == 0:
            self.db.rollback()
            self.db.refresh(job)
            logger.warning("Job %s moved to %s concurrently; refusing %s", job.id, job.status, target.value)
            raise InvalidJobTransitionError(self.job_status(job), target)
        self._commit("classification job")
        self.db.refresh(job)
        return job

    def update_job_metrics(
        self,
        job: ClassificationJob,
        usage: TokenUsage,
        *,
        latency_ms: int,
        response_status: int,
    ) -> ClassificationJob:
        job.prompt_tokens = usage.input_tokens
        job.completion_tokens = usage.estimated_output_tokens
        job.total_tokens = usage.total_tokens
        job.cost_usd = usage.estimated_cost
        job.latency_ms = latency_ms
        job.response_status = response_status
        self._commit("classification job")
        return job

    def list_stale_jobs(self, started_before: datetime) -> list[ClassificationJob]:
        query = select(ClassificationJob).where(
            (
                (ClassificationJob.status == JobStatus.PROCESSING.value)
                & (ClassificationJob.started_at < started_before)
            )
            | (
                (ClassificationJob.status == JobStatus.PENDING.value)
                & (ClassificationJob.scheduled_at < started_before)
            )
        )
        return list(self.db.scalars(query.order_by(ClassificationJob.id)).all())

    # ------------------------------------------------------------------ #
    # Classifications
    # ------------------------------------------------------------------ #
    def create_classification(
        self,
        *,
        job_id: int,
        input_id: int,
        category_id: int,
        explanation: str,
        confidence: float | None = None,
    ) -> Classification:
        record = Classification(
            job_id=job_id,
            input_id=input_id,
            category_id=category_id,
            explanation=explanation,
            confidence=confidence,
        )
        return self._add(record, "classification")

    def get_classification(self, classification_id: int) -> Classification | None:
        query = (
            select(Classification)
            .where(Classification.id == classification_id)
            .options(joinedload(Classification.category).joinedload(CollectionCategory.parent))
        )
        return self.db.scalars(query).first()

    def list_classifications(
        self,
        *,
        input_id: int | None = None,
        job_id: int | None = None,
        category_id: int | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Classification]:
        query = select(Classification).options(
            joinedload(Classification.category).joinedload(CollectionCategory.parent)
        )
        if input_id is not None:
            query = query.where(Classification.input_id == input_id)
        if job_id is not None:
            query = query.where(Classification.job_id == job_id)
        if category_id is not None:
            parent = aliased(CollectionCategory)
            # A parent category id matches every classification under it.
            query = query.join(CollectionCategory, Classification.category_id == CollectionCategory.id).outerjoin(
                parent, CollectionCategory.parent_id == parent.id
            ).where((CollectionCategory.id == category_id) | (parent.id == category_id))
        query = query.order_by(Classification.id.desc()).offset(offset).limit(limit)
        return list(self.db.scalars(query).unique().all())

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    def _add(self, record, label: str):
        self.db.add(record)
        self._commit(label)
        self.db.refresh(record)
        return record

    def _commit(self, label: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Failed to persist %s: %s", label, exc)
            raise PersistenceError(f"Failed to persist {label}") from exc
