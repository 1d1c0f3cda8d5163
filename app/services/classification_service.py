"""Classification pipeline: dedup, job lifecycle, LLM call, category resolution, persistence."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.models import Classification
from app.services.category_resolver import CategoryResolver
from app.services.classification_records import ClassificationRecords
from app.services.errors import (
    CategoryResolutionError,
    LLMFormatError,
    LLMInvocationError,
    TaxonomyNotFoundError,
)
from app.services.job_lifecycle import InvalidJobTransitionError, JobStatus
from app.services.llm_gateway import ClassificationResult, LLMGateway, build_chat_client, default_model_for
from app.services.taxonomy_store import TaxonomyStore
from app.services.token_utils import TokenUsage


logger = logging.getLogger(__name__)

SUCCESS_RESPONSE_STATUS = 200


@dataclass(slots=True)
class ClassificationOutcome:
    input_id: int
    job_id: int | None
    classification_id: int
    result: ClassificationResult
    token_usage: TokenUsage
    cached: bool = False


@dataclass(slots=True)
class BatchOutcome:
    results: list[ClassificationOutcome] = field(default_factory=list)
    total_cost: float = 0.0
    total_tokens: int = 0


class ClassificationService:
    def __init__(self, db: Session, gateway: LLMGateway | None = None) -> None:
        self.db = db
        self._gateway = gateway
        self.taxonomy = TaxonomyStore(db)
        self.records = ClassificationRecords(db)
        self.resolver = CategoryResolver(db)

    def _fail_job(self, job, message: str) -> None:
        try:
            self.records.transition_job(job, JobStatus.FAILED, error_message=message)
        except InvalidJobTransitionError:
            logger.warning("Job %s was already %s; keeping its status", job.id, job.status)

    def gateway_for(self, provider: str | None) -> LLMGateway:
        if self._gateway is not None:
            return self._gateway
        return LLMGateway(build_chat_client(provider))

    def classify_and_store(
        self,
        text: str,
        *,
        collection_name: str | None = None,
        workspace_id: int | None = None,
        api_key_id: int | None = None,
        source: str = "api",
        provider: str | None = None,
        model: str | None = None,
    ) -> ClassificationOutcome:
        started = time.perf_counter()
        collection_name = collection_name or settings.default_collection_name
        taxonomy = self.taxonomy.get_taxonomy(collection_name, workspace_id)
        if not taxonomy:
            raise TaxonomyNotFoundError(f"No categories found for collection: {collection_name}")

        cached = self.records.find_cached_classification(text, collection_name)
        if cached is not None:
            logger.info("Reusing classification %s for input %s", cached.id, cached.input_id)
            return self._cached_outcome(cached)

        collection = self.taxonomy.find_collection(collection_name, workspace_id)
        if collection is None:
            raise TaxonomyNotFoundError(f"Collection not found: {collection_name}")

        gateway = self.gateway_for(provider)
        model = model or default_model_for(gateway.provider)
        input_record = self.records.create_input(
            text,
            source=source,
            workspace_id=workspace_id,
            api_key_id=api_key_id,
            metadata={"collectionName": collection_name},
        )

        job = self.records.create_job(
            input_id=input_record.id,
            collection_id=collection.id,
            provider=gateway.provider,
            model=model,
        )
        self.records.transition_job(job, JobStatus.PROCESSING)

        try:
            response = gateway.classify(text, taxonomy, model)
            category_id = self.resolver.resolve(
                collection.id,
                response.result.category,
                response.result.subcategory,
            )
            if category_id is None:
                raise CategoryResolutionError(response.result.category, response.result.subcategory)
        except (LLMInvocationError, LLMFormatError, CategoryResolutionError) as exc:
            logger.warning("Classification job %s failed: %s", job.id, exc.message)
            self._fail_job(job, exc.message)
            raise
        except Exception as exc:
            logger.exception("Classification job %s failed unexpectedly", job.id)
            self._fail_job(job, f"Unexpected error: {type(exc).__name__}")
            raise

        classification = self.records.create_classification(
            job_id=job.id,
            input_id=input_record.id,
            category_id=category_id,
            explanation=response.result.reason,
        )
        latency_ms = int((time.perf_counter() - started) * 1000)
        self.records.update_job_metrics(
            job,
            response.token_usage,
            latency_ms=latency_ms,
            response_status=SUCCESS_RESPONSE_STATUS,
        )
        self.records.transition_job(job, JobStatus.COMPLETED)

        return ClassificationOutcome(
            input_id=input_record.id,
            job_id=job.id,
            classification_id=classification.id,
            result=response.result,
            token_usage=response.token_usage,
        )

    def classify_batch(self, texts: list[str], **kwargs) -> BatchOutcome:
        """Classify texts one after another; the first failure aborts the whole batch."""
        batch = BatchOutcome()
        for text in texts:
            outcome = self.classify_and_store(text, **kwargs)
            batch.results.append(outcome)
            batch.total_cost += outcome.token_usage.estimated_cost
            batch.total_tokens += outcome.token_usage.total_tokens

        if batch.results:
            logger.info(
                "Batch summary: items=%d tokens=%d cost=$%.6f avg=$%.6f",
                len(batch.results),
                batch.total_tokens,
                batch.total_cost,
                batch.total_cost / len(batch.results),
            )
        return batch

    @staticmethod
    def _cached_outcome(cached: Classification) -> ClassificationOutcome:
        category = cached.category
        parent = category.parent
        return ClassificationOutcome(
            input_id=cached.input_id,
            job_id=cached.job_id,
            classification_id=cached.id,
            result=ClassificationResult(
                category=parent.name if parent else category.name,
                subcategory=category.name,
                reason=cached.explanation or "",
            ),
            token_usage=TokenUsage(),
            cached=True,
        )
