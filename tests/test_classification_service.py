from __future__ import annotations

import pytest
from sqlalchemy import func, select

from app.core.config import settings
from app.db.models import Classification, ClassificationJob, CollectionCategory, Input
from app.services.chat_client import ChatClientError, MessageResponse
from app.services.classification_service import ClassificationService
from app.services.errors import (
    CategoryResolutionError,
    ConfigurationError,
    LLMFormatError,
    LLMInvocationError,
    TaxonomyNotFoundError,
)
from app.services.llm_gateway import LLMGateway
from conftest import FakeChatClient, json_reply


def _service(db_session, *responses) -> tuple[ClassificationService, FakeChatClient]:
    client = FakeChatClient(*responses)
    return ClassificationService(db_session, gateway=LLMGateway(client, timeout=5)), client


def _count(db_session, model) -> int:
    return db_session.scalar(select(func.count()).select_from(model))


def test_classify_and_store_persists_everything(db_session, hr_collection):
    service, client = _service(db_session, json_reply("Payroll", "Payslip request", "asks for a payslip"))

    outcome = service.classify_and_store("I need my payslip for March")

    assert outcome.result.to_dict() == {
        "category": "Payroll",
        "subcategory": "Payslip request",
        "reason": "asks for a payslip",
    }
    assert outcome.cached is False
    assert client.calls == 1
    assert client.models == [settings.llm_model]

    record = db_session.get(Input, outcome.input_id)
    assert record.raw_text == "I need my payslip for March"
    assert record.source == "api"
    assert record.raw_metadata == {"collectionName": "HR Issues"}

    job = db_session.get(ClassificationJob, outcome.job_id)
    assert job.status == "completed"
    assert job.collection_id == hr_collection
    assert job.provider == "fake"
    assert job.response_status == 200
    assert job.started_at is not None and job.completed_at is not None
    assert job.total_tokens == outcome.token_usage.total_tokens
    assert job.latency_ms is not None and job.latency_ms >= 0

    classification = db_session.get(Classification, outcome.classification_id)
    assert classification.job_id == job.id
    assert classification.explanation == "asks for a payslip"
    category = db_session.get(CollectionCategory, classification.category_id)
    assert category.name == "Payslip request"
    assert category.parent.name == "Payroll"


def test_unknown_category_fails_job_without_classification(db_session, hr_collection):
    service, _ = _service(db_session, json_reply("Unknown", "X"))

    with pytest.raises(CategoryResolutionError) as exc:
        service.classify_and_store("Something odd")

    assert "'Unknown' / 'X'" in exc.value.message
    job = db_session.scalars(select(ClassificationJob)).one()
    assert job.status == "failed"
    assert job.error_message == exc.value.message
    assert job.completed_at is not None
    assert _count(db_session, Input) == 1
    assert _count(db_session, Classification) == 0


@pytest.mark.parametrize(
    "reply, error",
    [
        (MessageResponse("not json at all"), LLMFormatError),
        (ChatClientError("HTTP 500 from provider", status_code=500), LLMInvocationError),
    ],
)
def test_llm_failures_mark_job_failed(db_session, hr_collection, reply, error):
    service, _ = _service(db_session, reply)

    with pytest.raises(error):
        service.classify_and_store("My overtime was not paid")

    job = db_session.scalars(select(ClassificationJob)).one()
    assert job.status == "failed"
    assert job.error_message
    assert _count(db_session, Classification) == 0


def test_unexpected_client_exception_marks_job_failed(db_session, hr_collection):
    service, _ = _service(db_session, AttributeError("'str' object has no attribute 'get'"))

    with pytest.raises(LLMInvocationError):
        service.classify_and_store("My overtime was not paid")

    job = db_session.scalars(select(ClassificationJob)).one()
    assert job.status == "failed"
    assert "AttributeError" in job.error_message
    assert _count(db_session, Classification) == 0


def test_unexpected_pipeline_exception_fails_job_and_propagates(db_session, hr_collection, monkeypatch):
    service, _ = _service(db_session, json_reply("Payroll", "Payslip request"))

    def _broken(*args):
        raise RuntimeError("database went away")

    monkeypatch.setattr(service.resolver, "resolve", _broken)

    with pytest.raises(RuntimeError, match="database went away"):
        service.classify_and_store("I need my payslip")

    job = db_session.scalars(select(ClassificationJob)).one()
    assert job.status == "failed"
    assert job.error_message == "Unexpected error: RuntimeError"
    assert job.completed_at is not None
    assert _count(db_session, Classification) == 0


def test_repeated_text_reuses_first_classification(db_session, hr_collection):
    service, client = _service(db_session, json_reply("Payroll", "Payslip request", "first"))

    first = service.classify_and_store("I need my payslip for March")
    second = service.classify_and_store("I need my payslip for March")

    assert client.calls == 1
    assert second.cached is True
    assert second.classification_id == first.classification_id
    assert second.input_id == first.input_id
    assert second.result == first.result
    assert second.token_usage.total_tokens == 0
    assert second.token_usage.estimated_cost == 0.0
    assert _count(db_session, Input) == 1
    assert _count(db_session, ClassificationJob) == 1


def test_failed_attempt_is_not_reused(db_session, hr_collection):
    service, client = _service(
        db_session,
        MessageResponse("garbage"),
        json_reply("Attendance", "Leave approval"),
    )

    with pytest.raises(LLMFormatError):
        service.classify_and_store("Please approve my leave")
    outcome = service.classify_and_store("Please approve my leave")

    assert client.calls == 2
    assert outcome.cached is False
    assert outcome.result.subcategory == "Leave approval"


def test_missing_collection_is_rejected_before_any_write(db_session, hr_collection):
    service, client = _service(db_session, json_reply("Payroll", "Payslip request"))

    with pytest.raises(TaxonomyNotFoundError) as exc:
        service.classify_and_store("payslip", collection_name="Facilities")

    assert exc.value.status_code == 404
    assert client.calls == 0
    assert _count(db_session, Input) == 0


def test_missing_provider_key_is_a_configuration_error(db_session, hr_collection, monkeypatch):
    monkeypatch.setattr(settings, "llm_provider", "openrouter")
    monkeypatch.setattr(settings, "openrouter_api_key", None)

    with pytest.raises(ConfigurationError):
        ClassificationService(db_session).classify_and_store("payslip")

    assert _count(db_session, Input) == 0


def test_batch_aggregates_usage(db_session, hr_collection):
    service, client = _service(
        db_session,
        json_reply("Payroll", "Payslip request"),
        json_reply("Benefits", "Medical claim"),
    )

    batch = service.classify_batch(
        ["I need my payslip", "My medical claim was rejected"],
        source="batch",
    )

    assert [outcome.result.category for outcome in batch.results] == ["Payroll", "Benefits"]
    assert batch.total_tokens == sum(outcome.token_usage.total_tokens for outcome in batch.results)
    assert batch.total_cost == 0.0
    assert client.calls == 2
    sources = db_session.scalars(select(Input.source)).all()
    assert sources == ["batch", "batch"]


def test_batch_stops_at_first_failure(db_session, hr_collection):
    service, client = _service(
        db_session,
        json_reply("Payroll", "Payslip request"),
        json_reply("Unknown", "X"),
        json_reply("Benefits", "Medical claim"),
    )

    with pytest.raises(CategoryResolutionError):
        service.classify_batch(["payslip", "mystery", "medical claim"])

    assert client.calls == 2
    statuses = db_session.scalars(select(ClassificationJob.status).order_by(ClassificationJob.id)).all()
    assert statuses == ["completed", "failed"]
    assert _count(db_session, Classification) == 1
