from __future__ import annotations

from datetime import datetime

from pydantic import Field, constr

from app.schemas.common import CamelModel

IssueText = constr(min_length=1, max_length=10_000)


class ClassifyIssueRequest(CamelModel):
    text: IssueText  # type: ignore[valid-type]


class ClassifyBatchRequest(CamelModel):
    texts: list[IssueText] = Field(..., min_length=1, max_length=50)  # type: ignore[valid-type]


class ClassificationResultOut(CamelModel):
    category: str
    subcategory: str
    reason: str


class TokenUsageOut(CamelModel):
    input_tokens: int
    estimated_output_tokens: int
    total_tokens: int
    estimated_cost: float


class ClassifyIssueResponse(CamelModel):
    input_id: int
    job_id: int | None = None
    classification_id: int
    result: ClassificationResultOut
    token_usage: TokenUsageOut


class ClassifyBatchResponse(CamelModel):
    results: list[ClassifyIssueResponse]
    total_cost: float
    total_tokens: int


class ClassificationDetail(CamelModel):
    id: int
    job_id: int | None = None
    input_id: int
    category_id: int
    category: str | None = None
    subcategory: str | None = None
    confidence: float | None = None
    explanation: str | None = None
    created_at: datetime | None = None


class ClassificationListResponse(CamelModel):
    items: list[ClassificationDetail]
    total: int


class JobDetail(CamelModel):
    id: int
    input_id: int
    collection_id: int
    status: str
    priority: int
    attempt_count: int
    max_attempts: int
    error_message: str | None = None
    provider: str | None = None
    model: str | None = None
    response_status: int | None = None
    latency_ms: int | None = None
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None
    cost_usd: float | None = None
    scheduled_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None


class InputDetail(CamelModel):
    id: int
    workspace_id: int | None = None
    api_key_id: int | None = None
    source: str | None = None
    raw_text: str
    raw_metadata: dict | None = None
    created_at: datetime | None = None
