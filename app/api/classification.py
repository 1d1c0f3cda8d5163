from __future__ import annotations

import logging
from json import JSONDecodeError

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from starlette.responses import JSONResponse

from app.api.deps import require_auth
from app.core.config import settings
from app.db.models import Classification
from app.db.session import get_db
from app.schemas.classification import (
    ClassificationDetail,
    ClassificationListResponse,
    ClassificationResultOut,
    ClassifyBatchRequest,
    ClassifyBatchResponse,
    ClassifyIssueRequest,
    ClassifyIssueResponse,
    InputDetail,
    JobDetail,
    TokenUsageOut,
)
from app.schemas.common import ErrorResponse
from app.services.auth_tokens import AuthContext
from app.services.classification_records import ClassificationRecords
from app.services.classification_service import ClassificationOutcome, ClassificationService
from app.services.errors import ClassificationError
from app.services.llm_gateway import LLMGateway

router = APIRouter(tags=["classification"])
logger = logging.getLogger(__name__)

_FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")
_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def get_gateway() -> LLMGateway | None:
    """Override in tests to inject a gateway; None builds one from settings per request."""
    return None


def get_classification_service(
    db: Session = Depends(get_db),
    gateway: LLMGateway | None = Depends(get_gateway),
) -> ClassificationService:
    return ClassificationService(db, gateway=gateway)


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"code": "bad_request", "message": message})


def _classification_failed(exc: ClassificationError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": "classification_error", "message": exc.message},
    )


async def _read_payload(request: Request) -> dict:
    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        body = await request.json()
        if not isinstance(body, dict):
            raise ValueError("Request body must be a JSON object")
        return body
    if any(kind in content_type for kind in _FORM_TYPES):
        form = await request.form()
        return dict(form)
    raise ValueError(
        "Content-Type must be application/json, application/x-www-form-urlencoded, or multipart/form-data"
    )


def _to_response(outcome: ClassificationOutcome) -> ClassifyIssueResponse:
    usage = outcome.token_usage
    return ClassifyIssueResponse(
        input_id=outcome.input_id,
        job_id=outcome.job_id,
        classification_id=outcome.classification_id,
        result=ClassificationResultOut(**outcome.result.to_dict()),
        token_usage=TokenUsageOut(
            input_tokens=usage.input_tokens,
            estimated_output_tokens=usage.estimated_output_tokens,
            total_tokens=usage.total_tokens,
            estimated_cost=usage.estimated_cost,
        ),
    )


def _to_detail(record: Classification) -> ClassificationDetail:
    category = record.category
    parent = category.parent if category else None
    return ClassificationDetail(
        id=record.id,
        job_id=record.job_id,
        input_id=record.input_id,
        category_id=record.category_id,
        category=(parent.name if parent else category.name) if category else None,
        subcategory=category.name if category else None,
        confidence=record.confidence,
        explanation=record.explanation,
        created_at=record.created_at,
    )


@router.post("/classify-issue", response_model=ClassifyIssueResponse, responses=_ERROR_RESPONSES)
async def classify_issue(
    request: Request,
    auth: AuthContext = Depends(require_auth),
    service: ClassificationService = Depends(get_classification_service),
):
    try:
        payload = ClassifyIssueRequest.model_validate(await _read_payload(request))
    except (ValueError, JSONDecodeError, ValidationError) as exc:
        return _bad_request(str(exc) or "Invalid request body")

    try:
        outcome = await run_in_threadpool(
            service.classify_and_store,
            payload.text,
            collection_name=settings.default_collection_name,
            source="api",
        )
    except ClassificationError as exc:
        logger.warning("classify-issue failed for subject %s: %s", auth.subject_id, exc.message)
        return _classification_failed(exc)

    return _to_response(outcome)


@router.post("/classify-issue/batch", response_model=ClassifyBatchResponse, responses=_ERROR_RESPONSES)
def classify_issue_batch(
    payload: ClassifyBatchRequest,
    auth: AuthContext = Depends(require_auth),
    service: ClassificationService = Depends(get_classification_service),
):
    try:
        batch = service.classify_batch(
            payload.texts,
            collection_name=settings.default_collection_name,
            source="batch",
        )
    except ClassificationError as exc:
        logger.warning("Batch classification failed for subject %s: %s", auth.subject_id, exc.message)
        return _classification_failed(exc)

    return ClassifyBatchResponse(
        results=[_to_response(outcome) for outcome in batch.results],
        total_cost=batch.total_cost,
        total_tokens=batch.total_tokens,
    )


@router.get("/classifications", response_model=ClassificationListResponse)
def list_classifications(
    input_id: int | None = Query(None, alias="inputId"),
    job_id: int | None = Query(None, alias="jobId"),
    category_id: int | None = Query(None, alias="categoryId"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    _: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
) -> ClassificationListResponse:
    rows = ClassificationRecords(db).list_classifications(
        input_id=input_id,
        job_id=job_id,
        category_id=category_id,
        limit=limit,
        offset=offset,
    )
    return ClassificationListResponse(items=[_to_detail(row) for row in rows], total=len(rows))


@router.get("/classifications/{classification_id}", response_model=ClassificationDetail)
def get_classification(
    classification_id: int,
    _: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
) -> ClassificationDetail:
    record = ClassificationRecords(db).get_classification(classification_id)
    if record is None:
        raise HTTPException(status_code=404, detail="classification_not_found")
    return _to_detail(record)


@router.get("/jobs/{job_id}", response_model=JobDetail)
def get_job(job_id: int, _: AuthContext = Depends(require_auth), db: Session = Depends(get_db)) -> JobDetail:
    job = ClassificationRecords(db).get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="job_not_found")
    return JobDetail.model_validate(job)


@router.get("/inputs/{input_id}", response_model=InputDetail)
def get_input(input_id: int, _: AuthContext = Depends(require_auth), db: Session = Depends(get_db)) -> InputDetail:
    record = ClassificationRecords(db).get_input(input_id)
    if record is None:
        raise HTTPException(status_code=404, detail="input_not_found")
    return InputDetail.model_validate(record)
