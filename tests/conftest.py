from __future__ import annotations

import json
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.base import Base
from app.services import token_utils
from app.services.chat_client import ChatClientError, ChatResponse, MessageResponse
from app.services.taxonomy_loader import TaxonomyLoader

HR_TAXONOMY_FILE = Path(__file__).resolve().parents[1] / "data" / "taxonomy" / "hr_issues.json"


class FakeChatClient:
    """Returns queued responses in order; an exception in the queue is raised instead."""

    provider = "fake"

    def __init__(self, *responses: ChatResponse | Exception) -> None:
        self.responses = list(responses)
        self.prompts: list[str] = []
        self.models: list[str] = []

    def complete(self, prompt: str, *, model: str) -> ChatResponse:
        self.prompts.append(prompt)
        self.models.append(model)
        if not self.responses:
            raise ChatClientError("no response queued")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def calls(self) -> int:
        return len(self.prompts)


def json_reply(category: str, subcategory: str, reason: str = "matched") -> MessageResponse:
    return MessageResponse(json.dumps({"category": category, "subcategory": subcategory, "reason": reason}))


@pytest.fixture(autouse=True)
def offline_tokenizer(monkeypatch):
    # tiktoken downloads encodings on first use; force the character heuristic.
    def _unavailable(model_name):
        raise KeyError(model_name)

    monkeypatch.setattr(token_utils.tiktoken, "encoding_for_model", _unavailable)


@pytest.fixture()
def db_session() -> Session:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


@pytest.fixture()
def hr_collection(db_session):
    """Seeds the bundled HR taxonomy and returns the collection id."""
    return TaxonomyLoader(db_session).load_from_file(HR_TAXONOMY_FILE).collection_id
