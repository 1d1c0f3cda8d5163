from __future__ import annotations

from types import SimpleNamespace

import pytest

from app.services import gemini_client
from app.services.chat_client import ChatClientError, FragmentResponse, TextResponse
from app.services.gemini_client import GeminiCircuitOpenError, GeminiClient


class DummyModel:
    def __init__(self, name: str, outcomes: list) -> None:
        self.name = name
        self.outcomes = outcomes
        self.calls = 0

    def generate_content(self, prompt, generation_config, request_options):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _reply_with_parts(*texts: str):
    parts = [SimpleNamespace(text=text) for text in texts]
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))], text="".join(texts))


@pytest.fixture()
def outcomes(monkeypatch) -> list:
    queued: list = []
    monkeypatch.setattr(gemini_client.genai, "configure", lambda api_key: None)
    monkeypatch.setattr(gemini_client.genai, "GenerativeModel", lambda name: DummyModel(name, queued))
    return queued


def test_candidate_parts_become_fragments(outcomes):
    outcomes.append(_reply_with_parts('{"category": ', '"Payroll"}'))
    client = GeminiClient(api_key="key", timeout=5)

    response = client.complete("classify", model="models/gemini-2.5-flash-lite")

    assert response == FragmentResponse(('{"category": ', '"Payroll"}'))


def test_falls_back_to_response_text(outcomes):
    outcomes.append(SimpleNamespace(candidates=[], text='{"category": "Payroll"}'))
    client = GeminiClient(api_key="key", timeout=5)

    assert client.complete("classify", model="m") == TextResponse('{"category": "Payroll"}')


def test_circuit_opens_after_repeated_failures(outcomes):
    outcomes.extend([RuntimeError("boom")] * 3)
    client = GeminiClient(api_key="key", timeout=5)

    for _ in range(3):
        with pytest.raises(ChatClientError):
            client.complete("classify", model="m")

    with pytest.raises(GeminiCircuitOpenError):
        client.complete("classify", model="m")


def test_api_key_is_required():
    with pytest.raises(ValueError):
        GeminiClient(api_key="", timeout=5)


class BlockedReply:
    candidates: list = []

    @property
    def text(self) -> str:
        raise ValueError("The response has no parts; finish_reason is SAFETY")


def test_blocked_reply_is_a_client_error(outcomes):
    outcomes.append(BlockedReply())
    client = GeminiClient(api_key="key", timeout=5)

    with pytest.raises(ChatClientError, match="no usable text"):
        client.complete("classify", model="m")
