from __future__ import annotations

import threading

import pytest

from app.core.config import settings
from app.services import llm_gateway
from app.services.chat_client import ChatClientError, FragmentResponse, MessageResponse, TextResponse
from app.services.errors import ConfigurationError, LLMFormatError, LLMInvocationError
from app.services.llm_gateway import (
    ClassificationResult,
    LLMGateway,
    build_chat_client,
    extract_content,
    parse_classification,
    strip_code_fence,
)
from app.services.taxonomy_store import Subcategory, TaxonomyCategory
from conftest import FakeChatClient, json_reply

MODEL = "mistralai/mistral-7b-instruct:free"
TAXONOMY = [TaxonomyCategory(name="Payroll", subcategories=[Subcategory("Payslip request")])]


def test_classify_parses_message_reply():
    client = FakeChatClient(json_reply("Payroll", "Payslip request", "asks for a payslip"))
    gateway = LLMGateway(client, timeout=5)

    outcome = gateway.classify("I need my payslip for March", TAXONOMY, MODEL)

    assert outcome.result == ClassificationResult("Payroll", "Payslip request", "asks for a payslip")
    assert client.models == [MODEL]
    assert "I need my payslip for March" in client.prompts[0]
    usage = outcome.token_usage
    assert usage.input_tokens == -(-len(client.prompts[0]) // 4)
    assert usage.estimated_output_tokens == -(-len(outcome.raw_content) // 4)
    assert usage.total_tokens == usage.input_tokens + usage.estimated_output_tokens
    assert usage.estimated_cost == 0.0


def test_classify_accepts_fenced_json():
    fenced = '```json\n{"category": "Payroll", "subcategory": "Payslip request", "reason": "r"}\n```'
    gateway = LLMGateway(FakeChatClient(TextResponse(fenced)), timeout=5)

    outcome = gateway.classify("payslip", TAXONOMY, MODEL)

    assert outcome.result.category == "Payroll"


def test_classify_accepts_fenced_json_followed_by_prose():
    reply = (
        "Sure!\n```json\n"
        '{"category": "Payroll", "subcategory": "Payslip request", "reason": "r"}'
        "\n```\nLet me know if you need anything else."
    )
    gateway = LLMGateway(FakeChatClient(MessageResponse(reply)), timeout=5)

    assert gateway.classify("payslip", TAXONOMY, MODEL).result.subcategory == "Payslip request"


def test_fenced_reply_parses_to_result():
    content = '```json\n{"category":"A","subcategory":"B","reason":"C"}\n```'

    assert parse_classification(content) == ClassificationResult("A", "B", "C")


def test_bare_object_inside_prose_is_parsed():
    reply = 'The answer is {"category": "Payroll", "subcategory": "Payslip request", "reason": "r"} as requested.'

    assert parse_classification(reply).category == "Payroll"


def test_classify_joins_fragment_reply():
    reply = FragmentResponse(('{"category": "Payroll", ', '"subcategory": "Payslip request", "reason": "r"}'))
    gateway = LLMGateway(FakeChatClient(reply), timeout=5)

    assert gateway.classify("payslip", TAXONOMY, MODEL).result.subcategory == "Payslip request"


def test_non_json_reply_raises_format_error():
    gateway = LLMGateway(FakeChatClient(MessageResponse("I think it's payroll")), timeout=5)

    with pytest.raises(LLMFormatError) as exc:
        gateway.classify("payslip", TAXONOMY, MODEL)

    assert exc.value.message == "LLM returned an invalid response"
    assert exc.value.raw_content == "I think it's payroll"


def test_missing_fields_raise_format_error():
    with pytest.raises(LLMFormatError):
        parse_classification('{"category": "Payroll", "reason": "no subcategory"}')
    with pytest.raises(LLMFormatError):
        parse_classification('["Payroll", "Payslip request"]')


def test_client_error_becomes_invocation_error():
    gateway = LLMGateway(FakeChatClient(ChatClientError("HTTP 503", status_code=503)), timeout=5)

    with pytest.raises(LLMInvocationError, match="HTTP 503"):
        gateway.classify("payslip", TAXONOMY, MODEL)


@pytest.mark.parametrize("error", [AttributeError("'NoneType' object has no attribute 'get'"), RuntimeError("boom")])
def test_unexpected_client_exception_becomes_invocation_error(error):
    gateway = LLMGateway(FakeChatClient(error), timeout=5)

    with pytest.raises(LLMInvocationError, match=type(error).__name__):
        gateway.classify("payslip", TAXONOMY, MODEL)


def test_unknown_reply_shape_becomes_invocation_error():
    gateway = LLMGateway(FakeChatClient({"content": "raw dict"}), timeout=5)

    with pytest.raises(LLMInvocationError):
        gateway.classify("payslip", TAXONOMY, MODEL)


def test_slow_provider_times_out():
    release = threading.Event()

    class SlowClient(FakeChatClient):
        def complete(self, prompt, *, model):
            release.wait(5)
            return json_reply("Payroll", "Payslip request")

    gateway = LLMGateway(SlowClient(), timeout=0.05)
    try:
        with pytest.raises(LLMInvocationError, match="timed out"):
            gateway.classify("payslip", TAXONOMY, MODEL)
    finally:
        release.set()


def test_strip_code_fence_variants():
    assert strip_code_fence('```\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fence('  {"a": 1}  ') == '{"a": 1}'
    assert strip_code_fence('Here you go:\n```json\n{"a": 1}\n```\nHope that helps.') == '{"a": 1}'


def test_extract_content_rejects_unknown_shape():
    with pytest.raises(TypeError):
        extract_content({"content": "raw dict"})


def test_build_chat_client_requires_key(monkeypatch):
    monkeypatch.setattr(settings, "openrouter_api_key", None)
    with pytest.raises(ConfigurationError):
        build_chat_client("openrouter")

    monkeypatch.setattr(settings, "gemini_api_key", None)
    with pytest.raises(ConfigurationError):
        build_chat_client("gemini")

    with pytest.raises(ConfigurationError, match="Unsupported"):
        build_chat_client("carrier-pigeon")


def test_build_chat_client_openrouter(monkeypatch):
    monkeypatch.setattr(settings, "openrouter_api_key", "sk-test")

    client = build_chat_client("openrouter")

    assert client.provider == "openrouter"
    assert client.api_key == "sk-test"


def test_default_model_depends_on_provider(monkeypatch):
    monkeypatch.setattr(settings, "llm_model", "openai/gpt-4")
    monkeypatch.setattr(settings, "gemini_model", "models/gemini-2.5-flash-lite")

    assert llm_gateway.default_model_for("openrouter") == "openai/gpt-4"
    assert llm_gateway.default_model_for("gemini") == "models/gemini-2.5-flash-lite"
