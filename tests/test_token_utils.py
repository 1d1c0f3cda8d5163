from __future__ import annotations

import pytest

from app.services import token_utils
from app.services.token_utils import TokenUsage, calculate_cost, estimate_tokens


class FakeEncoding:
    def encode(self, text: str) -> list[str]:
        return text.split()


def test_estimate_tokens_falls_back_to_char_heuristic():
    assert estimate_tokens("abcdefghij") == 3
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("") == 0


def test_estimate_tokens_uses_model_family_tokenizer(monkeypatch):
    requested = []

    def _encoding_for_model(name):
        requested.append(name)
        return FakeEncoding()

    monkeypatch.setattr(token_utils.tiktoken, "encoding_for_model", _encoding_for_model)

    assert estimate_tokens("one two three", "gpt-4-turbo") == 3
    assert estimate_tokens("one two", "mistralai/mistral-7b-instruct:free") == 2
    assert requested == ["gpt-4", "gpt-3.5-turbo"]


def test_calculate_cost_uses_per_million_pricing():
    assert calculate_cost(1_000_000, 0, "gpt-4") == pytest.approx(30.0)
    assert calculate_cost(1000, 500, "gpt-3.5-turbo") == pytest.approx(0.0005 + 0.00075)


def test_free_and_unknown_models_cost_nothing():
    assert calculate_cost(10_000, 10_000, "mistralai/mistral-7b-instruct:free") == 0.0
    assert calculate_cost(10_000, 10_000, "someone/unlisted-model") == 0.0


def test_token_usage_for_call_totals():
    usage = TokenUsage.for_call(1000, 150, "gpt-4")

    assert usage.total_tokens == 1150
    assert usage.estimated_cost == pytest.approx(0.03 + 0.009)


def test_default_token_usage_is_zero():
    usage = TokenUsage()

    assert (usage.input_tokens, usage.estimated_output_tokens, usage.total_tokens) == (0, 0, 0)
    assert usage.estimated_cost == 0.0
