"""Token counting and cost estimation for LLM calls."""

from __future__ import annotations

import math
from dataclasses import dataclass

import tiktoken


@dataclass(frozen=True, slots=True)
class ModelPricing:
    input: float
    output: float


# USD per 1,000,000 tokens.
MODEL_PRICING: dict[str, ModelPricing] = {
    "mistralai/mistral-7b-instruct:free": ModelPricing(input=0.0, output=0.0),
    "mistralai/mistral-nemo:free": ModelPricing(input=0.0, output=0.0),
    "deepseek/deepseek-chat-v3-0324:free": ModelPricing(input=0.0, output=0.0),
    "gpt-3.5-turbo": ModelPricing(input=0.5, output=1.5),
    "gpt-4": ModelPricing(input=30.0, output=60.0),
    "gpt-4-turbo": ModelPricing(input=10.0, output=30.0),
    "models/gemini-2.5-flash-lite": ModelPricing(input=0.1, output=0.4),
}

_FREE = ModelPricing(input=0.0, output=0.0)

# Output size assumed before the call, only used for the pre-call estimate.
DEFAULT_OUTPUT_TOKEN_ESTIMATE = 150

_CHARS_PER_TOKEN = 4


@dataclass(slots=True)
class TokenUsage:
    input_tokens: int = 0
    estimated_output_tokens: int = 0
    total_tokens: int = 0
    estimated_cost: float = 0.0

    @classmethod
    def for_call(cls, input_tokens: int, output_tokens: int, model: str) -> "TokenUsage":
        return cls(
            input_tokens=input_tokens,
            estimated_output_tokens=output_tokens,
            total_tokens=input_tokens + output_tokens,
            estimated_cost=calculate_cost(input_tokens, output_tokens, model),
        )


def _encoding_model(model: str) -> str:
    return "gpt-4" if "gpt-4" in model else "gpt-3.5-turbo"


def estimate_tokens(text: str, model: str = "gpt-3.5-turbo") -> int:
    """Count tokens with the model family's tokenizer, or ~4 chars per token if that fails."""
    try:
        encoding = tiktoken.encoding_for_model(_encoding_model(model))
        return len(encoding.encode(text))
    except Exception:
        return math.ceil(len(text) / _CHARS_PER_TOKEN)


def calculate_cost(input_tokens: int, output_tokens: int, model: str) -> float:
    pricing = MODEL_PRICING.get(model, _FREE)
    input_cost = (input_tokens / 1_000_000) * pricing.input
    output_cost = (output_tokens / 1_000_000) * pricing.output
    return input_cost + output_cost
