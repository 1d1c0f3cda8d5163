"""LLM-backed classifier: prompt rendering, provider call and response parsing."""

from __future__ import annotations

import json
import logging
import re
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass

from app.core.config import settings
from app.services.chat_client import (
    ChatClient,
    ChatClientError,
    ChatCompletionClient,
    ChatResponse,
    FragmentResponse,
    MessageResponse,
    TextResponse,
)
from app.services.errors import ClassificationError, ConfigurationError, LLMFormatError, LLMInvocationError
from app.services.prompt_templates import render_classification_prompt
from app.services.taxonomy_store import TaxonomyCategory
from app.services.token_utils import DEFAULT_OUTPUT_TOKEN_ESTIMATE, TokenUsage, estimate_tokens


logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL | re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)
_RESULT_FIELDS = ("category", "subcategory", "reason")

# Shared by all requests; a timed-out call keeps its worker until the provider returns.
_EXECUTOR = ThreadPoolExecutor(max_workers=8, thread_name_prefix="llm-call")


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    category: str
    subcategory: str
    reason: str

    def to_dict(self) -> dict[str, str]:
        return {"category": self.category, "subcategory": self.subcategory, "reason": self.reason}


@dataclass(slots=True)
class GatewayResult:
    result: ClassificationResult
    token_usage: TokenUsage
    raw_content: str


def build_chat_client(provider: str | None = None) -> ChatClient:
    provider = provider or settings.llm_provider
    if provider == "gemini":
        if not settings.gemini_api_key:
            raise ConfigurationError("GEMINI_API_KEY is not configured")
        from app.services.gemini_client import get_gemini_client

        return get_gemini_client()
    if provider in {"openrouter", "openai"}:
        if not settings.openrouter_api_key:
            raise ConfigurationError("OPENROUTER_API_KEY is not configured")
        client = ChatCompletionClient(api_key=settings.openrouter_api_key)
        client.provider = provider
        return client
    raise ConfigurationError(f"Unsupported LLM provider: {provider}")


def default_model_for(provider: str) -> str:
    if provider == "gemini":
        return settings.gemini_model
    return settings.llm_model


def extract_content(response: ChatResponse) -> str:
    match response:
        case TextResponse(text=text):
            return text
        case MessageResponse(content=content):
            return content
        case FragmentResponse(fragments=fragments):
            return "".join(fragments)
        case _:
            raise TypeError(f"Unknown chat response shape: {type(response).__name__}")


def strip_code_fence(content: str) -> str:
    match = _FENCE_RE.search(content)
    if match:
        return match.group(1).strip()
    return content.strip()


def _load_json(text: str):
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None


def parse_classification(content: str) -> ClassificationResult:
    payload = _load_json(strip_code_fence(content))
    if payload is None:
        # Models sometimes wrap the object in prose; fall back to the outermost braces.
        span = _OBJECT_RE.search(content)
        payload = _load_json(span.group(0)) if span else None
    if payload is None:
        logger.error("LLM returned non-JSON content: %r", content)
        raise LLMFormatError(content)

    if not isinstance(payload, dict) or not all(isinstance(payload.get(key), str) for key in _RESULT_FIELDS):
        logger.error("LLM returned JSON without the expected fields: %r", content)
        raise LLMFormatError(content)

    return ClassificationResult(
        category=payload["category"],
        subcategory=payload["subcategory"],
        reason=payload["reason"],
    )


class LLMGateway:
    def __init__(self, client: ChatClient, timeout: float | None = None) -> None:
        self.client = client
        self.timeout = timeout or settings.llm_timeout_sec

    @property
    def provider(self) -> str:
        return self.client.provider

    def classify(self, text: str, taxonomy: list[TaxonomyCategory], model: str) -> GatewayResult:
        prompt = render_classification_prompt(text, taxonomy)

        input_tokens = estimate_tokens(prompt, model)
        estimate = TokenUsage.for_call(input_tokens, DEFAULT_OUTPUT_TOKEN_ESTIMATE, model)
        logger.info(
            "Token estimation: input=%d output~%d total~%d cost~$%.6f",
            estimate.input_tokens,
            estimate.estimated_output_tokens,
            estimate.total_tokens,
            estimate.estimated_cost,
        )

        response = self._invoke(prompt, model)
        try:
            content = extract_content(response)
        except TypeError as exc:
            raise LLMInvocationError(str(exc)) from exc

        output_tokens = estimate_tokens(content, model)
        usage = TokenUsage.for_call(input_tokens, output_tokens, model)
        logger.info(
            "Actual usage: output=%d total=%d cost=$%.6f",
            usage.estimated_output_tokens,
            usage.total_tokens,
            usage.estimated_cost,
        )

        return GatewayResult(result=parse_classification(content), token_usage=usage, raw_content=content)

    def _invoke(self, prompt: str, model: str) -> ChatResponse:
        future = _EXECUTOR.submit(self.client.complete, prompt, model=model)
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeoutError:
            future.cancel()
            raise LLMInvocationError(f"LLM call timed out after {self.timeout}s") from None
        except ChatClientError as exc:
            raise LLMInvocationError(str(exc)) from exc
        except ClassificationError:
            raise
        except Exception as exc:
            logger.exception("Chat client %s failed unexpectedly", self.provider)
            raise LLMInvocationError(f"LLM call failed: {type(exc).__name__}") from exc
