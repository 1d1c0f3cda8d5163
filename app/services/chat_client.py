"""Chat-completion client for OpenAI-compatible providers (OpenRouter by default)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import requests

from app.core.config import settings


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TextResponse:
    """Provider answered with a bare string."""

    text: str


@dataclass(frozen=True, slots=True)
class MessageResponse:
    """Provider answered with a message whose content is a single string."""

    content: str


@dataclass(frozen=True, slots=True)
class FragmentResponse:
    """Provider answered with an ordered list of text fragments."""

    fragments: tuple[str, ...]


ChatResponse = TextResponse | MessageResponse | FragmentResponse


class ChatClientError(RuntimeError):
    """Raised when a provider call fails before producing a usable response."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ChatClient(Protocol):
    provider: str

    def complete(self, prompt: str, *, model: str) -> ChatResponse: ...


class ChatCompletionClient:
    provider = "openrouter"

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("API key is required")
        self.api_key = api_key
        self.base_url = (base_url or settings.llm_base_url).rstrip("/")
        self.timeout = timeout or settings.llm_timeout_sec
        self.session = session or requests.Session()

    def complete(self, prompt: str, *, model: str) -> ChatResponse:
        if not prompt:
            raise ValueError("Prompt must not be empty")

        body = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": settings.llm_temperature,
            "max_tokens": settings.llm_max_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            response = self.session.post(
                f"{self.base_url}/chat/completions",
                json=body,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise ChatClientError(f"Provider request timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise ChatClientError(f"Provider request failed: {exc}") from exc

        if response.status_code >= 400:
            raise ChatClientError(
                f"Provider returned HTTP {response.status_code}: {response.text[:500]}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ChatClientError("Provider returned a non-JSON body", status_code=response.status_code) from exc

        return parse_chat_payload(payload)


def parse_chat_payload(payload: Any) -> ChatResponse:
    """Map an OpenAI-style completion payload onto one of the known response shapes."""
    if isinstance(payload, str):
        return TextResponse(payload)
    if not isinstance(payload, dict):
        raise ChatClientError(f"Unexpected provider payload type: {type(payload).__name__}")

    choices = payload.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        raise ChatClientError("Provider response has no choices")
    message = choices[0].get("message") or {}
    if not isinstance(message, dict):
        raise ChatClientError(f"Provider message has unexpected type: {type(message).__name__}")
    content = message.get("content")

    if isinstance(content, str):
        return MessageResponse(content)
    if isinstance(content, list):
        fragments = tuple(
            part["text"] if isinstance(part, dict) else str(part)
            for part in content
            if not isinstance(part, dict) or isinstance(part.get("text"), str)
        )
        return FragmentResponse(fragments)
    raise ChatClientError("Provider response has no message content")
