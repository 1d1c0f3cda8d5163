"""Thin wrapper around the Gemini API with basic circuit breaking."""

from __future__ import annotations

import threading
import time

import google.generativeai as genai
from google.generativeai import types as genai_types

from app.core.config import settings
from app.services.chat_client import ChatClientError, ChatResponse, FragmentResponse, TextResponse


class GeminiCircuitOpenError(ChatClientError):
    """Raised when the circuit breaker is open."""


_FAILURE_THRESHOLD = 3
_CIRCUIT_OPEN_SECONDS = 30


class GeminiClient:
    provider = "gemini"

    def __init__(self, api_key: str, timeout: float) -> None:
        if not api_key:
            raise ValueError("Gemini API key is required")

        genai.configure(api_key=api_key)
        self._models: dict[str, genai.GenerativeModel] = {}
        self._timeout = timeout
        self._lock = threading.Lock()
        self._failure_count = 0
        self._circuit_open_until = 0.0

    def complete(self, prompt: str, *, model: str) -> ChatResponse:
        if not prompt:
            raise ValueError("Prompt must not be empty")

        now = time.monotonic()
        with self._lock:
            if now < self._circuit_open_until:
                raise GeminiCircuitOpenError("Gemini circuit is open due to recent failures")

        try:
            response = self._model(model).generate_content(
                prompt,
                generation_config=genai_types.GenerationConfig(
                    temperature=settings.llm_temperature,
                    max_output_tokens=settings.llm_max_tokens,
                    response_mime_type="application/json",
                ),
                request_options={"timeout": self._timeout},
            )
        except Exception as exc:  # pragma: no cover - network failures
            self._record_failure()
            raise ChatClientError(str(exc)) from exc

        self._record_success()
        candidates = getattr(response, "candidates", None) or []
        if candidates:
            parts = getattr(candidates[0].content, "parts", None) or []
            fragments = tuple(part.text for part in parts if getattr(part, "text", None))
            if fragments:
                return FragmentResponse(fragments)
        try:
            text = response.text
        except ValueError as exc:
            # Raised by the SDK when the reply was blocked or has no text parts.
            raise ChatClientError(f"Gemini returned no usable text: {exc}") from exc
        return TextResponse(text or "")

    def _model(self, model_name: str) -> genai.GenerativeModel:
        model = self._models.get(model_name)
        if model is None:
            model = genai.GenerativeModel(model_name)
            self._models[model_name] = model
        return model

    def _record_failure(self) -> None:
        with self._lock:
            self._failure_count += 1
            if self._failure_count >= _FAILURE_THRESHOLD:
                self._circuit_open_until = time.monotonic() + _CIRCUIT_OPEN_SECONDS

    def _record_success(self) -> None:
        with self._lock:
            self._failure_count = 0
            self._circuit_open_until = 0.0


_CLIENT: GeminiClient | None = None


def get_gemini_client() -> GeminiClient:
    global _CLIENT
    if _CLIENT is None:
        _CLIENT = GeminiClient(
            api_key=settings.gemini_api_key or "",
            timeout=settings.llm_timeout_sec,
        )
    return _CLIENT
