"""LLM client abstraction for generation layer.

Provides a unified interface for the classification/generation service,
backed by Google Gemini through google-generativeai.
"""

import threading
from typing import Any, Callable, Dict, Optional, Protocol, TypeVar

from shared.exceptions import EnrichmentCancelledError, ServiceError

from .models import LLMResponse

T = TypeVar("T")


class LLMClientProtocol(Protocol):
    """Protocol for LLM clients (dependency inversion)."""

    model_name: str

    def generate(
        self,
        prompt: str,
        *,
        response_schema: Optional[Dict[str, Any]] = None,
        temperature: float = 0.0,
        max_tokens: int = 8192,
        timeout: Optional[float] = None,
    ) -> LLMResponse:
        """Generate a response from prompt. Raises on transport/API failure."""
        ...


def call_with_retries(
    fn: Callable[[], T],
    *,
    max_retries: int = 2,
    cancel_event: Optional[threading.Event] = None,
    label: str = "llm call",
) -> T:
    """
    Run a service call with a fixed retry budget.

    Attempts are immediate (no backoff); the callable is expected to open a fresh
    deadline on every invocation.

    Args:
        fn: Zero-argument callable performing one attempt
        max_retries: Additional attempts after the first
        cancel_event: Optional cancellation signal, checked before each attempt
        label: Description used in log lines and the final error

    Raises:
        EnrichmentCancelledError: If cancel_event is set
        ServiceError: When every attempt failed
    """
    attempts = max_retries + 1
    last_exception: Optional[Exception] = None

    for attempt in range(attempts):
        if cancel_event is not None and cancel_event.is_set():
            raise EnrichmentCancelledError(f"{label} cancelled")
        try:
            return fn()
        except EnrichmentCancelledError:
            raise
        except Exception as exc:
            last_exception = exc
            print(f"[llm] {label}: attempt {attempt + 1}/{attempts} failed: {exc}")

    raise ServiceError(f"all {attempts} attempts failed for {label}: {last_exception}") from last_exception


class GeminiLLMClient:
    """Gemini LLM client using google-generativeai.

    Requests JSON output constrained by a response schema; the finish reason is
    surfaced so callers can detect length-limited completions.

    Example:
        >>> client = GeminiLLMClient(model="gemini-2.5-flash-lite", api_key="...")
        >>> response = client.generate("Classify ...", response_schema=schema)
        >>> print(response.truncated)
    """

    def __init__(
        self,
        model: str = "gemini-2.5-flash-lite",
        api_key: Optional[str] = None,
    ):
        """Initialize Gemini LLM client.

        Args:
            model: Gemini model to use
            api_key: API key (required; resolved from GEMINI_API_KEY by the caller)
        """
        import google.generativeai as genai

        if not api_key:
            raise ServiceError("GEMINI_API_KEY is required for Gemini LLM")

        genai.configure(api_key=api_key)
        self._model = genai.GenerativeModel(model)
        self.model_name = model

    def generate(
        self,
        prompt: str,
        *,
        response_schema: Optional[Dict[str, Any]] = None,
        temperature: float = 0.0,
        max_tokens: int = 8192,
        timeout: Optional[float] = None,
    ) -> LLMResponse:
        """Generate response using Gemini.

        Args:
            prompt: Full prompt text
            response_schema: Optional structured output schema (JSON mode)
            temperature: Generation temperature
            max_tokens: Maximum output tokens
            timeout: Per-request deadline in seconds

        Returns:
            LLMResponse with generated content and finish reason

        Raises:
            ServiceError: If the service returns no usable candidate
        """
        generation_config: Dict[str, Any] = {
            "temperature": temperature,
            "max_output_tokens": max_tokens,
        }
        if response_schema is not None:
            generation_config["response_mime_type"] = "application/json"
            generation_config["response_schema"] = response_schema

        request_options = {"timeout": timeout} if timeout else None

        response = self._model.generate_content(
            prompt,
            generation_config=generation_config,
            request_options=request_options,
        )

        if not response.candidates:
            raise ServiceError("empty response from Gemini API")

        candidate = response.candidates[0]
        finish_reason = getattr(candidate.finish_reason, "name", None) or str(candidate.finish_reason or "")
        parts = getattr(getattr(candidate, "content", None), "parts", None) or []
        text = "".join(getattr(part, "text", "") or "" for part in parts)
        if not text and finish_reason.upper() != "MAX_TOKENS":
            raise ServiceError(f"empty response from Gemini API (finish_reason={finish_reason})")

        return LLMResponse(
            content=text.strip(),
            model=self.model_name,
            finish_reason=finish_reason,
            usage=self._usage(response),
        )

    @staticmethod
    def _usage(response) -> Optional[dict]:
        metadata = getattr(response, "usage_metadata", None)
        if metadata is None:
            return None
        return {
            "prompt_token_count": getattr(metadata, "prompt_token_count", 0) or 0,
            "candidates_token_count": getattr(metadata, "candidates_token_count", 0) or 0,
            "total_token_count": getattr(metadata, "total_token_count", 0) or 0,
        }


__all__ = ["LLMClientProtocol", "GeminiLLMClient", "LLMResponse", "call_with_retries"]
