"""Data models for generation layer."""

from dataclasses import dataclass
from typing import Optional

TRUNCATED_FINISH_REASONS = ("MAX_TOKENS",)


@dataclass
class LLMResponse:
    """Response from LLM generation.

    Attributes:
        content: Generated text content
        model: Model name used for generation
        finish_reason: Provider finish reason name (e.g. "STOP", "MAX_TOKENS")
        usage: Optional token usage information
    """

    content: str
    model: str
    finish_reason: Optional[str] = None
    usage: Optional[dict] = None

    @property
    def truncated(self) -> bool:
        """True when the service stopped because of the output length limit."""
        return (self.finish_reason or "").upper() in TRUNCATED_FINISH_REASONS


__all__ = ["LLMResponse"]
