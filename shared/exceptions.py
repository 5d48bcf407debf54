"""Exception taxonomy shared by every layer.

Rules:
- Per-segment and per-call failures (ServiceError, BatchTruncatedError) are handled
  close to their source (fallback or split).
- Invariant violations, Reading failures, storage failures and cancellation propagate
  to the top of the pipeline.
"""

from typing import Any, List, Optional, Sequence


class SharedError(Exception):
    """Base class for all application errors."""


class ConfigError(SharedError):
    """Invalid or missing configuration detected at startup."""


class SourceError(SharedError):
    """The segment list (or a segment body) could not be read."""


class ServiceError(SharedError):
    """Hard failure of the classification/generation service.

    Raised after the retry budget is exhausted or when the response cannot be parsed.
    """


class BatchTruncatedError(SharedError):
    """A batch response covered fewer segments than requested, or was length-limited.

    This is a retryable condition, distinct from ServiceError. Results that were
    recovered from the response are carried in ``partial``.
    """

    def __init__(self, message: str, partial: Optional[Sequence[Any]] = None):
        super().__init__(message)
        self.partial: List[Any] = list(partial or [])


class BatchFailedError(ServiceError):
    """Both halves of a split batch failed with hard errors."""

    def __init__(self, message: str, causes: Optional[Sequence[Exception]] = None):
        super().__init__(message)
        self.causes: List[Exception] = list(causes or [])


class EnrichmentCancelledError(SharedError):
    """The caller-supplied cancellation signal was set."""


class SpecValidationError(SharedError):
    """A spec record violates a field invariant."""


class EmptyTitleError(SpecValidationError):
    """No title could be derived for a segment after all fallbacks."""

    def __init__(self, segment_id: str):
        super().__init__(f"empty title for segment {segment_id} after all fallbacks")
        self.segment_id = segment_id


class DuplicateRequirementError(SharedError):
    """Two or more segments resolved to the same requirement identifier."""

    def __init__(self, duplicates: Sequence[tuple]):
        self.duplicates = list(duplicates)
        parts = [f"{req_id} (index {first} and {second})" for req_id, first, second in self.duplicates]
        super().__init__(f"duplicate REQ-IDs found: {', '.join(parts)}")

    @property
    def req_id(self) -> str:
        return self.duplicates[0][0] if self.duplicates else ""


class StorageError(SharedError):
    """A spec record could not be written to or read from the store."""


__all__ = [
    "SharedError",
    "ConfigError",
    "SourceError",
    "ServiceError",
    "BatchTruncatedError",
    "BatchFailedError",
    "EnrichmentCancelledError",
    "SpecValidationError",
    "EmptyTitleError",
    "DuplicateRequirementError",
    "StorageError",
]
