"""Shared utilities and configuration for the spec import pipeline."""

from .config import EnrichConfig, load_config
from .exceptions import (
    BatchFailedError,
    BatchTruncatedError,
    ConfigError,
    DuplicateRequirementError,
    EmptyTitleError,
    EnrichmentCancelledError,
    ServiceError,
    SharedError,
    SourceError,
    SpecValidationError,
    StorageError,
)

__all__ = [
    "EnrichConfig",
    "load_config",
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
