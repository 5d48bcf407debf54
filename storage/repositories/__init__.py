"""Repository implementations for spec storage."""

from .spec_repo import SPEC_FILE_SUFFIX, SpecRepository

__all__ = ["SpecRepository", "SPEC_FILE_SUFFIX"]
