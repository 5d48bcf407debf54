"""Use case orchestration for the spec import tool.

Implements PKG-API-004: Orchestrate other packages for use cases.
"""

from .import_specs import ImportResult, ImportSpecsUseCase
from .validate_specs import ValidateResult, ValidateSpecsUseCase

__all__ = ["ImportSpecsUseCase", "ImportResult", "ValidateSpecsUseCase", "ValidateResult"]
