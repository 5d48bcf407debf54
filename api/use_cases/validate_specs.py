"""Spec validation use case.

Rules:
- DEP-API-ALLOW-005: MAY import storage
- PKG-API-BAN-001: MUST NOT implement business logic directly
"""

from dataclasses import dataclass

from domain import validate_depends_graph
from storage import SpecStoreProtocol


@dataclass
class ValidateResult:
    specs_checked: int
    dependencies_checked: int


class ValidateSpecsUseCase:
    """Load every stored spec and check the dependency graph.

    Each record is validated on load; the graph check then requires every
    ``depends`` target to exist and rejects cycles.
    """

    def __init__(self, store: SpecStoreProtocol):
        self.store = store

    def execute(self) -> ValidateResult:
        """
        Raises:
            SpecValidationError: Invalid record, missing dependency or cycle
            StorageError: A spec file cannot be read
        """
        specs = self.store.read_all()
        validate_depends_graph(specs)
        return ValidateResult(
            specs_checked=len(specs),
            dependencies_checked=sum(len(spec.depends) for spec in specs),
        )


__all__ = ["ValidateSpecsUseCase", "ValidateResult"]
