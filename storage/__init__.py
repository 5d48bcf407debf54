"""Storage layer for requirement specs.

Handles YAML persistence of spec records and their materialization.

Rules:
- PKG-STO-001~002: Repository implementation, skip/overwrite/dry-run policies
- PKG-STO-BAN-001~002: MUST NOT classify segments or call the service
- DEP-STO-001~003: MUST NOT import ingestion, generation, enrichment, api
- DEP-STO-ALLOW-001~002: MAY import domain, shared
"""

from .materializer import (
    MaterializeAction,
    MaterializeEntry,
    MaterializeReport,
    SpecMaterializer,
    SpecStoreProtocol,
)
from .repositories import SPEC_FILE_SUFFIX, SpecRepository

__all__ = [
    # Repositories
    "SpecRepository",
    "SPEC_FILE_SUFFIX",
    # Materializer
    "SpecStoreProtocol",
    "SpecMaterializer",
    "MaterializeAction",
    "MaterializeEntry",
    "MaterializeReport",
]
