"""Domain layer: segments, categories and requirement records.

Rules:
- DEP-DOM-001: MAY import shared (exceptions)
- DEP-DOM-BAN-001: MUST NOT import ingestion, generation, enrichment, storage, api
"""

from .models import (
    REQ_ID_PATTERN,
    Example,
    Segment,
    SegmentCategory,
    SourceInfo,
    Spec,
    format_req_id,
    req_id_number,
    req_id_sort_key,
    validate_depends_graph,
    validate_depends_refs,
)

__all__ = [
    "SegmentCategory",
    "Segment",
    "Example",
    "SourceInfo",
    "Spec",
    "REQ_ID_PATTERN",
    "req_id_number",
    "format_req_id",
    "req_id_sort_key",
    "validate_depends_refs",
    "validate_depends_graph",
]
