"""Ingestion layer for the spec import pipeline.

Handles reading kire segment output and pattern-based text extraction.

Rules:
- PKG-ING-001~002: Segment reading, regex extraction (ids, titles, GWT, questions)
- PKG-ING-BAN-001~002: MUST NOT call the classification service or write specs
- DEP-ING-001~003: MUST NOT import generation, enrichment, storage, api
"""

from .extraction import (
    extract_examples,
    extract_first_heading,
    extract_questions,
    extract_req_id,
    extract_req_id_with_title,
)
from .models import SegmentMeta, SourceGap, SourceResult
from .parsers import KireParser, extract_context
from .source import KireSegmentSource, SegmentSourceProtocol

__all__ = [
    # Models
    "SegmentMeta",
    "SourceGap",
    "SourceResult",
    # Parsers
    "KireParser",
    "extract_context",
    # Source
    "SegmentSourceProtocol",
    "KireSegmentSource",
    # Extraction
    "extract_req_id",
    "extract_req_id_with_title",
    "extract_examples",
    "extract_questions",
    "extract_first_heading",
]
