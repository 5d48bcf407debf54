"""Data models for ingestion layer."""

from dataclasses import dataclass, field
from typing import List

from domain import Segment


@dataclass
class SegmentMeta:
    """
    One entry of the kire metadata file.

    This locates a segment body on disk before it has been read.
    """

    segment_id: str  # "seg-0003"
    heading_path: List[str] = field(default_factory=list)
    file_path: str = ""  # relative to the segment directory
    index: int = 0


@dataclass
class SourceGap:
    """Segment that was listed in metadata but whose body could not be resolved."""

    meta: SegmentMeta
    reason: str


@dataclass
class SourceResult:
    """Ordered segments read from a source, plus the gaps that were excluded."""

    segments: List[Segment] = field(default_factory=list)
    gaps: List[SourceGap] = field(default_factory=list)


__all__ = ["SegmentMeta", "SourceGap", "SourceResult"]
