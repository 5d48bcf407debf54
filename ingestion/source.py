"""Segment source: ordered segments read from kire output."""

from typing import Protocol

from .models import SourceGap, SourceResult
from .parsers import KireParser


class SegmentSourceProtocol(Protocol):
    """Anything that yields ordered segments (dependency inversion)."""

    def load(self) -> SourceResult:
        """Read all segments in document order."""
        ...


class KireSegmentSource:
    """
    Read segments listed in a kire metadata file.

    Document order follows segment_index. Segments whose body file is missing are
    reported as gaps and excluded; every other failure is fatal.

    Example:
        >>> source = KireSegmentSource(".kire/metadata.jsonl", ".kire")
        >>> result = source.load()
        >>> print(len(result.segments), len(result.gaps))
    """

    def __init__(self, jsonl_path: str, segment_dir: str):
        self.jsonl_path = jsonl_path
        self.parser = KireParser(segment_dir)

    def load(self) -> SourceResult:
        """
        Read metadata, then every segment body.

        Returns:
            SourceResult with segments and gaps

        Raises:
            SourceError: If the metadata or a segment body cannot be read
        """
        result = SourceResult()
        for meta in self.parser.parse_metadata(self.jsonl_path):
            segment = self.parser.read_segment(meta)
            if segment is None:
                print(f"[warn] segment file not found, skipping: {meta.segment_id} ({meta.file_path})")
                result.gaps.append(SourceGap(meta=meta, reason="segment file not found"))
                continue
            result.segments.append(segment)
        return result


__all__ = ["SegmentSourceProtocol", "KireSegmentSource"]
