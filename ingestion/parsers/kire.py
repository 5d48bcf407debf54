"""kire output parser (JSONL metadata + Markdown segment files)."""

import json
import os
import re
from typing import List, Optional

from domain import Segment
from shared.exceptions import SourceError

from ..models import SegmentMeta

CONTEXT_COMMENT_PATTERN = re.compile(r"<!--\s*context:\s*(.+?)\s*-->")


class KireParser:
    """Parse kire's metadata file and read the segment bodies it points to."""

    def __init__(self, segment_dir: str):
        """
        Initialize KireParser.

        Args:
            segment_dir: Directory containing segment Markdown files
        """
        self.segment_dir = segment_dir

    def parse_metadata(self, jsonl_path: str) -> List[SegmentMeta]:
        """
        Parse a kire JSONL metadata file.

        Args:
            jsonl_path: Path to metadata.jsonl

        Returns:
            SegmentMeta entries sorted by segment_index ascending

        Raises:
            SourceError: If the file cannot be opened or a line is malformed
        """
        entries: List[SegmentMeta] = []
        try:
            with open(jsonl_path, "r", encoding="utf-8") as handle:
                for line_num, line in enumerate(handle, 1):
                    line = line.strip()
                    if not line:
                        continue
                    entries.append(self._parse_line(line, line_num))
        except OSError as exc:
            raise SourceError(f"{jsonl_path}: {exc}") from exc

        entries.sort(key=lambda meta: meta.index)
        return entries

    def _parse_line(self, line: str, line_num: int) -> SegmentMeta:
        try:
            raw = json.loads(line)
        except json.JSONDecodeError as exc:
            raise SourceError(f"line {line_num}: {exc}") from exc
        if not isinstance(raw, dict):
            raise SourceError(f"line {line_num}: expected a JSON object")

        metadata = raw.get("metadata") or {}
        try:
            index = int(metadata.get("segment_index", 0))
        except (TypeError, ValueError) as exc:
            raise SourceError(f"line {line_num}: invalid segment_index") from exc

        return SegmentMeta(
            segment_id=f"seg-{index:04d}",
            heading_path=[str(h) for h in metadata.get("heading_path") or []],
            file_path=str(metadata.get("filename") or ""),
            index=index,
        )

    def read_segment(self, meta: SegmentMeta) -> Optional[Segment]:
        """
        Read one segment body.

        Args:
            meta: Metadata entry locating the segment

        Returns:
            Segment, or None if the file does not exist (caller reports a gap)

        Raises:
            SourceError: On any other read failure
        """
        path = os.path.join(self.segment_dir, meta.file_path)
        try:
            with open(path, "r", encoding="utf-8") as handle:
                content = handle.read()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            raise SourceError(f"{path}: {exc}") from exc

        return Segment(
            segment_id=meta.segment_id,
            heading_path=tuple(meta.heading_path),
            content=content,
            context=extract_context(content),
            file_path=meta.file_path,
        )


def extract_context(content: str) -> str:
    """Return the first ``<!-- context: ... -->`` annotation, trimmed."""
    match = CONTEXT_COMMENT_PATTERN.search(content)
    return match.group(1).strip() if match else ""


__all__ = ["KireParser", "extract_context"]
