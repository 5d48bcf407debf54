"""Domain entities for requirement import.

Rules:
- SEG-IMMUT: Segment is immutable once read.
- SPEC-ID: Spec id matches REQ-<3+ digits>; uniqueness is enforced by the pipeline.
- EX-ID: Example ids are E1..En without gaps after any merge/dedup.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from shared.exceptions import SpecValidationError

REQ_ID_PATTERN = re.compile(r"^REQ-(\d{3,})$")
EXAMPLE_ID_PATTERN = re.compile(r"^E(\d+)$")


class SegmentCategory(str, Enum):
    """Classification of a segment."""

    FUNCTIONAL_REQUIREMENT = "functional_requirement"
    NON_FUNCTIONAL_REQUIREMENT = "non_functional_requirement"
    OVERVIEW = "overview"
    OTHER = "other"

    @classmethod
    def normalize(cls, raw: Any) -> "SegmentCategory":
        """Map any classifier output to a category; unknown values become OTHER."""
        if isinstance(raw, cls):
            return raw
        value = str(raw or "").strip().lower()
        for member in cls:
            if member.value == value:
                return member
        return cls.OTHER

    @property
    def is_example_target(self) -> bool:
        return self in (SegmentCategory.FUNCTIONAL_REQUIREMENT, SegmentCategory.NON_FUNCTIONAL_REQUIREMENT)


@dataclass(frozen=True)
class Segment:
    """Ordered chunk of source document text with heading context."""

    segment_id: str
    heading_path: Tuple[str, ...]
    content: str
    context: str = ""
    file_path: str = ""

    @property
    def heading_title(self) -> str:
        return self.heading_path[-1] if self.heading_path else ""


@dataclass
class Example:
    """Given/When/Then acceptance example."""

    given: str
    when: str
    then: str
    id: str = ""

    def is_valid(self) -> bool:
        return bool(self.given.strip() and self.when.strip() and self.then.strip())

    def to_dict(self) -> Dict[str, str]:
        data: Dict[str, str] = {}
        if self.id:
            data["id"] = self.id
        data["given"] = self.given
        data["when"] = self.when
        data["then"] = self.then
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Example":
        return cls(
            given=str(data.get("given") or ""),
            when=str(data.get("when") or ""),
            then=str(data.get("then") or ""),
            id=str(data.get("id") or ""),
        )


@dataclass
class SourceInfo:
    """Provenance of a spec imported from a segment."""

    segment_id: str = ""
    heading_path: List[str] = field(default_factory=list)
    file_path: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.segment_id:
            data["segment_id"] = self.segment_id
        if self.heading_path:
            data["heading_path"] = list(self.heading_path)
        if self.file_path:
            data["file_path"] = self.file_path
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SourceInfo":
        data = data or {}
        return cls(
            segment_id=str(data.get("segment_id") or ""),
            heading_path=[str(h) for h in data.get("heading_path") or []],
            file_path=str(data.get("file_path") or ""),
        )


@dataclass
class Spec:
    """Requirement record.

    Mutable while a pipeline run accumulates examples/questions from contributing
    segments; treated as immutable once handed to the materializer.
    """

    id: str
    title: str
    description: str = ""
    source: SourceInfo = field(default_factory=SourceInfo)
    depends: List[str] = field(default_factory=list)
    examples: List[Example] = field(default_factory=list)
    questions: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)

    def validate(self) -> None:
        """Check required fields.

        Raises:
            SpecValidationError: If any field invariant is violated
        """
        if not self.id.strip():
            raise SpecValidationError("id is required")
        if not REQ_ID_PATTERN.match(self.id):
            raise SpecValidationError(f"id {self.id!r} must match REQ-###")
        if not self.title.strip():
            raise SpecValidationError(f"{self.id}: title is required")
        for i, example in enumerate(self.examples, 1):
            if not example.is_valid():
                raise SpecValidationError(f"{self.id}: example {i} must include given/when/then")

        seen = set()
        for dep in self.depends:
            if not REQ_ID_PATTERN.match(dep):
                raise SpecValidationError(f"{self.id}: depends entry {dep!r} must match REQ-### format")
            if dep == self.id:
                raise SpecValidationError(f"{self.id}: depends entry {dep!r} is a self-reference")
            if dep in seen:
                raise SpecValidationError(f"{self.id}: duplicate depends entry {dep!r}")
            seen.add(dep)

    def next_example_id(self) -> str:
        highest = 0
        for example in self.examples:
            match = EXAMPLE_ID_PATTERN.match(example.id.strip())
            if match:
                highest = max(highest, int(match.group(1)))
        return f"E{highest + 1}"

    def normalize(self) -> None:
        """Fill missing example ids in place."""
        for example in self.examples:
            if not example.id.strip():
                example.id = self.next_example_id()

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "title": self.title}
        if self.description:
            data["description"] = self.description
        source = self.source.to_dict()
        if source:
            data["source"] = source
        if self.depends:
            data["depends"] = list(self.depends)
        if self.examples:
            data["examples"] = [example.to_dict() for example in self.examples]
        if self.questions:
            data["questions"] = list(self.questions)
        if self.tags:
            data["tags"] = list(self.tags)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Spec":
        return cls(
            id=str(data.get("id") or "").strip(),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            source=SourceInfo.from_dict(data.get("source")),
            depends=[str(d) for d in data.get("depends") or []],
            examples=[Example.from_dict(e) for e in data.get("examples") or []],
            questions=[str(q) for q in data.get("questions") or []],
            tags=[str(t) for t in data.get("tags") or []],
        )


def req_id_number(req_id: str) -> Optional[int]:
    match = REQ_ID_PATTERN.match(req_id or "")
    return int(match.group(1)) if match else None


def format_req_id(number: int) -> str:
    return f"REQ-{number:03d}"


def req_id_sort_key(req_id: str) -> Tuple[int, int, str]:
    """Numeric ordering for REQ ids, lexical for anything else."""
    number = req_id_number(req_id)
    if number is None:
        return (1, 0, req_id)
    return (0, number, req_id)


def validate_depends_refs(specs: Sequence[Spec]) -> None:
    """Check that every dependency target exists. Does not check for cycles."""
    ids = {spec.id for spec in specs}
    for spec in specs:
        for dep in spec.depends:
            if dep not in ids:
                raise SpecValidationError(f"{spec.id} depends on {dep} which does not exist")


def validate_depends_graph(specs: Sequence[Spec]) -> None:
    """Check dependency references and cycles (DFS, white/gray/black)."""
    validate_depends_refs(specs)

    adjacency = {spec.id: list(spec.depends) for spec in specs}
    white, gray, black = 0, 1, 2
    color: Dict[str, int] = {}
    path: List[str] = []

    def visit(node: str) -> bool:
        color[node] = gray
        path.append(node)
        for dep in adjacency.get(node, []):
            state = color.get(dep, white)
            if state == gray:
                path.append(dep)
                return True
            if state == white and visit(dep):
                return True
        path.pop()
        color[node] = black
        return False

    for spec in specs:
        if color.get(spec.id, white) == white:
            path.clear()
            if visit(spec.id):
                raise SpecValidationError(f"dependency cycle detected: {' -> '.join(path)}")


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
