"""Data models for enrichment layer."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, List, Sequence, TypeVar

from domain import Example, Segment, SegmentCategory, Spec

T = TypeVar("T")


class ClassificationSource(str, Enum):
    """Which classifier variant produced a result."""

    PATTERN = "pattern"
    SERVICE = "service"


@dataclass(frozen=True)
class ClassificationResult:
    """Classification of one segment.

    Attributes:
        category: Normalized segment category
        candidate_id: Identifier proposed by the classifier (re-validated later)
        title: Proposed title (may be empty)
        examples: Proposed examples, without ids
        source: Classifier variant that produced the result
    """

    category: SegmentCategory
    candidate_id: str = ""
    title: str = ""
    examples: Sequence[Example] = ()
    source: ClassificationSource = ClassificationSource.SERVICE

    @property
    def is_example_target(self) -> bool:
        return self.category.is_example_target


@dataclass(frozen=True)
class BatchClassifyResult:
    """One segment's entry in a batch classify response."""

    segment_id: str
    category: SegmentCategory
    title: str = ""
    candidate_id: str = ""

    def to_classification(self) -> ClassificationResult:
        return ClassificationResult(
            category=self.category,
            candidate_id=self.candidate_id,
            title=self.title,
        )


@dataclass(frozen=True)
class BatchExampleResult:
    """One segment's entry in a batch example-generation response."""

    segment_id: str
    examples: Sequence[Example] = ()


@dataclass
class BatchOutcome(Generic[T]):
    """Combined result of a (possibly split) batch call.

    Attributes:
        results: Results from every successful sub-batch, in call order
        partial_segment_ids: Size-1 batches that were still truncated and accepted as-is
        errors: Hard errors from a sub-batch whose sibling succeeded
        calls: Number of service calls made
        depth: Deepest split level reached (0 = no split)
    """

    results: List[T] = field(default_factory=list)
    partial_segment_ids: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    calls: int = 0
    depth: int = 0

    @property
    def complete(self) -> bool:
        return not self.partial_segment_ids and not self.errors

    def extend(self, other: "BatchOutcome[T]") -> None:
        self.results.extend(other.results)
        self.partial_segment_ids.extend(other.partial_segment_ids)
        self.errors.extend(other.errors)
        self.calls += other.calls
        self.depth = max(self.depth, other.depth)


@dataclass
class ClassifiedSegment:
    """A segment kept for spec synthesis, with its classification."""

    index: int
    segment: Segment
    result: ClassificationResult


class PipelinePhase(str, Enum):
    """Per-run state machine."""

    READING = "reading"
    CLASSIFYING = "classifying"
    ALLOCATING_IDS = "allocating-ids"
    MERGING_EXAMPLES = "merging-examples"
    MERGING_DUPLICATES = "merging-duplicates"
    MATERIALIZING = "materializing"
    DONE = "done"


@dataclass
class EnrichmentReport:
    """Aggregated non-fatal outcomes of the classification phases."""

    segments: int = 0
    enriched: int = 0
    skipped: int = 0
    fallback: int = 0
    example_errors: int = 0
    service_calls: int = 0
    partial_segment_ids: List[str] = field(default_factory=list)
    merged_duplicates: int = 0


@dataclass
class PipelineResult:
    """Specs synthesized by one pipeline run."""

    specs: List[Spec]
    report: EnrichmentReport


__all__ = [
    "ClassificationSource",
    "ClassificationResult",
    "BatchClassifyResult",
    "BatchExampleResult",
    "BatchOutcome",
    "ClassifiedSegment",
    "PipelinePhase",
    "EnrichmentReport",
    "PipelineResult",
]
