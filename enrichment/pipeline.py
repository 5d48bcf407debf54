"""In-memory segment-to-spec pipeline.

Runs the pure phases of an import: classification (pattern-only, 1-pass with
fallback, or 2-phase batch), identifier allocation, example merging and
duplicate handling. Reading and materializing belong to the caller.
"""

import threading
from typing import Dict, List, Optional, Sequence

from domain import Example, Segment, SegmentCategory, SourceInfo, Spec
from ingestion import extract_examples, extract_first_heading, extract_questions, extract_req_id_with_title
from shared.exceptions import EmptyTitleError, EnrichmentCancelledError, ServiceError

from .batch import BatchOrchestrator
from .classifiers import PatternClassifier, SegmentClassifier, classify_with_fallback
from .duplicates import check_duplicate_ids, merge_duplicate_specs
from .examples import deduplicate_examples, merge_examples
from .identifiers import RequirementIdAllocator
from .models import (
    ClassificationResult,
    ClassificationSource,
    ClassifiedSegment,
    EnrichmentReport,
    PipelinePhase,
    PipelineResult,
)


class SpecImportPipeline:
    """Turn an ordered segment list into finalized specs.

    Mode is chosen by what is injected:
    - neither classifier nor orchestrator: pattern-based only, every segment kept
    - classifier: 1-pass, one service call per segment, pattern fallback on failure
    - orchestrator: batch classify, then batch example generation for targets

    Segments classified by the service as overview/other are skipped; pattern
    results (including fallbacks) are always kept.

    Example:
        >>> pipeline = SpecImportPipeline(orchestrator=BatchOrchestrator(enricher))
        >>> result = pipeline.run(segments)
        >>> print([spec.id for spec in result.specs], result.report.fallback)
    """

    def __init__(
        self,
        classifier: Optional[SegmentClassifier] = None,
        *,
        orchestrator: Optional[BatchOrchestrator] = None,
        fallback: Optional[PatternClassifier] = None,
        allocator: Optional[RequirementIdAllocator] = None,
        merge_duplicates: bool = False,
        dedupe_examples: bool = False,
        cancel_event: Optional[threading.Event] = None,
    ):
        if classifier is not None and orchestrator is not None:
            raise ValueError("pass either a classifier or a batch orchestrator, not both")
        self.classifier = classifier
        self.orchestrator = orchestrator
        self.fallback = fallback or PatternClassifier()
        self.allocator = allocator or RequirementIdAllocator()
        self.merge_duplicates = merge_duplicates
        self.dedupe_examples = dedupe_examples
        self.cancel_event = cancel_event
        self.phase = PipelinePhase.READING

    @property
    def mode(self) -> str:
        if self.orchestrator is not None:
            return "batch"
        if self.classifier is not None:
            return "1-pass"
        return "pattern"

    def run(self, segments: Sequence[Segment]) -> PipelineResult:
        """Run classification through duplicate handling.

        Raises:
            EmptyTitleError: No title for a kept segment
            DuplicateRequirementError: Repeated id in strict mode
            EnrichmentCancelledError: If cancelled
        """
        report = EnrichmentReport(segments=len(segments))

        self.phase = PipelinePhase.CLASSIFYING
        if self.orchestrator is not None:
            classified = self._classify_batch(segments, report)
        elif self.classifier is not None:
            classified = self._classify_each(segments, report)
        else:
            classified = [
                ClassifiedSegment(index, segment, self.fallback.classify(segment))
                for index, segment in enumerate(segments)
            ]

        self.phase = PipelinePhase.ALLOCATING_IDS
        allocation = self.allocator.allocate(
            [(item.segment, item.result.candidate_id) for item in classified],
            scan=segments,
        )

        self.phase = PipelinePhase.MERGING_EXAMPLES
        specs = [
            self._build_spec(item, req_id)
            for item, req_id in zip(classified, allocation.ids)
        ]

        self.phase = PipelinePhase.MERGING_DUPLICATES
        if self.merge_duplicates:
            merged = merge_duplicate_specs(specs)
            report.merged_duplicates = len(specs) - len(merged)
            specs = merged
        else:
            check_duplicate_ids(specs, [item.index for item in classified])

        if self.dedupe_examples:
            for spec in specs:
                spec.examples = deduplicate_examples(spec.examples)

        return PipelineResult(specs=specs, report=report)

    def _classify_each(self, segments: Sequence[Segment], report: EnrichmentReport) -> List[ClassifiedSegment]:
        classified: List[ClassifiedSegment] = []
        for index, segment in enumerate(segments):
            self._check_cancelled()
            result, fell_back = classify_with_fallback(self.classifier, self.fallback, segment)
            if fell_back:
                print(f"[enrich] {segment.segment_id}: error (fallback)")
                report.fallback += 1
            else:
                report.service_calls += 1
            if self._keep(result, report, segment):
                classified.append(ClassifiedSegment(index, segment, result))
        return classified

    def _classify_batch(self, segments: Sequence[Segment], report: EnrichmentReport) -> List[ClassifiedSegment]:
        print(f"[batch] classifying {len(segments)} segments")
        by_id: Dict[str, ClassificationResult] = {}
        try:
            outcome = self.orchestrator.classify(segments)
        except ServiceError as exc:
            print(f"[warn] batch classify failed, falling back to regex extraction: {exc}")
        else:
            report.service_calls += outcome.calls
            report.partial_segment_ids.extend(outcome.partial_segment_ids)
            for failure in outcome.errors:
                print(f"[warn] batch classify: {failure}")
            for item in outcome.results:
                by_id.setdefault(item.segment_id, item.to_classification())

        classified: List[ClassifiedSegment] = []
        for index, segment in enumerate(segments):
            result = by_id.get(segment.segment_id)
            if result is None:
                result = self.fallback.classify(segment)
                report.fallback += 1
            if self._keep(result, report, segment):
                classified.append(ClassifiedSegment(index, segment, result))

        print(f"[batch] {report.enriched} requirements (FR+NFR), {report.skipped} skipped, {report.fallback} fallback")

        targets = [
            item.segment
            for item in classified
            if item.result.source is ClassificationSource.SERVICE and item.result.is_example_target
        ]
        context = [
            segment for segment in segments
            if by_id.get(segment.segment_id) is not None
            and by_id[segment.segment_id].category is SegmentCategory.OVERVIEW
        ]
        proposed = self._generate_examples(targets, context, report)

        return [
            ClassifiedSegment(
                item.index,
                item.segment,
                _with_examples(item.result, proposed[item.segment.segment_id]),
            )
            if item.segment.segment_id in proposed
            else item
            for item in classified
        ]

    def _generate_examples(
        self,
        targets: List[Segment],
        context: List[Segment],
        report: EnrichmentReport,
    ) -> Dict[str, List[Example]]:
        if not targets:
            return {}

        print(f"[batch] generating examples for {len(targets)} segments ({len(context)} context)")
        try:
            outcome = self.orchestrator.generate_examples(targets, context)
        except ServiceError as exc:
            print(f"[warn] batch example generation failed: {exc}")
            report.example_errors += 1
            return {}

        report.service_calls += outcome.calls
        report.partial_segment_ids.extend(outcome.partial_segment_ids)
        report.example_errors += len(outcome.errors)
        for failure in outcome.errors:
            print(f"[warn] batch examples: {failure}")

        proposed: Dict[str, List[Example]] = {}
        for item in outcome.results:
            proposed.setdefault(item.segment_id, list(item.examples))
        return proposed

    @staticmethod
    def _keep(result: ClassificationResult, report: EnrichmentReport, segment: Segment) -> bool:
        if result.source is ClassificationSource.PATTERN:
            return True
        if not result.is_example_target:
            print(f"[enrich] {segment.segment_id}: skipped ({result.category.value})")
            report.skipped += 1
            return False
        report.enriched += 1
        return True

    def _build_spec(self, item: ClassifiedSegment, req_id: str) -> Spec:
        segment = item.segment
        heading_id, heading_title = extract_req_id_with_title(segment.content)

        title = item.result.title.strip()
        if not title and heading_id == req_id:
            title = heading_title
        if not title:
            title = segment.heading_title.strip()
        if not title:
            title = extract_first_heading(segment.content)
        if not title:
            raise EmptyTitleError(segment.segment_id)

        return Spec(
            id=req_id,
            title=title,
            source=SourceInfo(
                segment_id=segment.segment_id,
                heading_path=list(segment.heading_path),
                file_path=segment.file_path,
            ),
            examples=merge_examples(extract_examples(segment.content), item.result.examples),
            questions=extract_questions(segment.content),
        )

    def _check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise EnrichmentCancelledError("enrichment cancelled")


def _with_examples(result: ClassificationResult, examples: List[Example]) -> ClassificationResult:
    return ClassificationResult(
        category=result.category,
        candidate_id=result.candidate_id,
        title=result.title,
        examples=tuple(examples),
        source=result.source,
    )


__all__ = ["SpecImportPipeline"]
