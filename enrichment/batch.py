"""Batch enrichment: two-phase service calls with truncation-tolerant splitting.

Phase 1 classifies every segment in one (or few) round trips; phase 2 generates
examples for the example-target segments only. A truncated response (fewer
results than segments submitted, or a length-limited completion) is recovered by
recursively halving the batch.
"""

import threading
from typing import Callable, Dict, List, Optional, Protocol, Sequence, TypeVar

from domain import Segment, SegmentCategory
from generation import (
    BATCH_CLASSIFY_SCHEMA,
    BATCH_EXAMPLES_SCHEMA,
    LLMClientProtocol,
    LLMResponse,
    PromptTemplate,
    call_with_retries,
    parse_json_payload,
    salvage_json_array,
)
from shared.exceptions import (
    BatchFailedError,
    BatchTruncatedError,
    EnrichmentCancelledError,
    ServiceError,
)

from .classifiers import parse_examples
from .models import BatchClassifyResult, BatchExampleResult, BatchOutcome

T = TypeVar("T")

DEFAULT_MAX_BATCH_SIZE = 10


class BatchEnricherProtocol(Protocol):
    """Protocol for batch classification/generation services.

    Both calls must be safely retryable. A truncated response raises
    BatchTruncatedError carrying the partial results.
    """

    def batch_classify(self, segments: Sequence[Segment]) -> List[BatchClassifyResult]:
        ...

    def batch_generate_examples(
        self,
        segments: Sequence[Segment],
        context_segments: Optional[Sequence[Segment]] = None,
    ) -> List[BatchExampleResult]:
        ...


class GeminiBatchEnricher:
    """Batch enricher backed by Gemini.

    Uses one client per phase so that classification and example generation can
    run on different models.
    """

    def __init__(
        self,
        classify_client: LLMClientProtocol,
        example_client: LLMClientProtocol,
        *,
        classify_timeout: float = 60.0,
        example_timeout: float = 120.0,
        max_retries: int = 2,
        max_tokens: int = 8192,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.classify_client = classify_client
        self.example_client = example_client
        self.classify_timeout = classify_timeout
        self.example_timeout = example_timeout
        self.max_retries = max_retries
        self.max_tokens = max_tokens
        self.cancel_event = cancel_event

    def batch_classify(self, segments: Sequence[Segment]) -> List[BatchClassifyResult]:
        """Classify all segments in one call.

        Raises:
            BatchTruncatedError: Fewer results than segments, or length-limited
            ServiceError: After exhausting retries, or on an unparsable response
        """
        if not segments:
            return []

        prompt = PromptTemplate.format_batch_classify_prompt(segments)
        response = self._call(
            self.classify_client,
            prompt,
            BATCH_CLASSIFY_SCHEMA,
            self.classify_timeout,
            f"batch classify ({len(segments)} segments)",
        )
        items = self._parse_items(response, "batch classify")

        results = [
            BatchClassifyResult(
                segment_id=str(item.get("segment_id") or "").strip(),
                category=SegmentCategory.normalize(item.get("category")),
                title=str(item.get("title") or "").strip(),
                candidate_id=str(item.get("req_id") or "").strip(),
            )
            for item in items
        ]
        results = _keep_submitted(results, segments)
        _raise_if_truncated(results, segments, response, "batch classify")
        return results

    def batch_generate_examples(
        self,
        segments: Sequence[Segment],
        context_segments: Optional[Sequence[Segment]] = None,
    ) -> List[BatchExampleResult]:
        """Generate examples for example-target segments in one call.

        Context segments are folded into the prompt and never expected back.
        """
        if not segments:
            return []

        prompt = PromptTemplate.format_batch_examples_prompt(segments, context_segments)
        response = self._call(
            self.example_client,
            prompt,
            BATCH_EXAMPLES_SCHEMA,
            self.example_timeout,
            f"batch examples ({len(segments)} segments)",
        )
        items = self._parse_items(response, "batch examples")

        results = [
            BatchExampleResult(
                segment_id=str(item.get("segment_id") or "").strip(),
                examples=tuple(parse_examples(item.get("examples"))),
            )
            for item in items
        ]
        results = _keep_submitted(results, segments)
        _raise_if_truncated(results, segments, response, "batch examples")
        return results

    def _call(
        self,
        client: LLMClientProtocol,
        prompt: str,
        schema: Dict,
        timeout: float,
        label: str,
    ) -> LLMResponse:
        return call_with_retries(
            lambda: client.generate(
                prompt,
                response_schema=schema,
                temperature=0.0,
                max_tokens=self.max_tokens,
                timeout=timeout,
            ),
            max_retries=self.max_retries,
            cancel_event=self.cancel_event,
            label=label,
        )

    @staticmethod
    def _parse_items(response: LLMResponse, label: str) -> List[dict]:
        try:
            payload = parse_json_payload(response.content)
        except ValueError as exc:
            if response.truncated:
                return salvage_json_array(response.content)
            raise ServiceError(f"{label}: failed to parse JSON response: {exc}") from exc
        if not isinstance(payload, list):
            raise ServiceError(f"{label}: expected a JSON array")
        return [item for item in payload if isinstance(item, dict)]


def _keep_submitted(results: List[T], segments: Sequence[Segment]) -> List[T]:
    """Drop results for unknown segment ids; the first result per id wins."""
    submitted = {segment.segment_id for segment in segments}
    seen = set()
    kept: List[T] = []
    for result in results:
        sid = result.segment_id
        if sid not in submitted or sid in seen:
            continue
        seen.add(sid)
        kept.append(result)
    return kept


def _raise_if_truncated(results, segments, response: LLMResponse, label: str) -> None:
    if len(results) < len(segments):
        raise BatchTruncatedError(
            f"{label}: response covered {len(results)} of {len(segments)} segments",
            partial=results,
        )
    if response.truncated:
        raise BatchTruncatedError(f"{label}: response hit the output token limit", partial=results)


class BatchOrchestrator:
    """Drive batch calls with recursive halving.

    Algorithm (same for both phases):
    - A batch larger than max_batch_size is split in two before any call.
    - A call that reports truncation is split in two and each half retried.
    - A still-truncated batch of size 1 is accepted as-is and flagged partial.
    - If one half fails with a hard error, the other half's results are kept and
      the failure is recorded; if both fail, BatchFailedError is raised.
    Halves run left then right; consumers key results by segment id.

    Example:
        >>> orchestrator = BatchOrchestrator(enricher, max_batch_size=10)
        >>> outcome = orchestrator.classify(segments)
        >>> print(len(outcome.results), outcome.partial_segment_ids)
    """

    def __init__(
        self,
        enricher: BatchEnricherProtocol,
        *,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
        cancel_event: Optional[threading.Event] = None,
    ):
        if max_batch_size < 1:
            raise ValueError("max_batch_size must be >= 1")
        self.enricher = enricher
        self.max_batch_size = max_batch_size
        self.cancel_event = cancel_event

    def classify(self, segments: Sequence[Segment]) -> BatchOutcome[BatchClassifyResult]:
        """Phase 1: classify every segment."""
        return self.run(list(segments), self.enricher.batch_classify, "classify")

    def generate_examples(
        self,
        segments: Sequence[Segment],
        context_segments: Optional[Sequence[Segment]] = None,
    ) -> BatchOutcome[BatchExampleResult]:
        """Phase 2: generate examples for example-target segments."""
        context = list(context_segments or [])
        return self.run(
            list(segments),
            lambda batch: self.enricher.batch_generate_examples(batch, context),
            "examples",
        )

    def run(
        self,
        segments: List[Segment],
        call: Callable[[List[Segment]], List[T]],
        label: str,
        depth: int = 0,
    ) -> BatchOutcome[T]:
        """Call the service for segments, splitting on size or truncation.

        Raises:
            ServiceError: Hard error on an unsplit batch, or BatchFailedError
            EnrichmentCancelledError: If cancelled
        """
        if not segments:
            return BatchOutcome()

        if len(segments) > self.max_batch_size:
            return self._split(segments, call, label, depth)

        if self.cancel_event is not None and self.cancel_event.is_set():
            raise EnrichmentCancelledError(f"batch {label} cancelled")

        try:
            results = call(segments)
        except BatchTruncatedError as exc:
            if len(segments) > 1:
                print(f"[batch] {label}: truncated at {len(segments)} segments, splitting: {exc}")
                outcome = self._split(segments, call, label, depth)
                outcome.calls += 1
                return outcome
            print(f"[warn] {label}: {segments[0].segment_id} still truncated, accepting partial result")
            return BatchOutcome(
                results=list(exc.partial),
                partial_segment_ids=[segments[0].segment_id],
                calls=1,
                depth=depth,
            )
        return BatchOutcome(results=list(results), calls=1, depth=depth)

    def _split(
        self,
        segments: List[Segment],
        call: Callable[[List[Segment]], List[T]],
        label: str,
        depth: int,
    ) -> BatchOutcome[T]:
        mid = len(segments) // 2
        combined: BatchOutcome[T] = BatchOutcome()
        failures: List[ServiceError] = []

        for half in (segments[:mid], segments[mid:]):
            try:
                combined.extend(self.run(half, call, label, depth + 1))
            except ServiceError as exc:
                print(f"[warn] {label}: sub-batch of {len(half)} segments failed: {exc}")
                failures.append(exc)

        if len(failures) == 2:
            raise BatchFailedError(
                f"batch {label}: both halves failed: {failures[0]}; {failures[1]}",
                causes=failures,
            )
        combined.errors.extend(str(failure) for failure in failures)
        return combined


__all__ = [
    "BatchEnricherProtocol",
    "GeminiBatchEnricher",
    "BatchOrchestrator",
    "DEFAULT_MAX_BATCH_SIZE",
]
