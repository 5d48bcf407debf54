"""Segment classifiers.

Two variants share the SegmentClassifier contract:
- PatternClassifier: regex extraction only, never fails.
- GeminiClassifier: delegates to the classification/generation service under a
  per-attempt timeout and a fixed retry budget; raises ServiceError on exhaustion.

Callers fall back to the pattern classifier on service failure (see
classify_with_fallback), counting the fallback as an outcome, never as fatal.
"""

import threading
from typing import List, Optional, Protocol, Sequence, Tuple

from domain import Example, Segment, SegmentCategory
from generation import (
    CLASSIFY_SCHEMA,
    LLMClientProtocol,
    PromptTemplate,
    call_with_retries,
    parse_json_payload,
)
from ingestion import extract_examples, extract_first_heading, extract_req_id
from shared.exceptions import ServiceError

from .models import ClassificationResult, ClassificationSource


class SegmentClassifier(Protocol):
    """Protocol for segment classifiers (dependency inversion)."""

    def classify(
        self,
        segment: Segment,
        context_segments: Optional[Sequence[Segment]] = None,
    ) -> ClassificationResult:
        """Classify one segment. Raises ServiceError on failure."""
        ...


def parse_examples(raw_examples) -> List[Example]:
    """Build examples from service output, dropping triples with a blank field."""
    examples: List[Example] = []
    if not isinstance(raw_examples, list):
        return examples
    for raw in raw_examples:
        if not isinstance(raw, dict):
            continue
        example = Example(
            given=str(raw.get("given") or "").strip(),
            when=str(raw.get("when") or "").strip(),
            then=str(raw.get("then") or "").strip(),
        )
        if example.is_valid():
            examples.append(example)
    return examples


class PatternClassifier:
    """Rule-based classifier over the segment text.

    Category is functional_requirement when the text carries an explicit
    requirement id or Given/When/Then lines, otherwise other. Title comes from
    the heading path, then the first Markdown heading.
    """

    def classify(
        self,
        segment: Segment,
        context_segments: Optional[Sequence[Segment]] = None,
    ) -> ClassificationResult:
        candidate_id = extract_req_id(segment.content)
        examples = extract_examples(segment.content)
        if candidate_id or examples:
            category = SegmentCategory.FUNCTIONAL_REQUIREMENT
        else:
            category = SegmentCategory.OTHER

        title = segment.heading_title or extract_first_heading(segment.content)
        return ClassificationResult(
            category=category,
            candidate_id=candidate_id,
            title=title.strip(),
            examples=tuple(examples),
            source=ClassificationSource.PATTERN,
        )


class GeminiClassifier:
    """Delegated-service classifier (1-pass mode).

    Classifies one segment, extracts its id/title and proposes examples in a
    single call.

    Example:
        >>> classifier = GeminiClassifier(GeminiLLMClient(api_key=key))
        >>> result = classifier.classify(segment)
        >>> print(result.category, result.title)
    """

    def __init__(
        self,
        llm_client: LLMClientProtocol,
        *,
        timeout: float = 30.0,
        max_retries: int = 2,
        max_tokens: int = 8192,
        cancel_event: Optional[threading.Event] = None,
    ):
        """Initialize GeminiClassifier.

        Args:
            llm_client: Client for the classification service
            timeout: Per-attempt deadline in seconds
            max_retries: Additional attempts after the first
            max_tokens: Output token limit per call
            cancel_event: Optional cancellation signal
        """
        self.llm_client = llm_client
        self.timeout = timeout
        self.max_retries = max_retries
        self.max_tokens = max_tokens
        self.cancel_event = cancel_event

    def classify(
        self,
        segment: Segment,
        context_segments: Optional[Sequence[Segment]] = None,
    ) -> ClassificationResult:
        """Classify one segment through the service.

        Raises:
            ServiceError: When every attempt failed or the response is unusable
            EnrichmentCancelledError: If cancelled
        """
        prompt = PromptTemplate.format_classify_prompt(segment, context_segments)
        response = call_with_retries(
            lambda: self.llm_client.generate(
                prompt,
                response_schema=CLASSIFY_SCHEMA,
                temperature=0.0,
                max_tokens=self.max_tokens,
                timeout=self.timeout,
            ),
            max_retries=self.max_retries,
            cancel_event=self.cancel_event,
            label=f"classify {segment.segment_id}",
        )

        try:
            payload = parse_json_payload(response.content)
        except ValueError as exc:
            raise ServiceError(f"failed to parse JSON response for segment {segment.segment_id}: {exc}") from exc
        if not isinstance(payload, dict):
            raise ServiceError(f"unexpected response shape for segment {segment.segment_id}")

        return ClassificationResult(
            category=SegmentCategory.normalize(payload.get("category")),
            candidate_id=str(payload.get("req_id") or "").strip(),
            title=str(payload.get("title") or "").strip(),
            examples=tuple(parse_examples(payload.get("examples"))),
            source=ClassificationSource.SERVICE,
        )


def classify_with_fallback(
    classifier: SegmentClassifier,
    fallback: PatternClassifier,
    segment: Segment,
    context_segments: Optional[Sequence[Segment]] = None,
) -> Tuple[ClassificationResult, bool]:
    """
    Classify with the delegated classifier, falling back to patterns on failure.

    Returns:
        (result, fell_back)
    """
    try:
        return classifier.classify(segment, context_segments), False
    except ServiceError as exc:
        print(f"[warn] enrichment failed for {segment.segment_id}, falling back to regex extraction: {exc}")
        return fallback.classify(segment), True


__all__ = [
    "SegmentClassifier",
    "PatternClassifier",
    "GeminiClassifier",
    "classify_with_fallback",
    "parse_examples",
]
