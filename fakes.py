"""Test doubles for the classifier, batch enricher, LLM client and spec store."""

from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union

from domain import Example, Segment, SegmentCategory, Spec
from enrichment import BatchClassifyResult, BatchExampleResult, ClassificationResult
from generation import LLMResponse
from shared.exceptions import BatchTruncatedError, ServiceError, StorageError

CONFIG_ENV_VARS = [
    "SPEC_DIR",
    "KIRE_DIR",
    "KIRE_JSONL",
    "GEMINI_API_KEY",
    "ENRICH_MODEL",
    "ENRICH_EXAMPLE_MODEL",
    "ENRICH_TIMEOUT",
    "ENRICH_BATCH_TIMEOUT",
    "ENRICH_EXAMPLE_TIMEOUT",
    "ENRICH_MAX_RETRIES",
    "ENRICH_MAX_BATCH",
    "ENRICH_MAX_OUTPUT_TOKENS",
    "MERGE_DUPLICATES",
    "DEDUPE_EXAMPLES",
]


def make_segment(
    index: int,
    content: str = "",
    heading_path: Sequence[str] = ("Spec",),
    context: str = "",
) -> Segment:
    return Segment(
        segment_id=f"seg-{index:04d}",
        heading_path=tuple(heading_path),
        content=content,
        context=context,
        file_path=f"seg-{index:04d}.md",
    )


def response(content: str, finish_reason: str = "STOP") -> LLMResponse:
    return LLMResponse(content=content, model="fake-model", finish_reason=finish_reason)


class FakeLLMClient:
    """Replays scripted responses; an Exception entry is raised instead of returned."""

    def __init__(self, replies: Iterable[Union[LLMResponse, Exception]], model_name: str = "fake-model"):
        self.replies = list(replies)
        self.model_name = model_name
        self.calls: List[dict] = []

    def generate(self, prompt, *, response_schema=None, temperature=0.0, max_tokens=8192, timeout=None):
        self.calls.append(
            {
                "prompt": prompt,
                "response_schema": response_schema,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "timeout": timeout,
            }
        )
        if not self.replies:
            raise RuntimeError("no scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeClassifier:
    """1-pass classifier returning canned results by segment id."""

    def __init__(
        self,
        results: Optional[Dict[str, ClassificationResult]] = None,
        fail_ids: Iterable[str] = (),
    ):
        self.results = results or {}
        self.fail_ids = set(fail_ids)
        self.calls: List[str] = []

    def classify(self, segment, context_segments=None):
        self.calls.append(segment.segment_id)
        if segment.segment_id in self.fail_ids:
            raise ServiceError(f"service unavailable for {segment.segment_id}")
        return self.results.get(
            segment.segment_id,
            ClassificationResult(category=SegmentCategory.FUNCTIONAL_REQUIREMENT),
        )


class FakeBatchEnricher:
    """Batch enricher with configurable truncation and failures.

    Args:
        categories: Category per segment id (default functional_requirement)
        titles: Title per segment id (default "Title <segment id>")
        candidate_ids: Proposed REQ id per segment id
        examples: Examples per segment id for the generation phase
        truncate_above: Batches larger than this report truncation
        truncated_ids: Any batch containing one of these ids reports truncation
            and omits them from its partial results
        fail_classify: Predicate over a batch; True raises ServiceError
        fail_examples: Predicate over a batch; True raises ServiceError
    """

    def __init__(
        self,
        categories: Optional[Dict[str, SegmentCategory]] = None,
        titles: Optional[Dict[str, str]] = None,
        candidate_ids: Optional[Dict[str, str]] = None,
        examples: Optional[Dict[str, List[Example]]] = None,
        truncate_above: Optional[int] = None,
        truncated_ids: Iterable[str] = (),
        fail_classify: Optional[Callable[[List[Segment]], bool]] = None,
        fail_examples: Optional[Callable[[List[Segment]], bool]] = None,
    ):
        self.categories = categories or {}
        self.titles = titles or {}
        self.candidate_ids = candidate_ids or {}
        self.examples = examples or {}
        self.truncate_above = truncate_above
        self.truncated_ids = set(truncated_ids)
        self.fail_classify = fail_classify
        self.fail_examples = fail_examples
        self.classify_calls: List[List[str]] = []
        self.example_calls: List[List[str]] = []
        self.example_contexts: List[List[str]] = []

    def batch_classify(self, segments):
        segments = list(segments)
        self.classify_calls.append([s.segment_id for s in segments])
        if self.fail_classify is not None and self.fail_classify(segments):
            raise ServiceError("batch classify failed")
        results = [
            BatchClassifyResult(
                segment_id=s.segment_id,
                category=self.categories.get(s.segment_id, SegmentCategory.FUNCTIONAL_REQUIREMENT),
                title=self.titles.get(s.segment_id, f"Title {s.segment_id}"),
                candidate_id=self.candidate_ids.get(s.segment_id, ""),
            )
            for s in segments
        ]
        return self._maybe_truncate(segments, results)

    def batch_generate_examples(self, segments, context_segments=None):
        segments = list(segments)
        self.example_calls.append([s.segment_id for s in segments])
        self.example_contexts.append([s.segment_id for s in context_segments or []])
        if self.fail_examples is not None and self.fail_examples(segments):
            raise ServiceError("batch examples failed")
        results = [
            BatchExampleResult(segment_id=s.segment_id, examples=tuple(self.examples.get(s.segment_id, [])))
            for s in segments
        ]
        return self._maybe_truncate(segments, results)

    def _maybe_truncate(self, segments, results):
        if self.truncate_above is not None and len(segments) > self.truncate_above:
            raise BatchTruncatedError("too many segments", partial=results[: self.truncate_above])
        if any(s.segment_id in self.truncated_ids for s in segments):
            partial = [r for r in results if r.segment_id not in self.truncated_ids]
            raise BatchTruncatedError("length limited", partial=partial)
        return results


class FakeSpecStore:
    """In-memory spec store; writes for ids in fail_ids raise StorageError."""

    def __init__(self, existing: Iterable[str] = (), fail_ids: Iterable[str] = ()):
        self.specs: Dict[str, Spec] = {req_id: Spec(id=req_id, title="existing") for req_id in existing}
        self.fail_ids = set(fail_ids)
        self.writes: List[str] = []

    def exists(self, req_id):
        return req_id in self.specs

    def write(self, spec):
        if spec.id in self.fail_ids:
            raise StorageError(f"disk full writing {spec.id}")
        spec.validate()
        self.specs[spec.id] = spec
        self.writes.append(spec.id)
        return spec.id

    def read_all(self):
        return list(self.specs.values())
