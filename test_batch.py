"""Tests for the batch orchestrator and the Gemini batch enricher."""

import json
import math
import threading

import pytest

from domain import SegmentCategory
from enrichment import BatchOrchestrator, GeminiBatchEnricher
from fakes import FakeBatchEnricher, FakeLLMClient, make_segment, response
from shared.exceptions import (
    BatchFailedError,
    BatchTruncatedError,
    EnrichmentCancelledError,
    ServiceError,
)


def _segments(n):
    return [make_segment(i, f"segment {i}") for i in range(n)]


def _ids(outcome):
    return sorted(r.segment_id for r in outcome.results)


# ---------------------------------------------------------------------------
# BatchOrchestrator
# ---------------------------------------------------------------------------


def test_oversize_batch_split_before_calling():
    enricher = FakeBatchEnricher()
    segments = _segments(12)

    outcome = BatchOrchestrator(enricher, max_batch_size=10).classify(segments)

    assert len(enricher.classify_calls) >= 2
    assert all(len(call) <= 10 for call in enricher.classify_calls)
    assert _ids(outcome) == sorted(s.segment_id for s in segments)
    assert outcome.complete
    assert outcome.calls == len(enricher.classify_calls)


def test_empty_input_makes_no_call():
    enricher = FakeBatchEnricher()
    outcome = BatchOrchestrator(enricher).classify([])
    assert outcome.results == []
    assert enricher.classify_calls == []


def test_truncation_splits_until_success():
    enricher = FakeBatchEnricher(truncate_above=3)
    segments = _segments(8)

    outcome = BatchOrchestrator(enricher, max_batch_size=10).classify(segments)

    assert _ids(outcome) == sorted(s.segment_id for s in segments)
    assert enricher.classify_calls[0] == [s.segment_id for s in segments]
    assert outcome.partial_segment_ids == []
    assert outcome.depth == 2


def test_size_one_truncation_accepted_and_flagged():
    enricher = FakeBatchEnricher(truncated_ids=["seg-0001"])
    segments = _segments(3)

    outcome = BatchOrchestrator(enricher, max_batch_size=10).classify(segments)

    assert _ids(outcome) == ["seg-0000", "seg-0002"]
    assert outcome.partial_segment_ids == ["seg-0001"]
    assert not outcome.complete
    assert enricher.classify_calls == [
        ["seg-0000", "seg-0001", "seg-0002"],
        ["seg-0000"],
        ["seg-0001", "seg-0002"],
        ["seg-0001"],
        ["seg-0002"],
    ]
    assert outcome.calls == 5


def test_one_half_failure_keeps_other_half():
    enricher = FakeBatchEnricher(fail_classify=lambda batch: batch[0].segment_id == "seg-0000")
    segments = _segments(4)

    outcome = BatchOrchestrator(enricher, max_batch_size=2).classify(segments)

    assert _ids(outcome) == ["seg-0002", "seg-0003"]
    assert len(outcome.errors) == 1
    assert "batch classify failed" in outcome.errors[0]


def test_both_halves_failing_is_fatal():
    enricher = FakeBatchEnricher(fail_classify=lambda batch: True)

    with pytest.raises(BatchFailedError) as excinfo:
        BatchOrchestrator(enricher, max_batch_size=2).classify(_segments(4))

    assert len(excinfo.value.causes) == 2
    assert isinstance(excinfo.value, ServiceError)


def test_unsplit_hard_error_propagates():
    enricher = FakeBatchEnricher(fail_classify=lambda batch: True)
    with pytest.raises(ServiceError):
        BatchOrchestrator(enricher, max_batch_size=10).classify(_segments(3))


@pytest.mark.parametrize("n", [1, 2, 5, 12, 37, 64])
def test_split_depth_is_logarithmic(n):
    enricher = FakeBatchEnricher(truncate_above=1)

    outcome = BatchOrchestrator(enricher, max_batch_size=n).classify(_segments(n))

    bound = math.ceil(math.log2(n)) if n > 1 else 0
    assert len(outcome.results) == n
    assert outcome.depth <= bound
    assert not outcome.partial_segment_ids


def test_examples_phase_passes_context():
    enricher = FakeBatchEnricher()
    targets = _segments(3)
    context = [make_segment(9, "common rules")]

    outcome = BatchOrchestrator(enricher, max_batch_size=2).generate_examples(targets, context)

    assert len(outcome.results) == 3
    assert all(ctx == ["seg-0009"] for ctx in enricher.example_contexts)
    assert all("seg-0009" not in call for call in enricher.example_calls)


def test_cancelled_before_call():
    cancel = threading.Event()
    cancel.set()
    enricher = FakeBatchEnricher()

    with pytest.raises(EnrichmentCancelledError):
        BatchOrchestrator(enricher, cancel_event=cancel).classify(_segments(2))
    assert enricher.classify_calls == []


def test_invalid_max_batch_size():
    with pytest.raises(ValueError):
        BatchOrchestrator(FakeBatchEnricher(), max_batch_size=0)


# ---------------------------------------------------------------------------
# GeminiBatchEnricher
# ---------------------------------------------------------------------------


def _classify_item(segment_id, category="functional_requirement", title="T", req_id=""):
    return {"segment_id": segment_id, "category": category, "title": title, "req_id": req_id}


def _enricher(classify_replies=(), example_replies=(), max_retries=2):
    classify_client = FakeLLMClient(classify_replies)
    example_client = FakeLLMClient(example_replies)
    enricher = GeminiBatchEnricher(
        classify_client,
        example_client,
        classify_timeout=60,
        example_timeout=120,
        max_retries=max_retries,
    )
    return enricher, classify_client, example_client


def test_batch_classify_parses_results():
    payload = [
        _classify_item("seg-0000", "functional_requirement", " Login ", "REQ-001"),
        _classify_item("seg-0001", "mystery", "Notes"),
    ]
    enricher, client, _ = _enricher([response(json.dumps(payload))])

    results = enricher.batch_classify(_segments(2))

    assert [(r.segment_id, r.category, r.title, r.candidate_id) for r in results] == [
        ("seg-0000", SegmentCategory.FUNCTIONAL_REQUIREMENT, "Login", "REQ-001"),
        ("seg-0001", SegmentCategory.OTHER, "Notes", ""),
    ]
    call = client.calls[0]
    assert call["timeout"] == 60
    assert call["temperature"] == 0.0
    assert call["response_schema"]["type"] == "ARRAY"
    assert "segment_id: seg-0001" in call["prompt"]


def test_batch_classify_ignores_unknown_and_repeated_ids():
    payload = [
        _classify_item("seg-0000", title="first"),
        _classify_item("seg-0099", title="unknown"),
        _classify_item("seg-0000", title="repeat"),
        _classify_item("seg-0001", title="second"),
    ]
    enricher, _, _ = _enricher([response(json.dumps(payload))])

    results = enricher.batch_classify(_segments(2))

    assert [(r.segment_id, r.title) for r in results] == [("seg-0000", "first"), ("seg-0001", "second")]


def test_fewer_results_than_segments_is_truncation():
    enricher, _, _ = _enricher([response(json.dumps([_classify_item("seg-0000")]))])

    with pytest.raises(BatchTruncatedError) as excinfo:
        enricher.batch_classify(_segments(2))

    assert [r.segment_id for r in excinfo.value.partial] == ["seg-0000"]


def test_length_limited_response_is_salvaged():
    complete = json.dumps(_classify_item("seg-0000"))
    content = f'[{complete}, {{"segment_id": "seg-00'
    enricher, _, _ = _enricher([response(content, finish_reason="MAX_TOKENS")])

    with pytest.raises(BatchTruncatedError) as excinfo:
        enricher.batch_classify(_segments(3))

    assert [r.segment_id for r in excinfo.value.partial] == ["seg-0000"]


def test_length_limited_complete_response_still_truncated():
    payload = [_classify_item("seg-0000"), _classify_item("seg-0001")]
    enricher, _, _ = _enricher([response(json.dumps(payload), finish_reason="MAX_TOKENS")])

    with pytest.raises(BatchTruncatedError) as excinfo:
        enricher.batch_classify(_segments(2))

    assert len(excinfo.value.partial) == 2


def test_invalid_json_is_hard_error():
    enricher, client, _ = _enricher([response("this is not json")])

    with pytest.raises(ServiceError, match="failed to parse JSON"):
        enricher.batch_classify(_segments(1))
    assert len(client.calls) == 1


def test_non_array_payload_is_hard_error():
    enricher, _, _ = _enricher([response('{"segment_id": "seg-0000"}')])
    with pytest.raises(ServiceError, match="expected a JSON array"):
        enricher.batch_classify(_segments(1))


def test_transport_errors_are_retried():
    payload = json.dumps([_classify_item("seg-0000")])
    enricher, client, _ = _enricher(
        [RuntimeError("deadline exceeded"), RuntimeError("503"), response(payload)],
        max_retries=2,
    )

    results = enricher.batch_classify(_segments(1))

    assert len(results) == 1
    assert len(client.calls) == 3


def test_retry_budget_exhausted():
    enricher, client, _ = _enricher([RuntimeError("down")] * 2, max_retries=1)

    with pytest.raises(ServiceError, match="all 2 attempts failed"):
        enricher.batch_classify(_segments(1))
    assert len(client.calls) == 2


def test_batch_examples_parses_and_drops_blank_examples():
    payload = [
        {
            "segment_id": "seg-0000",
            "examples": [
                {"given": "a user", "when": "they log in", "then": "a session starts"},
                {"given": "", "when": "x", "then": "y"},
            ],
        },
        {"segment_id": "seg-0001", "examples": []},
    ]
    enricher, _, client = _enricher(example_replies=[response(json.dumps(payload))])
    context = [make_segment(7, "All errors use RFC 7807.")]

    results = enricher.batch_generate_examples(_segments(2), context)

    assert [len(r.examples) for r in results] == [1, 0]
    assert results[0].examples[0].then == "a session starts"
    call = client.calls[0]
    assert call["timeout"] == 120
    assert "All errors use RFC 7807." in call["prompt"]


def test_gemini_enricher_under_orchestrator_recovers_truncation():
    first = response(json.dumps([_classify_item("seg-0000")]))
    left = response(json.dumps([_classify_item("seg-0000")]))
    right = response(json.dumps([_classify_item("seg-0001")]))
    enricher, client, _ = _enricher([first, left, right])

    outcome = BatchOrchestrator(enricher, max_batch_size=10).classify(_segments(2))

    assert _ids(outcome) == ["seg-0000", "seg-0001"]
    assert len(client.calls) == 3
    assert outcome.calls == 3
