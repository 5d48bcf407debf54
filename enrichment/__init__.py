"""Enrichment layer: from segments to finalized requirement records.

Components:
- PatternClassifier / GeminiClassifier: the two classifier variants
- GeminiBatchEnricher / BatchOrchestrator: 2-phase batch calls with recursive halving
- RequirementIdAllocator: explicit-first deterministic REQ-ID assignment
- merge_examples / deduplicate_examples: GWT example selection and dedup
- merge_duplicate_specs: consolidation of specs sharing an id
- SpecImportPipeline: the in-memory phases of an import run

Rules:
- DEP-ENR-001: MAY import domain, ingestion, generation, shared
- DEP-ENR-BAN-001: MUST NOT import storage, api
- PKG-ENR-BAN-001: MUST NOT read segment files or write spec files
"""

from .batch import DEFAULT_MAX_BATCH_SIZE, BatchEnricherProtocol, BatchOrchestrator, GeminiBatchEnricher
from .classifiers import (
    GeminiClassifier,
    PatternClassifier,
    SegmentClassifier,
    classify_with_fallback,
    parse_examples,
)
from .duplicates import check_duplicate_ids, find_duplicate_ids, merge_duplicate_specs
from .examples import deduplicate_examples, example_key, merge_examples, renumber_examples
from .identifiers import Allocation, RequirementIdAllocator, assign_ids, resolve_explicit_id, seed_counter
from .models import (
    BatchClassifyResult,
    BatchExampleResult,
    BatchOutcome,
    ClassificationResult,
    ClassificationSource,
    ClassifiedSegment,
    EnrichmentReport,
    PipelinePhase,
    PipelineResult,
)
from .pipeline import SpecImportPipeline

__all__ = [
    # Models
    "ClassificationSource",
    "ClassificationResult",
    "BatchClassifyResult",
    "BatchExampleResult",
    "BatchOutcome",
    "ClassifiedSegment",
    "PipelinePhase",
    "EnrichmentReport",
    "PipelineResult",
    # Classifiers
    "SegmentClassifier",
    "PatternClassifier",
    "GeminiClassifier",
    "classify_with_fallback",
    "parse_examples",
    # Batch
    "BatchEnricherProtocol",
    "GeminiBatchEnricher",
    "BatchOrchestrator",
    "DEFAULT_MAX_BATCH_SIZE",
    # Identifiers
    "Allocation",
    "RequirementIdAllocator",
    "resolve_explicit_id",
    "seed_counter",
    "assign_ids",
    # Examples
    "merge_examples",
    "deduplicate_examples",
    "renumber_examples",
    "example_key",
    # Duplicates
    "find_duplicate_ids",
    "check_duplicate_ids",
    "merge_duplicate_specs",
    # Pipeline
    "SpecImportPipeline",
]
