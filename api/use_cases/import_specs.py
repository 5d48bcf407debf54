"""Spec import use case orchestration.

Implements PKG-API-004: Orchestrate packages for the import use case.

Rules:
- DEP-API-ALLOW-002: MAY import ingestion
- DEP-API-ALLOW-003: MAY import enrichment
- DEP-API-ALLOW-005: MAY import storage
- DEP-API-ALLOW-006: MAY import shared
- DEP-API-ALLOW-007: MAY import generation
- PKG-API-BAN-001: MUST NOT implement business logic directly
"""

import threading
from dataclasses import dataclass, field
from typing import List, Optional

from domain import Spec
from enrichment import (
    BatchOrchestrator,
    EnrichmentReport,
    GeminiBatchEnricher,
    GeminiClassifier,
    PipelinePhase,
    SegmentClassifier,
    SpecImportPipeline,
)
from generation import GeminiLLMClient
from ingestion import KireSegmentSource, SegmentSourceProtocol, SourceGap
from shared.config import EnrichConfig
from shared.exceptions import SharedError
from storage import MaterializeReport, SpecMaterializer, SpecRepository, SpecStoreProtocol


@dataclass
class ImportResult:
    """Result of an import run.

    Attributes:
        specs: Finalized specs handed to the materializer
        gaps: Segments excluded because their body could not be read
        enrichment: Classification outcome counts
        materialize: Per-record actions and counts
        mode: "pattern", "1-pass" or "batch"
        dry_run: Whether writes were suppressed
        phases: Phases entered, in order
    """

    specs: List[Spec]
    gaps: List[SourceGap]
    enrichment: EnrichmentReport
    materialize: MaterializeReport
    mode: str
    dry_run: bool = False
    phases: List[PipelinePhase] = field(default_factory=list)


class ImportSpecsUseCase:
    """Orchestrates the segment-to-spec import.

    Implements PKG-API-004 (orchestration).

    Pipeline:
    1. Read segments (ingestion layer)
    2. Classify, allocate ids, merge examples and duplicates (enrichment layer)
    3. Materialize specs (storage layer)

    Example:
        >>> use_case = ImportSpecsUseCase(config)
        >>> result = use_case.execute(enrich=True)
        >>> print(result.materialize.created)
    """

    def __init__(
        self,
        config: EnrichConfig,
        *,
        source: Optional[SegmentSourceProtocol] = None,
        store: Optional[SpecStoreProtocol] = None,
        classifier: Optional[SegmentClassifier] = None,
        orchestrator: Optional[BatchOrchestrator] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        """Initialize ImportSpecsUseCase.

        Args:
            config: Import configuration
            source: Segment source (defaults to the kire files named in config)
            store: Spec store (defaults to the YAML repository in config.spec_dir)
            classifier: 1-pass classifier override (skips building a Gemini client)
            orchestrator: Batch orchestrator override (skips building Gemini clients)
            cancel_event: Optional cancellation signal for service calls
        """
        self.config = config
        self.source = source or KireSegmentSource(config.jsonl_path, config.segment_dir)
        self.store = store or SpecRepository(config.spec_dir)
        self.classifier = classifier
        self.orchestrator = orchestrator
        self.cancel_event = cancel_event
        self.phase = PipelinePhase.READING

    def execute(self, *, enrich: bool = False, force: bool = False, dry_run: bool = False) -> ImportResult:
        """Execute the import.

        Args:
            enrich: Use the classification service (1-pass, or batch when an
                example model is configured)
            force: Overwrite existing spec files
            dry_run: Preview only

        Returns:
            ImportResult with counts

        Raises:
            ConfigError: Enrichment requested without an API key
            SourceError: Segment metadata or a segment body cannot be read
            SpecValidationError: Empty title or invalid record
            DuplicateRequirementError: Repeated id without merge_duplicates
            StorageError: A spec file cannot be written
        """
        phases: List[PipelinePhase] = []
        pipeline = self.build_pipeline(enrich)

        self._enter(PipelinePhase.READING, phases)
        source_result = self.source.load()
        print(f"[import] {len(source_result.segments)} segments read, {len(source_result.gaps)} missing")

        try:
            pipeline_result = pipeline.run(source_result.segments)
        except SharedError:
            self.phase = pipeline.phase
            raise
        phases.extend(
            [
                PipelinePhase.CLASSIFYING,
                PipelinePhase.ALLOCATING_IDS,
                PipelinePhase.MERGING_EXAMPLES,
                PipelinePhase.MERGING_DUPLICATES,
            ]
        )

        self._enter(PipelinePhase.MATERIALIZING, phases)
        materialize_report = SpecMaterializer(self.store).materialize(
            pipeline_result.specs,
            dry_run=dry_run,
            force=force,
        )

        self._enter(PipelinePhase.DONE, phases)
        return ImportResult(
            specs=pipeline_result.specs,
            gaps=source_result.gaps,
            enrichment=pipeline_result.report,
            materialize=materialize_report,
            mode=pipeline.mode,
            dry_run=dry_run,
            phases=phases,
        )

    def build_pipeline(self, enrich: bool) -> SpecImportPipeline:
        """Select the pipeline mode and construct its service clients.

        Raises:
            ConfigError: If enrichment is requested and no API key is configured
        """
        options = dict(
            merge_duplicates=self.config.merge_duplicates,
            dedupe_examples=self.config.dedupe_examples,
            cancel_event=self.cancel_event,
        )
        if not enrich:
            return SpecImportPipeline(**options)

        if self.config.batch_mode:
            orchestrator = self.orchestrator or self._build_orchestrator()
            return SpecImportPipeline(orchestrator=orchestrator, **options)

        classifier = self.classifier or self._build_classifier()
        return SpecImportPipeline(classifier, **options)

    def _build_classifier(self) -> GeminiClassifier:
        api_key = self.config.require_api_key()
        return GeminiClassifier(
            GeminiLLMClient(model=self.config.classify_model, api_key=api_key),
            timeout=self.config.classify_timeout,
            max_retries=self.config.max_retries,
            max_tokens=self.config.max_output_tokens,
            cancel_event=self.cancel_event,
        )

    def _build_orchestrator(self) -> BatchOrchestrator:
        api_key = self.config.require_api_key()
        enricher = GeminiBatchEnricher(
            GeminiLLMClient(model=self.config.classify_model, api_key=api_key),
            GeminiLLMClient(model=self.config.example_model, api_key=api_key),
            classify_timeout=self.config.batch_classify_timeout,
            example_timeout=self.config.example_timeout,
            max_retries=self.config.max_retries,
            max_tokens=self.config.max_output_tokens,
            cancel_event=self.cancel_event,
        )
        return BatchOrchestrator(
            enricher,
            max_batch_size=self.config.max_batch_size,
            cancel_event=self.cancel_event,
        )

    def _enter(self, phase: PipelinePhase, phases: List[PipelinePhase]) -> None:
        self.phase = phase
        phases.append(phase)


__all__ = ["ImportSpecsUseCase", "ImportResult"]
