"""Response formatting for CLI output."""

import json
from typing import Any, Dict

from enrichment import EnrichmentReport
from storage import MaterializeReport

from .use_cases import ImportResult, ValidateResult


class ResponseFormatter:
    """Render use case results as text or JSON."""

    @staticmethod
    def format_materialize_summary(report: MaterializeReport, dry_run: bool = False) -> str:
        if dry_run:
            return f"{report.previewed} previewed"
        return f"{report.created} created, {report.skipped} skipped, {report.overwritten} overwritten"

    @staticmethod
    def format_enrichment_summary(report: EnrichmentReport) -> str:
        parts = [
            f"{report.enriched} enriched",
            f"{report.skipped} skipped",
            f"{report.fallback} errors (fallback)",
        ]
        if report.example_errors:
            parts.append(f"{report.example_errors} example errors")
        if report.partial_segment_ids:
            parts.append(f"{len(report.partial_segment_ids)} partial ({', '.join(report.partial_segment_ids)})")
        if report.merged_duplicates:
            parts.append(f"{report.merged_duplicates} duplicates merged")
        return ", ".join(parts)

    @staticmethod
    def format_import_text(result: ImportResult) -> str:
        lines = []
        for gap in result.gaps:
            lines.append(f"warning: segment file not found: {gap.meta.segment_id} ({gap.meta.file_path})")
        if result.mode != "pattern":
            lines.append(ResponseFormatter.format_enrichment_summary(result.enrichment))
        lines.append(ResponseFormatter.format_materialize_summary(result.materialize, result.dry_run))
        return "\n".join(lines)

    @staticmethod
    def format_import_json(result: ImportResult) -> str:
        payload: Dict[str, Any] = {
            "mode": result.mode,
            "dry_run": result.dry_run,
            "gaps": [gap.meta.segment_id for gap in result.gaps],
            "records": [
                {"id": entry.req_id, "title": entry.title, "action": entry.action.value}
                for entry in result.materialize.entries
            ],
            "enrichment": {
                "segments": result.enrichment.segments,
                "enriched": result.enrichment.enriched,
                "skipped": result.enrichment.skipped,
                "fallback": result.enrichment.fallback,
                "example_errors": result.enrichment.example_errors,
                "service_calls": result.enrichment.service_calls,
                "partial": list(result.enrichment.partial_segment_ids),
                "merged_duplicates": result.enrichment.merged_duplicates,
            },
        }
        return json.dumps(payload, ensure_ascii=False, indent=2)

    @staticmethod
    def format_validate_text(result: ValidateResult) -> str:
        return f"{result.specs_checked} specs valid, {result.dependencies_checked} dependencies checked"

    @staticmethod
    def format_error(error: Exception) -> str:
        return f"[error] {error}"


__all__ = ["ResponseFormatter"]
