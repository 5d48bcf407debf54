"""Command-line interface for importing and validating specs.

Usage:
    python -m api.cli import [--enrich] [--dry-run] [--force]
    python -m api.cli validate
"""

import argparse
import dataclasses
import sys
from typing import List, Optional

from shared.config import EnrichConfig, load_config
from shared.exceptions import SharedError
from storage import SpecRepository

from ..formatters import ResponseFormatter
from ..use_cases import ImportSpecsUseCase, ValidateSpecsUseCase


def apply_overrides(config: EnrichConfig, args: argparse.Namespace) -> EnrichConfig:
    """Return a copy of config with CLI flags applied over environment values."""
    overrides = {}
    if getattr(args, "spec_dir", None):
        overrides["spec_dir"] = args.spec_dir
    if getattr(args, "dir", None):
        overrides["segment_dir"] = args.dir
    if getattr(args, "jsonl", None):
        overrides["jsonl_path"] = args.jsonl
    if getattr(args, "enrich_model", None):
        overrides["classify_model"] = args.enrich_model
    if getattr(args, "enrich_example_model", None):
        overrides["example_model"] = args.enrich_example_model
    if getattr(args, "enrich_timeout", None) is not None:
        overrides["classify_timeout"] = args.enrich_timeout
        overrides["batch_classify_timeout"] = args.enrich_timeout
    if getattr(args, "enrich_example_timeout", None) is not None:
        overrides["example_timeout"] = args.enrich_example_timeout
    if getattr(args, "max_batch", None) is not None:
        overrides["max_batch_size"] = args.max_batch
    if getattr(args, "merge_duplicates", False):
        overrides["merge_duplicates"] = True
    if getattr(args, "dedupe_examples", False):
        overrides["dedupe_examples"] = True

    config = dataclasses.replace(config, **overrides)
    config.validate()
    return config


def run_import(args: argparse.Namespace, config: EnrichConfig) -> int:
    use_case = ImportSpecsUseCase(config)
    try:
        result = use_case.execute(enrich=args.enrich, force=args.force, dry_run=args.dry_run)
    except SharedError as exc:
        print(ResponseFormatter.format_error(exc))
        print(f"[import] stopped during {use_case.phase.value}", file=sys.stderr)
        return 1

    if args.json:
        print(ResponseFormatter.format_import_json(result))
    else:
        print(ResponseFormatter.format_import_text(result))
    return 0


def run_validate(args: argparse.Namespace, config: EnrichConfig) -> int:
    use_case = ValidateSpecsUseCase(SpecRepository(config.spec_dir))
    try:
        result = use_case.execute()
    except SharedError as exc:
        print(ResponseFormatter.format_error(exc))
        return 1
    print(ResponseFormatter.format_validate_text(result))
    return 0


def run(args: argparse.Namespace) -> int:
    try:
        config = apply_overrides(load_config(), args)
    except SharedError as exc:
        print(ResponseFormatter.format_error(exc))
        return 1

    if args.command == "import":
        return run_import(args, config)
    if args.command == "validate":
        return run_validate(args, config)
    return 1


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Import requirement specs from segmented documents")
    subparsers = parser.add_subparsers(dest="command", required=True)

    importer = subparsers.add_parser(
        "import",
        help="Import specs from kire output (JSONL + Markdown segments)",
    )
    importer.add_argument("--dir", help="Directory containing kire segment files (default: .kire)")
    importer.add_argument("--jsonl", help="Path to kire JSONL metadata file (default: .kire/metadata.jsonl)")
    importer.add_argument("--spec-dir", help="Directory for spec YAML files")
    importer.add_argument("--force", action="store_true", help="Overwrite existing spec files")
    importer.add_argument("--dry-run", action="store_true", help="Preview without writing files")
    importer.add_argument(
        "--enrich",
        action="store_true",
        help="Enable LLM enrichment (requires GEMINI_API_KEY)",
    )
    importer.add_argument("--enrich-model", help="Gemini model name for enrichment")
    importer.add_argument(
        "--enrich-timeout",
        type=float,
        help="Timeout in seconds for each Gemini classify call",
    )
    importer.add_argument(
        "--enrich-example-model",
        help="Example generation model (enables 2-pass batch mode)",
    )
    importer.add_argument(
        "--enrich-example-timeout",
        type=float,
        help="Timeout in seconds for batch example generation",
    )
    importer.add_argument("--max-batch", type=int, help="Maximum segments per batch call")
    importer.add_argument(
        "--merge-duplicates",
        action="store_true",
        help="Merge segments that resolve to the same REQ-ID instead of failing",
    )
    importer.add_argument(
        "--dedupe-examples",
        action="store_true",
        help="Remove duplicate Given/When/Then examples from every spec",
    )
    importer.add_argument("--json", action="store_true", help="Output JSON")

    validator = subparsers.add_parser("validate", help="Validate stored specs and their dependencies")
    validator.add_argument("--spec-dir", help="Directory for spec YAML files")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = create_parser()
    return run(parser.parse_args(argv))


__all__ = ["run", "create_parser", "main", "apply_overrides"]
