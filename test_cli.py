"""Tests for the import/validate use cases and the CLI wiring."""

import json

import pytest

from api.cli.commands import apply_overrides, create_parser, main
from api.formatters import ResponseFormatter
from api.use_cases import ImportSpecsUseCase, ValidateSpecsUseCase
from domain import Example, SegmentCategory, Spec
from enrichment import BatchOrchestrator, EnrichmentReport, PipelinePhase
from fakes import CONFIG_ENV_VARS, FakeBatchEnricher, FakeClassifier, FakeSpecStore
from shared.config import load_config
from shared.exceptions import ConfigError, DuplicateRequirementError, SpecValidationError
from storage import SpecRepository


@pytest.fixture
def workspace(monkeypatch, tmp_path):
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)

    kire = tmp_path / ".kire"
    kire.mkdir()
    bodies = {
        "login.md": "### REQ-001: Login\nGiven: a user\nWhen: they log in\nThen: a session starts\n",
        "export.md": "## Export\nUsers can export data.\nWhich formats are supported?\n",
    }
    entries = [
        ("login.md", ["Spec", "Login"]),
        ("export.md", ["Spec", "Export"]),
        ("missing.md", ["Spec", "Missing"]),
    ]
    for name, body in bodies.items():
        (kire / name).write_text(body, encoding="utf-8")
    lines = [
        json.dumps({"content": "", "metadata": {"segment_index": i, "filename": name, "heading_path": path}})
        for i, (name, path) in enumerate(entries)
    ]
    (kire / "metadata.jsonl").write_text("\n".join(lines) + "\n", encoding="utf-8")
    return tmp_path


def _config():
    return load_config()


# ---------------------------------------------------------------------------
# Use cases
# ---------------------------------------------------------------------------


def test_import_pattern_mode(workspace):
    use_case = ImportSpecsUseCase(_config())

    result = use_case.execute()

    assert result.mode == "pattern"
    assert [s.id for s in result.specs] == ["REQ-001", "REQ-002"]
    assert [g.meta.segment_id for g in result.gaps] == ["seg-0002"]
    assert result.materialize.created == 2
    assert use_case.phase is PipelinePhase.DONE
    assert result.phases[0] is PipelinePhase.READING
    assert result.phases[-1] is PipelinePhase.DONE

    repo = SpecRepository(workspace / ".tdd" / "specs")
    export = repo.find_by_id("REQ-002")
    assert export.title == "Export"
    assert export.questions == ["Which formats are supported?"]


def test_import_skip_then_force(workspace):
    ImportSpecsUseCase(_config()).execute()

    skipped = ImportSpecsUseCase(_config()).execute()
    forced = ImportSpecsUseCase(_config()).execute(force=True)

    assert (skipped.materialize.created, skipped.materialize.skipped) == (0, 2)
    assert forced.materialize.overwritten == 2


def test_import_dry_run(workspace):
    result = ImportSpecsUseCase(_config()).execute(dry_run=True)

    assert result.materialize.previewed == 2
    assert not (workspace / ".tdd" / "specs").exists()


def test_enrich_requires_api_key_before_reading(workspace):
    (workspace / ".kire" / "metadata.jsonl").unlink()
    use_case = ImportSpecsUseCase(_config())

    with pytest.raises(ConfigError, match="GEMINI_API_KEY"):
        use_case.execute(enrich=True)


def test_enrich_one_pass_with_injected_classifier(workspace):
    store = FakeSpecStore()
    use_case = ImportSpecsUseCase(_config(), store=store, classifier=FakeClassifier())

    result = use_case.execute(enrich=True)

    assert result.mode == "1-pass"
    assert result.enrichment.enriched == 2
    assert store.writes == ["REQ-001", "REQ-002"]


def test_enrich_batch_with_injected_orchestrator(workspace, monkeypatch):
    monkeypatch.setenv("ENRICH_EXAMPLE_MODEL", "example-model")
    enricher = FakeBatchEnricher(
        categories={"seg-0001": SegmentCategory.OVERVIEW},
        examples={"seg-0000": [Example("ignored", "ignored", "ignored")]},
    )
    store = FakeSpecStore()
    use_case = ImportSpecsUseCase(_config(), store=store, orchestrator=BatchOrchestrator(enricher))

    result = use_case.execute(enrich=True)

    assert result.mode == "batch"
    assert [s.id for s in result.specs] == ["REQ-001"]
    assert result.specs[0].examples[0].given == "a user"
    assert result.enrichment.skipped == 1


def test_duplicate_failure_records_phase(workspace):
    (workspace / ".kire" / "export.md").write_text("## Export\nalso REQ-001\n", encoding="utf-8")
    use_case = ImportSpecsUseCase(_config(), store=FakeSpecStore())

    with pytest.raises(DuplicateRequirementError):
        use_case.execute()
    assert use_case.phase is PipelinePhase.MERGING_DUPLICATES


def test_validate_use_case():
    store = FakeSpecStore()
    store.specs = {
        "REQ-001": Spec(id="REQ-001", title="a"),
        "REQ-002": Spec(id="REQ-002", title="b", depends=["REQ-001"]),
    }
    result = ValidateSpecsUseCase(store).execute()
    assert (result.specs_checked, result.dependencies_checked) == (2, 1)

    store.specs["REQ-001"].depends = ["REQ-002"]
    with pytest.raises(SpecValidationError, match="dependency cycle detected"):
        ValidateSpecsUseCase(store).execute()


# ---------------------------------------------------------------------------
# Formatting and CLI
# ---------------------------------------------------------------------------


def test_enrichment_summary_mentions_partial():
    report = EnrichmentReport(enriched=3, skipped=1, fallback=2, example_errors=1, partial_segment_ids=["seg-0004"])
    text = ResponseFormatter.format_enrichment_summary(report)
    assert text == "3 enriched, 1 skipped, 2 errors (fallback), 1 example errors, 1 partial (seg-0004)"


def test_apply_overrides(workspace):
    args = create_parser().parse_args(
        [
            "import",
            "--spec-dir", "out",
            "--enrich-timeout", "5",
            "--enrich-example-model", "m2",
            "--max-batch", "3",
            "--merge-duplicates",
        ]
    )
    config = apply_overrides(_config(), args)

    assert config.spec_dir == "out"
    assert (config.classify_timeout, config.batch_classify_timeout) == (5.0, 5.0)
    assert config.batch_mode
    assert config.max_batch_size == 3
    assert config.merge_duplicates


def test_cli_import_summary(workspace, capsys):
    assert main(["import"]) == 0

    out = capsys.readouterr().out
    assert "warning: segment file not found: seg-0002 (missing.md)" in out
    assert "2 created, 0 skipped, 0 overwritten" in out
    assert (workspace / ".tdd" / "specs" / "REQ-001.yml").is_file()


def test_cli_import_dry_run_json(workspace, capsys):
    assert main(["import", "--dry-run", "--json"]) == 0

    out = capsys.readouterr().out
    payload = json.loads(out[out.index("{"):])
    assert payload["dry_run"] is True
    assert [r["action"] for r in payload["records"]] == ["previewed", "previewed"]


def test_cli_enrich_without_key_fails(workspace, capsys):
    assert main(["import", "--enrich"]) == 1
    assert "[error] GEMINI_API_KEY is required" in capsys.readouterr().out


def test_cli_invalid_max_batch(workspace, capsys):
    assert main(["import", "--max-batch", "0"]) == 1
    assert "[error]" in capsys.readouterr().out


def test_cli_validate(workspace, capsys):
    repo = SpecRepository(workspace / ".tdd" / "specs")
    repo.write(Spec(id="REQ-001", title="a", depends=["REQ-002"]))
    repo.write(Spec(id="REQ-002", title="b"))

    assert main(["validate"]) == 0
    assert "2 specs valid, 1 dependencies checked" in capsys.readouterr().out

    repo.write(Spec(id="REQ-002", title="b", depends=["REQ-001"]))
    assert main(["validate"]) == 1
    assert "[error] dependency cycle detected" in capsys.readouterr().out


def test_cli_module_exports(workspace):
    from api.cli import commands

    assert all(hasattr(commands, name) for name in commands.__all__)
    assert main(["validate", "--spec-dir", "nothing-here"]) == 0
