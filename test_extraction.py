"""Tests for pattern-based extraction and the kire segment source."""

import json

import pytest

from ingestion import (
    KireParser,
    KireSegmentSource,
    extract_context,
    extract_examples,
    extract_first_heading,
    extract_questions,
    extract_req_id,
    extract_req_id_with_title,
)
from shared.exceptions import SourceError


@pytest.mark.parametrize(
    "text, expected",
    [
        ("see REQ-001 for details", "REQ-001"),
        ("REQ-012 and REQ-034", "REQ-012"),
        ("REQ-1234 has four digits", "REQ-123"),
        ("XREQ-001", "REQ-001"),
        ("REQ-001a draft", "REQ-001"),
        ("no identifier here", ""),
        ("", ""),
    ],
)
def test_extract_req_id(text, expected):
    assert extract_req_id(text) == expected


def test_extract_req_id_with_title():
    assert extract_req_id_with_title("intro\n### REQ-007: User login\nbody") == ("REQ-007", "User login")
    assert extract_req_id_with_title("## REQ-007: wrong level") == ("", "")
    assert extract_req_id_with_title("plain text") == ("", "")


def test_extract_examples_consecutive_lines():
    text = "\n".join(
        [
            "## Login",
            "- Given: a registered user",
            "- When: they log in with a valid password",
            "- Then: a session is created",
            "",
            "given: lowercase works",
            "WHEN: upper case works",
            "* Then: bullets work too",
        ]
    )
    examples = extract_examples(text)

    assert [(e.given, e.when, e.then) for e in examples] == [
        ("a registered user", "they log in with a valid password", "a session is created"),
        ("lowercase works", "upper case works", "bullets work too"),
    ]
    assert all(e.id == "" for e in examples)


def test_extract_examples_requires_consecutive_triple():
    text = "Given: a\nsomething else\nWhen: b\nThen: c"
    assert extract_examples(text) == []


def test_extract_examples_ignores_incomplete_tail():
    assert extract_examples("Given: a\nWhen: b") == []


def test_extract_questions_section_and_marks():
    text = "\n".join(
        [
            "# Title?",
            "Should sessions expire?",
            "A normal line.",
            "## Questions",
            "- Who owns the data",
            "* What is the retention period",
            "## Next",
            "タイムアウトは何秒か？",
        ]
    )
    assert extract_questions(text) == [
        "Should sessions expire?",
        "Who owns the data",
        "What is the retention period",
        "タイムアウトは何秒か？",
    ]


def test_extract_first_heading():
    assert extract_first_heading("text\n## Heading Two\n# Other") == "Heading Two"
    assert extract_first_heading("no headings") == ""


def test_extract_context():
    assert extract_context("<!-- context:  API common rules  -->\nbody") == "API common rules"
    assert extract_context("body only") == ""


def _write_kire(tmp_path, entries, bodies):
    jsonl = tmp_path / "metadata.jsonl"
    jsonl.write_text("\n".join(json.dumps(e, ensure_ascii=False) for e in entries) + "\n", encoding="utf-8")
    for name, body in bodies.items():
        (tmp_path / name).write_text(body, encoding="utf-8")
    return jsonl


def _entry(index, filename, heading_path):
    return {
        "content": "",
        "metadata": {
            "source": "spec.md",
            "segment_index": index,
            "filename": filename,
            "heading_path": heading_path,
            "token_count": 10,
            "block_count": 1,
        },
    }


def test_parse_metadata_sorts_by_index(tmp_path):
    jsonl = _write_kire(
        tmp_path,
        [_entry(2, "b.md", ["Spec", "B"]), _entry(0, "a.md", ["Spec", "A"])],
        {},
    )
    metas = KireParser(str(tmp_path)).parse_metadata(str(jsonl))

    assert [m.segment_id for m in metas] == ["seg-0000", "seg-0002"]
    assert metas[0].heading_path == ["Spec", "A"]
    assert metas[1].file_path == "b.md"


def test_parse_metadata_malformed_line(tmp_path):
    jsonl = tmp_path / "metadata.jsonl"
    jsonl.write_text(json.dumps(_entry(0, "a.md", [])) + "\n{not json\n", encoding="utf-8")

    with pytest.raises(SourceError, match="line 2"):
        KireParser(str(tmp_path)).parse_metadata(str(jsonl))


def test_parse_metadata_missing_file(tmp_path):
    with pytest.raises(SourceError):
        KireParser(str(tmp_path)).parse_metadata(str(tmp_path / "missing.jsonl"))


def test_source_reports_gaps(tmp_path, capsys):
    jsonl = _write_kire(
        tmp_path,
        [_entry(0, "a.md", ["Spec", "Login"]), _entry(1, "missing.md", ["Spec", "Gone"])],
        {"a.md": "<!-- context: auth -->\n### REQ-001: Login\nGiven: a\nWhen: b\nThen: c\n"},
    )
    result = KireSegmentSource(str(jsonl), str(tmp_path)).load()

    assert [s.segment_id for s in result.segments] == ["seg-0000"]
    segment = result.segments[0]
    assert segment.heading_path == ("Spec", "Login")
    assert segment.heading_title == "Login"
    assert segment.context == "auth"
    assert segment.file_path == "a.md"

    assert len(result.gaps) == 1
    assert result.gaps[0].meta.segment_id == "seg-0001"
    assert "segment file not found" in capsys.readouterr().out
