"""Pattern-based extraction from raw segment text.

Pure functions; the pattern-based classifier, the identifier allocator and the
example merger all read segment text through these helpers.
"""

import re
from typing import List, Tuple

from domain import Example

REQ_ID_EXTRACT_PATTERN = re.compile(r"REQ-(\d{3})")
REQ_ID_WITH_TITLE_PATTERN = re.compile(r"###\s+REQ-(\d{3}):\s*(.+)")
GWT_GIVEN_PATTERN = re.compile(r"^[-*]?\s*given:\s*(.+)", re.IGNORECASE)
GWT_WHEN_PATTERN = re.compile(r"^[-*]?\s*when:\s*(.+)", re.IGNORECASE)
GWT_THEN_PATTERN = re.compile(r"^[-*]?\s*then:\s*(.+)", re.IGNORECASE)
QUESTIONS_SECTION_PATTERN = re.compile(r"^#{2,3}\s+questions", re.IGNORECASE)
HEADING_PATTERN = re.compile(r"^#+\s+")


def extract_req_id(text: str) -> str:
    """Return the first ``REQ-NNN`` token in text, or an empty string."""
    match = REQ_ID_EXTRACT_PATTERN.search(text or "")
    return match.group(0) if match else ""


def extract_req_id_with_title(text: str) -> Tuple[str, str]:
    """Extract id and title from a ``### REQ-NNN: Title`` heading."""
    match = REQ_ID_WITH_TITLE_PATTERN.search(text or "")
    if not match:
        return "", ""
    return f"REQ-{match.group(1)}", match.group(2).strip()


def extract_examples(text: str) -> List[Example]:
    """
    Extract Given/When/Then triples written on consecutive lines.

    Returned examples carry no ids; ids are assigned at finalization.
    """
    lines = (text or "").split("\n")
    examples: List[Example] = []
    i = 0
    while i < len(lines):
        given = GWT_GIVEN_PATTERN.match(lines[i].strip())
        if given is None or i + 2 >= len(lines):
            i += 1
            continue
        when = GWT_WHEN_PATTERN.match(lines[i + 1].strip())
        then = GWT_THEN_PATTERN.match(lines[i + 2].strip()) if when else None
        if when is None or then is None:
            i += 1
            continue

        example = Example(
            given=given.group(1).strip(),
            when=when.group(1).strip(),
            then=then.group(1).strip(),
        )
        if example.is_valid():
            examples.append(example)
        i += 3
    return examples


def extract_questions(text: str) -> List[str]:
    """
    Extract open questions.

    Lines inside a ``Questions`` section (until the next heading) and any
    non-heading line ending with a question mark.
    """
    questions: List[str] = []
    in_section = False

    for line in (text or "").split("\n"):
        trimmed = line.strip()
        if not trimmed:
            continue

        if QUESTIONS_SECTION_PATTERN.match(trimmed):
            in_section = True
            continue

        if in_section and HEADING_PATTERN.match(trimmed):
            in_section = False
            continue

        if in_section:
            question = trimmed.lstrip("-* ").strip()
            if question:
                questions.append(question)
            continue

        if trimmed.endswith(("?", "？")) and not HEADING_PATTERN.match(trimmed):
            questions.append(trimmed)

    return questions


def extract_first_heading(text: str) -> str:
    """Return the text of the first Markdown heading."""
    for line in (text or "").split("\n"):
        trimmed = line.strip()
        if trimmed.startswith("#"):
            return trimmed.lstrip("#").strip()
    return ""


__all__ = [
    "extract_req_id",
    "extract_req_id_with_title",
    "extract_examples",
    "extract_questions",
    "extract_first_heading",
]
