"""Prompt templates and structured-output schemas for segment enrichment."""

from typing import Dict, List, Optional, Sequence

from domain import Segment

CATEGORY_VALUES = [
    "functional_requirement",
    "non_functional_requirement",
    "overview",
    "other",
]

_CATEGORY_RULES = """### 1. Segment category

Choose exactly one:

- "functional_requirement": the segment defines behaviour. Any of the following qualifies:
  - API endpoint definitions (HTTP method + path)
  - create/read/update/delete operation rules
  - validation rules for data operations
  - concrete input/output behaviour, data normalization or conversion rules
  A segment that also contains background or data definitions is still a
  functional_requirement when it defines an endpoint or a concrete operation.
- "non_functional_requirement": the segment only defines quality attributes
  (performance, security, availability, ...), not behaviour.
- "overview": background, purpose, scope or glossary with no functional rules at all.
- "other": anything else (appendix, change log, notes).

### 2. Requirement id

If the segment contains a heading of the form "### REQ-XXX: Title", return the id
(for example "REQ-001"). Otherwise return an empty string.

### 3. Title

Extract or write a short title naming the subject of the segment.
"""

_GWT_RULES = """## Given/When/Then rules

- Given: the concrete state the test must set up ("label 'label-001' exists"),
  never a vague precondition ("the client is authenticated").
- When: for functional requirements name the HTTP method and path; for
  non-functional requirements name the measurement or load condition.
- Then: the expected result, including status code and response content.
- Cover success and failure paths for every endpoint: validation errors (422),
  unknown or malformed input (400), not found (404), conflicts (409),
  precondition headers (428/412) where specified.
- Add boundary examples for every numeric or length limit (at the limit and one past it).
- Add one example per normalization rule and per state-transition constraint.
- If the segment already contains Given/When/Then lines, reuse them as written.
"""

CLASSIFY_AND_ENRICH_PROMPT = """You are an expert in analysing software specifications.
Analyse the segment below and return the result as a JSON object.

## Tasks

{category_rules}
### 4. Examples

If the segment is a functional_requirement, derive Given/When/Then examples from
its normal and error cases. Return an empty list for any other category.
{context_section}
{gwt_rules}
## Segment

{content}
"""

BATCH_CLASSIFY_PROMPT = """You are an expert in analysing software specifications.
Analyse each of the segments below and return a JSON array with one result per segment.

## Tasks

For every segment:

{category_rules}
## Segments

{segments}

## Output

Return a JSON array. Every item must include the segment_id it refers to.
"""

BATCH_EXAMPLES_PROMPT = """You are an expert in analysing software specifications.
Generate Given/When/Then examples exhaustively for each of the segments below
(functional and non-functional requirements). A rule in the specification with no
example covering it is a defect.
{context_section}
{gwt_rules}
## Segments

{segments}

## Output

Return a JSON array. Every item must include the segment_id it refers to.
"""

_EXAMPLE_ITEM_SCHEMA: Dict = {
    "type": "OBJECT",
    "properties": {
        "given": {"type": "STRING", "description": "Concrete precondition to set up"},
        "when": {"type": "STRING", "description": "Action performed (HTTP method + path)"},
        "then": {"type": "STRING", "description": "Expected result incl. status code"},
    },
    "required": ["given", "when", "then"],
}

CLASSIFY_SCHEMA: Dict = {
    "type": "OBJECT",
    "properties": {
        "category": {"type": "STRING", "enum": CATEGORY_VALUES},
        "req_id": {"type": "STRING", "description": "REQ-XXX in the segment, or empty"},
        "title": {"type": "STRING"},
        "examples": {"type": "ARRAY", "items": _EXAMPLE_ITEM_SCHEMA},
    },
    "required": ["category", "title"],
}

BATCH_CLASSIFY_SCHEMA: Dict = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "segment_id": {"type": "STRING"},
            "category": {"type": "STRING", "enum": CATEGORY_VALUES},
            "title": {"type": "STRING"},
            "req_id": {"type": "STRING", "description": "REQ-XXX in the segment, or empty"},
        },
        "required": ["segment_id", "category", "title"],
    },
}

BATCH_EXAMPLES_SCHEMA: Dict = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "segment_id": {"type": "STRING"},
            "examples": {"type": "ARRAY", "items": _EXAMPLE_ITEM_SCHEMA},
        },
        "required": ["segment_id", "examples"],
    },
}


class PromptTemplate:
    """Build enrichment prompts from segments."""

    @staticmethod
    def format_context_section(context_segments: Optional[Sequence[Segment]]) -> str:
        """Format cross-cutting segments (overview, common rules) as prompt context.

        Returns an empty string when there is no context.
        """
        if not context_segments:
            return ""
        lines: List[str] = [
            "",
            "## Common rules (apply to every segment)",
            "",
            "The following rules apply across all resources. Apply them when writing",
            "examples for each segment (error format, precondition headers,",
            "normalization, malformed input). Do not write examples for these",
            "context segments themselves.",
            "",
        ]
        blocks = [f"--- context: {seg.segment_id} ---\n{seg.content}" for seg in context_segments]
        return "\n".join(lines) + "\n\n".join(blocks) + "\n"

    @staticmethod
    def _segment_header(segment: Segment, title: Optional[str] = None) -> str:
        header = f"--- segment_id: {segment.segment_id}"
        if title is not None:
            header += f" | title: {title}"
        if segment.context:
            header += f" | context: {segment.context}"
        return header + " ---"

    @classmethod
    def format_classify_prompt(
        cls,
        segment: Segment,
        context_segments: Optional[Sequence[Segment]] = None,
    ) -> str:
        return CLASSIFY_AND_ENRICH_PROMPT.format(
            category_rules=_CATEGORY_RULES,
            context_section=cls.format_context_section(context_segments),
            gwt_rules=_GWT_RULES,
            content=segment.content,
        )

    @classmethod
    def format_batch_classify_prompt(cls, segments: Sequence[Segment]) -> str:
        blocks = [f"{cls._segment_header(seg)}\n{seg.content}" for seg in segments]
        return BATCH_CLASSIFY_PROMPT.format(
            category_rules=_CATEGORY_RULES,
            segments="\n\n".join(blocks),
        )

    @classmethod
    def format_batch_examples_prompt(
        cls,
        segments: Sequence[Segment],
        context_segments: Optional[Sequence[Segment]] = None,
    ) -> str:
        blocks = [f"{cls._segment_header(seg, seg.heading_title)}\n{seg.content}" for seg in segments]
        return BATCH_EXAMPLES_PROMPT.format(
            context_section=cls.format_context_section(context_segments),
            gwt_rules=_GWT_RULES,
            segments="\n\n".join(blocks),
        )


__all__ = [
    "PromptTemplate",
    "CLASSIFY_SCHEMA",
    "BATCH_CLASSIFY_SCHEMA",
    "BATCH_EXAMPLES_SCHEMA",
    "CATEGORY_VALUES",
]
