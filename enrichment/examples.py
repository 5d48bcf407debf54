"""Example merging and deduplication."""

from typing import List, Sequence

from domain import Example

GWT_KEY_SEPARATOR = "\x1f"


def renumber_examples(examples: Sequence[Example]) -> List[Example]:
    """Return copies with ids E1..En in order, ignoring any ids they carried."""
    return [
        Example(given=ex.given, when=ex.when, then=ex.then, id=f"E{i}")
        for i, ex in enumerate(examples, 1)
    ]


def merge_examples(existing: Sequence[Example], proposed: Sequence[Example]) -> List[Example]:
    """
    Select the example set for a segment.

    Triples already written in the segment text take absolute priority: when
    there is at least one, proposed examples are discarded entirely.

    Args:
        existing: Examples extracted from the raw text
        proposed: Examples proposed by the classifier/service

    Returns:
        Selected examples numbered E1..En
    """
    source = existing if existing else proposed
    return renumber_examples([ex for ex in source if ex.is_valid()])


def example_key(example: Example) -> str:
    """Normalized Given/When/Then key (trimmed, lowercased)."""
    return GWT_KEY_SEPARATOR.join(
        part.strip().lower() for part in (example.given, example.when, example.then)
    )


def deduplicate_examples(examples: Sequence[Example]) -> List[Example]:
    """Keep the first occurrence of each normalized key and renumber. Idempotent."""
    seen = set()
    unique: List[Example] = []
    for example in examples:
        key = example_key(example)
        if key in seen:
            continue
        seen.add(key)
        unique.append(example)
    return renumber_examples(unique)


__all__ = ["merge_examples", "deduplicate_examples", "renumber_examples", "example_key"]
