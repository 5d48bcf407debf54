"""Duplicate requirement identifier handling.

Strict mode reports every repeated id as an error; merge mode consolidates the
contributing records into one per id.
"""

from collections import OrderedDict
from typing import Dict, List, Optional, Sequence, Tuple

from domain import Example, SourceInfo, Spec
from shared.exceptions import DuplicateRequirementError

from .examples import renumber_examples


def find_duplicate_ids(ids: Sequence[str]) -> List[Tuple[str, int, int]]:
    """Return (id, previous index, index) for every repeated id."""
    seen: Dict[str, int] = {}
    duplicates: List[Tuple[str, int, int]] = []
    for index, req_id in enumerate(ids):
        if req_id in seen:
            duplicates.append((req_id, seen[req_id], index))
        seen[req_id] = index
    return duplicates


def check_duplicate_ids(specs: Sequence[Spec], indices: Optional[Sequence[int]] = None) -> None:
    """
    Args:
        specs: Specs in segment order
        indices: Segment index per spec, reported instead of list positions

    Raises:
        DuplicateRequirementError: If two specs share an identifier
    """
    duplicates = find_duplicate_ids([spec.id for spec in specs])
    if not duplicates:
        return
    if indices is not None:
        duplicates = [(req_id, indices[first], indices[second]) for req_id, first, second in duplicates]
    raise DuplicateRequirementError(duplicates)


def merge_duplicate_specs(specs: Sequence[Spec]) -> List[Spec]:
    """
    Consolidate specs sharing an identifier.

    - Title, description, provenance and tags come from the first occurrence.
    - Examples are concatenated in order and renumbered (no implicit dedup).
    - Questions and depends are unioned, exact duplicates removed, first-seen order.
    - Output follows the order in which each id was first seen.
    """
    groups: "OrderedDict[str, List[Spec]]" = OrderedDict()
    for spec in specs:
        groups.setdefault(spec.id, []).append(spec)

    merged: List[Spec] = []
    for req_id, group in groups.items():
        first = group[0]
        if len(group) == 1:
            merged.append(first)
            continue

        examples: List[Example] = []
        questions: List[str] = []
        depends: List[str] = []
        for spec in group:
            examples.extend(spec.examples)
            questions.extend(q for q in spec.questions if q not in questions)
            depends.extend(d for d in spec.depends if d not in depends)

        print(f"[enrich] merged {len(group)} segments into {req_id}")
        merged.append(
            Spec(
                id=req_id,
                title=first.title,
                description=first.description,
                source=SourceInfo(
                    segment_id=first.source.segment_id,
                    heading_path=list(first.source.heading_path),
                    file_path=first.source.file_path,
                ),
                depends=depends,
                examples=renumber_examples(examples),
                questions=questions,
                tags=list(first.tags),
            )
        )
    return merged


__all__ = ["find_duplicate_ids", "check_duplicate_ids", "merge_duplicate_specs"]
