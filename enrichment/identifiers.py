"""Requirement identifier allocation.

Explicit identifiers (present in segment text, or proposed by the classifier and
re-validated) are resolved for every segment first; the running counter is then
seeded at the highest explicit value and auto-assigned ids increment it. The
counter is threaded through explicitly rather than held as module state.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from domain import Segment, format_req_id, req_id_number
from ingestion import extract_req_id, extract_req_id_with_title


@dataclass
class Allocation:
    """Identifiers for a sequence of segments.

    Attributes:
        ids: Resolved identifier per input, in input order
        explicit: True where the id was explicit, False where auto-assigned
        counter: Running counter after the last auto-assignment
    """

    ids: List[str]
    explicit: List[bool]
    counter: int


def resolve_explicit_id(segment: Segment, candidate_id: str = "") -> Tuple[str, bool]:
    """
    Find the explicit requirement id for a segment.

    Order: ``### REQ-NNN: Title`` heading in content, any ``REQ-NNN`` token in
    content, then the classifier candidate re-validated against the same pattern.

    Returns:
        (req_id or "", from_title_heading)
    """
    heading_id, _ = extract_req_id_with_title(segment.content)
    if heading_id:
        return heading_id, True
    content_id = extract_req_id(segment.content)
    if content_id:
        return content_id, False
    return extract_req_id(candidate_id or ""), False


def seed_counter(explicit_ids: Sequence[str], start: int = 0) -> int:
    """Highest numeric value among explicit ids (or start)."""
    counter = start
    for req_id in explicit_ids:
        number = req_id_number(req_id) if req_id else None
        if number is not None and number > counter:
            counter = number
    return counter


def assign_ids(explicit_ids: Sequence[str], counter: int) -> Tuple[List[str], int]:
    """
    Fill the gaps in explicit_ids from the running counter.

    Args:
        explicit_ids: Explicit id per segment ("" where none)
        counter: Counter value before the first auto-assignment

    Returns:
        (ids, counter after the last auto-assignment)
    """
    ids: List[str] = []
    for req_id in explicit_ids:
        if req_id:
            ids.append(req_id)
            continue
        counter += 1
        ids.append(format_req_id(counter))
    return ids, counter


class RequirementIdAllocator:
    """Deterministic identifier allocation over one pipeline run.

    Example:
        >>> allocator = RequirementIdAllocator()
        >>> allocation = allocator.allocate([(seg_a, ""), (seg_b, "REQ-007")])
        >>> allocation.ids
        ['REQ-008', 'REQ-007']
    """

    def __init__(self, start: int = 0):
        """
        Args:
            start: Minimum counter seed (e.g. highest id already in the store)
        """
        self.start = start

    def allocate(
        self,
        items: Sequence[Tuple[Segment, Optional[str]]],
        scan: Sequence[Segment] = (),
    ) -> Allocation:
        """Resolve explicit ids for all items, then auto-assign the rest.

        Args:
            items: Kept segments with their classifier candidate ids
            scan: Every segment read in the run, including ones dropped by
                classification; their explicit ids only raise the counter seed
        """
        explicit_ids = [resolve_explicit_id(segment, candidate or "")[0] for segment, candidate in items]
        scanned = [resolve_explicit_id(segment)[0] for segment in scan]
        counter = seed_counter(scanned, seed_counter(explicit_ids, self.start))
        ids, counter = assign_ids(explicit_ids, counter)
        return Allocation(
            ids=ids,
            explicit=[bool(req_id) for req_id in explicit_ids],
            counter=counter,
        )


__all__ = [
    "Allocation",
    "RequirementIdAllocator",
    "resolve_explicit_id",
    "seed_counter",
    "assign_ids",
]
