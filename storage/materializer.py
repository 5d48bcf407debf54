"""Spec materialization under skip/overwrite/dry-run policies."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Protocol, Sequence

from domain import Spec


class SpecStoreProtocol(Protocol):
    """Storage operations the materializer needs."""

    def exists(self, req_id: str) -> bool:
        ...

    def write(self, spec: Spec):
        ...

    def read_all(self) -> List[Spec]:
        ...


class MaterializeAction(str, Enum):
    CREATED = "created"
    SKIPPED = "skipped"
    OVERWRITTEN = "overwritten"
    PREVIEWED = "previewed"


@dataclass
class MaterializeEntry:
    req_id: str
    title: str
    action: MaterializeAction


@dataclass
class MaterializeReport:
    """Per-record actions and aggregate counts of one materialize run."""

    entries: List[MaterializeEntry] = field(default_factory=list)

    def count(self, action: MaterializeAction) -> int:
        return sum(1 for entry in self.entries if entry.action is action)

    @property
    def created(self) -> int:
        return self.count(MaterializeAction.CREATED)

    @property
    def skipped(self) -> int:
        return self.count(MaterializeAction.SKIPPED)

    @property
    def overwritten(self) -> int:
        return self.count(MaterializeAction.OVERWRITTEN)

    @property
    def previewed(self) -> int:
        return self.count(MaterializeAction.PREVIEWED)


class SpecMaterializer:
    """Persist finalized specs.

    Policies:
    - dry_run: nothing is written; every record is reported as previewed
    - force: existing records are overwritten
    - default: existing records are skipped

    A write failure propagates immediately; records already written stay written.
    """

    def __init__(self, store: SpecStoreProtocol):
        self.store = store

    def materialize(self, specs: Sequence[Spec], *, dry_run: bool = False, force: bool = False) -> MaterializeReport:
        report = MaterializeReport()
        for spec in specs:
            report.entries.append(self._materialize_one(spec, dry_run, force))
        return report

    def _materialize_one(self, spec: Spec, dry_run: bool, force: bool) -> MaterializeEntry:
        if dry_run:
            print(f"[dry-run] {spec.id}: {spec.title}")
            return MaterializeEntry(spec.id, spec.title, MaterializeAction.PREVIEWED)

        existed = self.store.exists(spec.id)
        if existed and not force:
            print(f"[import] skip: {spec.id} already exists")
            return MaterializeEntry(spec.id, spec.title, MaterializeAction.SKIPPED)

        record = replace(spec, examples=[replace(e) for e in spec.examples])
        record.normalize()
        self.store.write(record)

        action = MaterializeAction.OVERWRITTEN if existed else MaterializeAction.CREATED
        print(f"[import] {action.value}: {spec.id}")
        return MaterializeEntry(spec.id, spec.title, action)


__all__ = [
    "SpecStoreProtocol",
    "SpecMaterializer",
    "MaterializeAction",
    "MaterializeEntry",
    "MaterializeReport",
]
