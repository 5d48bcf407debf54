"""Spec repository implementation.

Provides file-backed CRUD operations for Spec records, one YAML file per id.

Rules:
- PKG-STO-001: Repository interface implementation
- DEP-STO-ALLOW-001~002: MAY import domain, shared
"""

from pathlib import Path
from typing import List, Optional, Union

import yaml

from domain import Spec, format_req_id, req_id_number, req_id_sort_key
from shared.exceptions import SpecValidationError, StorageError

SPEC_FILE_SUFFIX = ".yml"


class SpecRepository:
    """Repository for Spec records.

    Handles persistence of Spec records as ``<spec_dir>/<ID>.yml``.

    Example:
        >>> repo = SpecRepository(".tdd/specs")
        >>> if not repo.exists("REQ-001"):
        ...     repo.write(spec)
    """

    def __init__(self, spec_dir: Union[str, Path]):
        self.spec_dir = Path(spec_dir)

    def path_for(self, req_id: str) -> Path:
        """Storage path of a spec id."""
        return self.spec_dir / f"{req_id}{SPEC_FILE_SUFFIX}"

    def exists(self, req_id: str) -> bool:
        """Check if a spec file exists.

        Args:
            req_id: Spec ID

        Returns:
            True if a file is stored for the id
        """
        return self.path_for(req_id).is_file()

    def write(self, spec: Spec) -> Path:
        """Validate and save a spec, replacing any existing file.

        Args:
            spec: Spec to save

        Returns:
            Path written

        Raises:
            SpecValidationError: If the spec is invalid
            StorageError: If the file cannot be written
        """
        spec.validate()
        path = self.path_for(spec.id)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8") as f:
                yaml.safe_dump(spec.to_dict(), f, sort_keys=False, allow_unicode=True, default_flow_style=False)
        except OSError as exc:
            raise StorageError(f"failed to write {path}: {exc}") from exc
        return path

    def load(self, path: Union[str, Path]) -> Spec:
        """Load and validate one spec file.

        A missing ``id`` field is taken from the file name.

        Raises:
            StorageError: If the file cannot be read or parsed
            SpecValidationError: If the record is invalid
        """
        path = Path(path)
        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except OSError as exc:
            raise StorageError(f"failed to read {path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise StorageError(f"failed to parse {path}: {exc}") from exc

        if not isinstance(data, dict):
            raise StorageError(f"{path}: expected a mapping")

        spec = Spec.from_dict(data)
        if not spec.id:
            spec.id = path.stem
        try:
            spec.validate()
        except SpecValidationError as exc:
            raise SpecValidationError(f"{path}: {exc}") from exc
        return spec

    def find_by_id(self, req_id: str) -> Optional[Spec]:
        """Load a spec by id, or None when no file exists."""
        if not self.exists(req_id):
            return None
        return self.load(self.path_for(req_id))

    def list_files(self) -> List[Path]:
        """Spec files in the directory; empty when the directory is missing."""
        if not self.spec_dir.is_dir():
            return []
        return sorted(self.spec_dir.glob(f"*{SPEC_FILE_SUFFIX}"))

    def read_all(self) -> List[Spec]:
        """Load every spec, sorted numerically by id."""
        specs = [self.load(path) for path in self.list_files()]
        specs.sort(key=lambda spec: req_id_sort_key(spec.id))
        return specs

    def next_req_id(self) -> str:
        """One past the highest REQ id stored (file names only)."""
        highest = 0
        for path in self.list_files():
            number = req_id_number(path.stem)
            if number is not None and number > highest:
                highest = number
        return format_req_id(highest + 1)


__all__ = ["SpecRepository", "SPEC_FILE_SUFFIX"]
