import os
from dataclasses import dataclass
from typing import Optional

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigError


DEFAULT_SPEC_DIR = ".tdd/specs"
DEFAULT_PROJECT_CONFIG = ".tdd/config.yml"
DEFAULT_CLASSIFY_MODEL = "gemini-2.5-flash-lite"


@dataclass
class EnrichConfig:
    """Configuration for the segment import pipeline."""

    spec_dir: str
    segment_dir: str
    jsonl_path: str
    gemini_api_key: str
    classify_model: str
    example_model: str
    classify_timeout: float
    batch_classify_timeout: float
    example_timeout: float
    max_retries: int
    max_batch_size: int
    max_output_tokens: int
    merge_duplicates: bool
    dedupe_examples: bool

    @property
    def batch_mode(self) -> bool:
        """2-phase batch mode is selected by naming an example model."""
        return bool(self.example_model)

    def validate(self) -> None:
        if self.max_batch_size < 1:
            raise ConfigError(f"ENRICH_MAX_BATCH must be >= 1 (got {self.max_batch_size})")
        if self.max_retries < 0:
            raise ConfigError(f"ENRICH_MAX_RETRIES must be >= 0 (got {self.max_retries})")
        if not self.spec_dir.strip():
            raise ConfigError("spec directory is required")

    def require_api_key(self) -> str:
        if not self.gemini_api_key:
            raise ConfigError(
                "GEMINI_API_KEY is required when --enrich is enabled. "
                "Set it with: export GEMINI_API_KEY=your-key"
            )
        return self.gemini_api_key


def _parse_int(value: Optional[str], default: int = 0) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _parse_float(value: Optional[str], default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes", "y", "on")


def _project_spec_dir(path: str = DEFAULT_PROJECT_CONFIG) -> Optional[str]:
    """Read ``specDir`` from the project YAML config, if present."""
    if not os.path.isfile(path):
        return None
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"failed to read {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping")
    spec_dir = data.get("specDir")
    return str(spec_dir) if spec_dir else None


def load_config(project_config: str = DEFAULT_PROJECT_CONFIG) -> EnrichConfig:
    """Load configuration from environment variables."""
    load_dotenv()

    spec_dir = os.getenv("SPEC_DIR") or _project_spec_dir(project_config) or DEFAULT_SPEC_DIR

    config = EnrichConfig(
        spec_dir=spec_dir,
        segment_dir=os.getenv("KIRE_DIR", ".kire"),
        jsonl_path=os.getenv("KIRE_JSONL", ".kire/metadata.jsonl"),
        gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
        classify_model=os.getenv("ENRICH_MODEL", DEFAULT_CLASSIFY_MODEL),
        example_model=os.getenv("ENRICH_EXAMPLE_MODEL", ""),
        classify_timeout=_parse_float(os.getenv("ENRICH_TIMEOUT"), 30.0),
        batch_classify_timeout=_parse_float(os.getenv("ENRICH_BATCH_TIMEOUT"), 60.0),
        example_timeout=_parse_float(os.getenv("ENRICH_EXAMPLE_TIMEOUT"), 120.0),
        max_retries=_parse_int(os.getenv("ENRICH_MAX_RETRIES"), 2),
        max_batch_size=_parse_int(os.getenv("ENRICH_MAX_BATCH"), 10),
        max_output_tokens=_parse_int(os.getenv("ENRICH_MAX_OUTPUT_TOKENS"), 8192),
        merge_duplicates=_parse_bool(os.getenv("MERGE_DUPLICATES", "false"), False),
        dedupe_examples=_parse_bool(os.getenv("DEDUPE_EXAMPLES", "false"), False),
    )
    config.validate()
    return config


__all__ = ["EnrichConfig", "load_config", "DEFAULT_SPEC_DIR", "DEFAULT_CLASSIFY_MODEL"]
