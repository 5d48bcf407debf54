"""Generation layer: access to the classification/generation service.

Components:
- GeminiLLMClient: LLM client using Google Gemini (JSON mode, finish reason)
- call_with_retries: Fixed retry budget around one service call
- PromptTemplate: Enrichment prompts and structured-output schemas
- json_utils: Response parsing and truncated-array salvage

Rules:
- DEP-GEN-001: MAY import shared (config, exceptions) and domain
- DEP-GEN-BAN-001: MUST NOT import api, storage, enrichment
- DEP-GEN-BAN-002: MUST NOT import ingestion
"""

from .client import GeminiLLMClient, LLMClientProtocol, call_with_retries
from .json_utils import parse_json_payload, salvage_json_array, strip_code_fence
from .models import LLMResponse
from .prompts import (
    BATCH_CLASSIFY_SCHEMA,
    BATCH_EXAMPLES_SCHEMA,
    CLASSIFY_SCHEMA,
    PromptTemplate,
)

__all__ = [
    # Client
    "GeminiLLMClient",
    "LLMClientProtocol",
    "call_with_retries",
    # Models
    "LLMResponse",
    # Prompts
    "PromptTemplate",
    "CLASSIFY_SCHEMA",
    "BATCH_CLASSIFY_SCHEMA",
    "BATCH_EXAMPLES_SCHEMA",
    # Parsing
    "parse_json_payload",
    "salvage_json_array",
    "strip_code_fence",
]
