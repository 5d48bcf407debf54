"""File parsers for ingestion layer."""

from .kire import KireParser, extract_context

__all__ = ["KireParser", "extract_context"]
