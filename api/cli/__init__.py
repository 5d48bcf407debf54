"""Command-line interface (`python -m api.cli`)."""

from .commands import create_parser, main, run

__all__ = ["create_parser", "main", "run"]
