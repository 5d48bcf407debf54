"""CLI entry point for running as `python -m api.cli`.

Usage:
    python -m api.cli import                      # Pattern-based import
    python -m api.cli import --enrich             # 1-pass Gemini enrichment
    python -m api.cli import --enrich --enrich-example-model gemini-2.5-flash
    python -m api.cli validate                    # Check stored specs
"""

import sys

from .commands import create_parser, run


def main():
    """Entry point for `python -m api.cli`."""
    parser = create_parser()
    args = parser.parse_args()
    sys.exit(run(args))


if __name__ == "__main__":
    main()
