"""API layer: use cases, output formatting and the command-line interface.

Rules:
- DEP-API-001: MAY import every other package
- PKG-API-BAN-001: MUST NOT implement business logic directly
"""
