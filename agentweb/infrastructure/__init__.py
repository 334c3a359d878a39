"""Infrastructure Layer: database, model API client, storage adapters and logging setup.

Invariants:
    - Infrastructure depends on core/ types and errors only, never on services/ or api/
    - All external calls wrapped with retry/timeout/error mapping

Design Decisions:
    - Resilient wrappers over raw clients (ADR: ExMA single responsibility)
"""
