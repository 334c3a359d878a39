"""Core Layer: pure domain logic (path sandbox, stream decoding, diffing, formatting).

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - No I/O: functions take values and return values (Protocols only describe async collaborators)

Design Decisions:
    - Functional core separated from imperative shell (ADR: ExMA impureim sandwich)
"""
