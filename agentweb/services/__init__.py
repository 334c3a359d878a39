"""Services Layer: chat service, agent runner, tool dispatch and tool handlers.

Invariants:
    - Handlers split by concern (max ~4 methods each)
    - Tool dispatch uses explicit dict mapping (no auto-discovery)

Design Decisions:
    - One define_*_tools.py / handle_*.py pair per tool family for locality
      (ADR: ExMA no god objects)
"""
