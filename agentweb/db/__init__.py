"""Database Layer: SQLAlchemy declarative Base.

Invariants:
    - Single async engine per process (initialized via init_db in infrastructure/database.py)
    - All sessions are async (AsyncSession)

Design Decisions:
    - asyncpg for PostgreSQL, aiosqlite for local runs and tests (ADR: native async drivers)
"""
