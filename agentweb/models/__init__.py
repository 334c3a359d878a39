"""ORM Models: SQLAlchemy declarative models for the chat collaborators.

Invariants:
    - All models inherit from Base (db/base.py)
    - ChatSession is the aggregate root; messages are scoped by session_id

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs (ADR: standard SQLAlchemy pattern)
"""

from agentweb.models.project import Project  # noqa: F401
from agentweb.models.chat_session import ChatSession  # noqa: F401
from agentweb.models.chat_message import ChatMessage  # noqa: F401
