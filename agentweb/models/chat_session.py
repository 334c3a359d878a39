"""ChatSession ORM: one conversation owned by one user, optionally inside a project.

Invariants:
    - id is a UUID string; the same id addresses the live AgentSession while a stream runs
    - title starts as the fallback title (or "New Chat") and may be replaced once by a model title
    - messages are deleted with their session

Design Decisions:
    - String(36) ids over the postgres UUID type: ids travel through URLs and SSE as strings,
      and SQLite (local/tests) stores them without a dialect shim
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from agentweb.db.base import Base


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ChatSession(Base):
    __tablename__ = "chat_sessions"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    project_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("projects.id", ondelete="SET NULL"), nullable=True,
    )
    title: Mapped[str] = mapped_column(
        String(200), nullable=False, default="New Chat",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now, onupdate=_now,
    )

    messages = relationship(
        "ChatMessage",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="ChatMessage.seq",
    )
