"""ChatMessage ORM: one stored user or assistant message.

Invariants:
    - content is the JSON dump of the message's ContentBlock list (schemas/message.py)
    - seq is monotonically increasing, so ordering never depends on clock resolution
    - assistant rows carry model, stop_reason and token counts; user rows leave them NULL

Design Decisions:
    - JSON column for content: blocks are a tagged union, a table per block type buys nothing
      (ADR: message persistence format is not part of the contract)
"""

from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from agentweb.db.base import Base


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    seq: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True,
    )
    id: Mapped[str] = mapped_column(String(36), nullable=False, unique=True)
    session_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("chat_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    content: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    stop_reason: Mapped[str | None] = mapped_column(String(32), nullable=True)
    input_tokens: Mapped[int | None] = mapped_column(Integer, nullable=True)
    output_tokens: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    session = relationship("ChatSession", back_populates="messages")
