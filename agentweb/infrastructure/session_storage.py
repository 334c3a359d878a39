"""SQL Collaborators: SessionStorage and ProjectService backed by SQLAlchemy.

Invariants:
    - Every call opens and commits its own short-lived DB session (no session spans a stream)
    - Reads and writes are scoped by user_id: another user's session is "not found"
    - append_message() is append-only; stored content round-trips through Message.model_validate

Design Decisions:
    - Session factory injected (DatabaseSessionManager.session): tests pass an in-memory SQLite one
    - Project instructions fall back to CLAUDE.md in the project directory when the row has none
"""

import asyncio
import logging
import os
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from agentweb.core.errors import ResourceNotFoundError
from agentweb.core.repository_protocols import ChatSessionRecord, ProjectContext
from agentweb.models.chat_message import ChatMessage
from agentweb.models.chat_session import ChatSession
from agentweb.models.project import Project
from agentweb.schemas.message import Message

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]

PROJECT_INSTRUCTIONS_FILE = "CLAUDE.md"


def _record(row: ChatSession) -> ChatSessionRecord:
    return ChatSessionRecord(
        id=row.id, user_id=row.user_id, title=row.title, project_id=row.project_id,
    )


class SqlSessionStorage:
    """Chat sessions and messages in the relational database."""

    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    async def create_session(
        self, user_id: str, title: str, project_id: str | None = None,
    ) -> ChatSessionRecord:
        async with self._session_factory() as db:
            row = ChatSession(user_id=user_id, title=title, project_id=project_id)
            db.add(row)
            await db.commit()
            await db.refresh(row)
            logger.info("Chat session created", extra={"session_id": row.id, "user_id": user_id})
            return _record(row)

    async def get_session(
        self, user_id: str, session_id: str,
    ) -> ChatSessionRecord | None:
        async with self._session_factory() as db:
            row = await self._owned_session(db, user_id, session_id)
            return _record(row) if row else None

    async def update_session_title(
        self, user_id: str, session_id: str, title: str,
    ) -> None:
        async with self._session_factory() as db:
            row = await self._owned_session(db, user_id, session_id)
            if row is None:
                raise ResourceNotFoundError("ChatSession", session_id)
            row.title = title
            await db.commit()

    async def append_message(
        self, user_id: str, session_id: str, message: Message,
    ) -> None:
        async with self._session_factory() as db:
            if await self._owned_session(db, user_id, session_id) is None:
                raise ResourceNotFoundError("ChatSession", session_id)
            db.add(ChatMessage(
                id=message.id,
                session_id=session_id,
                role=message.role.value,
                content=[b.model_dump(mode="json") for b in message.content],
                model=message.model,
                stop_reason=message.stop_reason,
                input_tokens=message.input_tokens,
                output_tokens=message.output_tokens,
                created_at=message.created_at,
            ))
            await db.commit()

    async def get_messages(self, user_id: str, session_id: str) -> list[Message]:
        async with self._session_factory() as db:
            if await self._owned_session(db, user_id, session_id) is None:
                raise ResourceNotFoundError("ChatSession", session_id)
            rows = (await db.execute(
                select(ChatMessage)
                .where(ChatMessage.session_id == session_id)
                .order_by(ChatMessage.seq)
            )).scalars().all()
            return [
                Message.model_validate({
                    "id": r.id,
                    "session_id": r.session_id,
                    "role": r.role,
                    "content": r.content,
                    "created_at": r.created_at,
                    "model": r.model,
                    "stop_reason": r.stop_reason,
                    "input_tokens": r.input_tokens,
                    "output_tokens": r.output_tokens,
                })
                for r in rows
            ]

    async def _owned_session(
        self, db: AsyncSession, user_id: str, session_id: str,
    ) -> ChatSession | None:
        row = await db.get(ChatSession, session_id)
        if row is None or row.user_id != user_id:
            return None
        return row


class SqlProjectService:
    """Project lookups for the chat flow."""

    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    async def get_project_context(
        self, user_id: str, project_id: str,
    ) -> ProjectContext:
        async with self._session_factory() as db:
            row = await db.get(Project, project_id)
            if row is None or row.user_id != user_id:
                raise ResourceNotFoundError("Project", project_id)
            path, instructions = row.path, row.instructions
        if not instructions and path:
            instructions = await asyncio.to_thread(_read_instructions_file, path)
        return ProjectContext(path=path, instructions=instructions)


def _read_instructions_file(project_path: str) -> str | None:
    candidate = os.path.join(project_path, PROJECT_INSTRUCTIONS_FILE)
    try:
        with open(candidate, encoding="utf-8") as f:
            return f.read().strip() or None
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.warning("Could not read %s: %s", candidate, e)
        return None
