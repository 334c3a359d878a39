"""Boundary Protocols: contracts between the chat core and its collaborators.

Invariants:
    - Core NEVER imports from infrastructure; dependency arrows point inward only
    - Storage, project lookup and model configuration accessed through Protocol types
    - Implementations provided by the shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance (ADR: ExMA anti-pattern)
    - Async in Protocol: implementations do IO; pure helpers that consume their
      results stay synchronous
"""

from dataclasses import dataclass
from typing import Protocol

from agentweb.schemas.message import Message


@dataclass(frozen=True)
class ModelConfig:
    """Active upstream model endpoint."""
    base_url: str | None
    api_key: str
    model: str


@dataclass(frozen=True)
class ProjectContext:
    """What the chat flow needs to know about a project."""
    path: str | None = None
    instructions: str | None = None


@dataclass
class ChatSessionRecord:
    """Minimal session row exposed to the chat flow."""
    id: str
    user_id: str
    title: str
    project_id: str | None = None


class SessionStorage(Protocol):
    """Contract for chat session + message persistence."""
    async def append_message(
        self, user_id: str, session_id: str, message: Message,
    ) -> None: ...
    async def get_messages(
        self, user_id: str, session_id: str,
    ) -> list[Message]: ...
    async def create_session(
        self, user_id: str, title: str, project_id: str | None = None,
    ) -> ChatSessionRecord: ...
    async def get_session(
        self, user_id: str, session_id: str,
    ) -> ChatSessionRecord | None: ...
    async def update_session_title(
        self, user_id: str, session_id: str, title: str,
    ) -> None: ...


class ProjectService(Protocol):
    """Contract for project lookup."""
    async def get_project_context(
        self, user_id: str, project_id: str,
    ) -> ProjectContext: ...


class ModelConfigProvider(Protocol):
    """Contract for the active model configuration."""
    async def get_active(self) -> ModelConfig: ...
