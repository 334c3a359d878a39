"""API Dependencies: request identity and the process-wide ChatService.

Invariants:
    - One ChatService (and so one SessionRegistry and TodoStore) per process: abort
      requests must see the sessions that stream requests registered
    - The user id comes from the X-User-Id header; a missing header means the local user

Design Decisions:
    - Authentication is outside this service: a fronting proxy sets X-User-Id
      (ADR: single-user local setups need no auth layer)
    - Lazily built on first use so tests can override the FastAPI dependency before startup
"""

from fastapi import Header

from agentweb.config import get_settings
from agentweb.infrastructure.anthropic_client import AnthropicClientCache
from agentweb.infrastructure.database import get_db_manager
from agentweb.infrastructure.model_config import SettingsModelConfigProvider
from agentweb.infrastructure.session_storage import SqlProjectService, SqlSessionStorage
from agentweb.services.chat_service import ChatService
from agentweb.services.session_registry import SessionRegistry
from agentweb.services.todo_store import TodoStore

LOCAL_USER_ID = "local"

_chat_service: ChatService | None = None


def get_user_id(x_user_id: str | None = Header(None)) -> str:
    return (x_user_id or "").strip() or LOCAL_USER_ID


def build_chat_service() -> ChatService:
    settings = get_settings()
    session_factory = get_db_manager().session
    return ChatService(
        storage=SqlSessionStorage(session_factory),
        projects=SqlProjectService(session_factory),
        model_config=SettingsModelConfigProvider(settings),
        registry=SessionRegistry(),
        client_cache=AnthropicClientCache(settings),
        settings=settings,
        todo_store=TodoStore(),
    )


def get_chat_service() -> ChatService:
    global _chat_service
    if _chat_service is None:
        _chat_service = build_chat_service()
    return _chat_service
