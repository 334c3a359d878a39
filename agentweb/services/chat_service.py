"""Chat Service: one streaming chat turn from request to stored assistant message.

Invariants:
    - The session is registered before `init` is emitted and always unregistered when
      the turn ends, whatever the outcome (only this turn's AgentSession is removed)
    - A busy session is refused before anything about it changes (title included), and
      on_session_created only fires once this turn owns the registry entry
    - abort_turn() cancels only the AgentSession its TurnHandle holds, never a later
      turn registered under the same session id
    - The user message is persisted before the model is called
    - Domain errors become their own `error` event; anything else becomes AGENT_ERROR
      with a generic message (internals stay in the logs)
    - An aborted turn ends with done(aborted): no title_update follows it
    - Title generation failures are logged and ignored; the fallback title stays

Design Decisions:
    - events() is the channel (async generator); stream_chat() pushes the same events
      into a sink for callers that own a push-style transport
    - Collaborators injected through Protocols (storage, projects, model config)
      (ADR: hexagonal, testable with in-memory fakes)
    - The registry entry is dropped before the title call so a follow-up message is
      not refused while the title is still being generated
"""

import asyncio
import base64
import binascii
import logging
import os
import uuid
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from typing import Protocol

import httpx

from agentweb.config import Settings
from agentweb.core.domain_types import PermissionMode, Role
from agentweb.core.errors import AgentWebError, ResourceNotFoundError
from agentweb.core.repository_protocols import (
    ChatSessionRecord, ModelConfigProvider, ProjectContext, ProjectService, SessionStorage,
)
from agentweb.core.session_titles import (
    DEFAULT_TITLE, TITLE_SYSTEM_PROMPT, clean_model_title, fallback_title,
)
from agentweb.infrastructure.anthropic_client import AnthropicClientCache, ResilientAnthropicClient
from agentweb.schemas.chat import Attachment, ChatRequest
from agentweb.schemas.message import (
    ContentBlock, DocumentBlock, ImageBlock, Message, TextBlock,
)
from agentweb.services.agent_runner import AgentRunner
from agentweb.services.agent_runner_helpers import error_event, init_event, title_update_event
from agentweb.services.session_registry import AgentSession, SessionRegistry
from agentweb.services.system_prompt import build_system_prompt
from agentweb.services.todo_store import TodoStore
from agentweb.services.tool_dispatch import ToolDispatch
from agentweb.services.tools_registry import ToolPolicy

logger = logging.getLogger(__name__)

AGENT_ERROR_MESSAGE = "An unexpected error occurred while processing your message."
TITLE_MAX_TOKENS = 50
TITLE_INPUT_CHARS = 1000


class EventSink(Protocol):
    """Push-style event consumer (see SseEncoder)."""
    @property
    def closed(self) -> bool: ...
    async def write(self, event: dict) -> None: ...


@dataclass
class TurnHandle:
    """The AgentSession one request registered, set once register() succeeded."""
    session: AgentSession | None = None


def attachment_block(attachment: Attachment) -> ContentBlock | None:
    media_type = attachment.media_type.lower()
    if media_type.startswith("image/"):
        return ImageBlock(media_type=media_type, data=attachment.data, name=attachment.name)
    if media_type == "application/pdf":
        return DocumentBlock(media_type=media_type, data=attachment.data, name=attachment.name)
    if media_type.startswith("text/") or media_type == "application/json":
        try:
            text = base64.b64decode(attachment.data).decode("utf-8", errors="replace")
        except (binascii.Error, ValueError):
            logger.warning("Attachment %s is not valid base64, skipped", attachment.name)
            return None
        return TextBlock(content=f"File: {attachment.name}\n\n{text}")
    logger.warning("Unsupported attachment type %s, skipped", media_type)
    return None


def user_message(session_id: str, request: ChatRequest) -> Message:
    blocks: list[ContentBlock] = [TextBlock(content=request.message)]
    for attachment in request.attachments or []:
        block = attachment_block(attachment)
        if block is not None:
            blocks.append(block)
    return Message(session_id=session_id, role=Role.USER, content=blocks)


class ChatService:
    """Runs chat turns. One instance per app; all per-turn state is local."""

    def __init__(
        self,
        storage: SessionStorage,
        projects: ProjectService,
        model_config: ModelConfigProvider,
        registry: SessionRegistry,
        client_cache: AnthropicClientCache,
        settings: Settings,
        todo_store: TodoStore | None = None,
        web_transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.storage = storage
        self.projects = projects
        self.model_config = model_config
        self.registry = registry
        self.client_cache = client_cache
        self.settings = settings
        self.todo_store = todo_store or TodoStore()
        self._web_transport = web_transport

    def abort_session(self, session_id: str) -> bool:
        return self.registry.abort(session_id)

    def abort_turn(self, turn: TurnHandle) -> bool:
        """Abort the AgentSession this turn registered, and nothing else."""
        if turn.session is None:
            return False
        return self.registry.abort(turn.session.session_id, turn.session)

    async def stream_chat(
        self,
        user_id: str,
        request: ChatRequest,
        sink: EventSink,
        on_session_created: Callable[[str], None] | None = None,
    ) -> None:
        """Push every event of one turn into sink; a closed sink aborts the turn."""
        turn = TurnHandle()
        async for event in self.events(user_id, request, on_session_created, turn=turn):
            await sink.write(event)
            if sink.closed:
                self.abort_turn(turn)

    async def events(
        self,
        user_id: str,
        request: ChatRequest,
        on_session_created: Callable[[str], None] | None = None,
        turn: TurnHandle | None = None,
    ) -> AsyncIterator[dict]:
        """The event channel of one turn (init ... done, then title_update)."""
        agent_session: AgentSession | None = None
        session_id: str | None = None
        needs_title = False
        client: ResilientAnthropicClient | None = None
        model = self.settings.agent_model

        try:
            config = await self.model_config.get_active()
            client = self.client_cache.get(config)
            model = config.model
            # an unknown project must fail before a session is created for it
            project = await self._project_context(user_id, request.project_id)

            record, is_new = await self._open_session(user_id, request)
            session_id = record.id
            project_id = request.project_id or record.project_id
            if project_id != request.project_id:
                project = await self._project_context(user_id, project_id)
            working_dir = self._working_dir(project)

            agent_session = AgentSession(
                session_id=session_id,
                user_id=user_id,
                working_dir=working_dir,
                project_id=project_id,
                permission_mode=PermissionMode(request.permission_mode),
            )
            self.registry.register(agent_session)
            if turn is not None:
                turn.session = agent_session
            if on_session_created:
                on_session_created(session_id)

            needs_title = is_new or record.title == DEFAULT_TITLE
            if not is_new and record.title == DEFAULT_TITLE:
                record.title = fallback_title(request.message)
                await self.storage.update_session_title(user_id, session_id, record.title)

            message_id = str(uuid.uuid4())
            yield init_event(session_id, message_id, record.title, working_dir)

            await self.storage.append_message(user_id, session_id, user_message(session_id, request))
            policy = ToolPolicy.from_settings(self.settings)
            system = build_system_prompt(working_dir, policy, project.instructions)
            history = await self.storage.get_messages(user_id, session_id)

            runner = AgentRunner(
                client=client,
                dispatch=ToolDispatch(
                    policy, session_id, self.todo_store,
                    bash_timeout_ms=self.settings.bash_default_timeout_ms,
                    web_timeout_seconds=self.settings.web_fetch_timeout_seconds,
                    web_transport=self._web_transport,
                ),
                storage=self.storage,
                model=model,
                max_iterations=self.settings.agent_max_iterations,
                thinking_budget_tokens=self.settings.thinking_budget_tokens,
            )
            async for event in runner.run(agent_session, history, system, message_id):
                yield event

        except AgentWebError as e:
            logger.warning(
                "Chat turn failed: %s", e.message,
                extra={"session_id": session_id, "error_code": e.code},
            )
            yield e.to_sse_event()
        except Exception:
            logger.exception("Unexpected error in chat turn", extra={"session_id": session_id})
            yield error_event("AGENT_ERROR", AGENT_ERROR_MESSAGE)
        finally:
            if agent_session is not None:
                self.registry.unregister(agent_session.session_id, agent_session)

        aborted = agent_session is not None and agent_session.cancellation.cancelled
        if needs_title and client is not None and session_id and not aborted:
            event = await self._generate_title(client, model, user_id, session_id, request.message)
            if event:
                yield event

    async def _open_session(
        self, user_id: str, request: ChatRequest,
    ) -> tuple[ChatSessionRecord, bool]:
        """Existing session or a new one with the fallback title; bool = newly created.

        Nothing about an existing session changes here: it may still turn out busy.
        """
        if request.session_id is None:
            title = fallback_title(request.message)
            record = await self.storage.create_session(user_id, title, request.project_id)
            return record, True

        record = await self.storage.get_session(user_id, request.session_id)
        if record is None:
            raise ResourceNotFoundError("ChatSession", request.session_id)
        return record, False

    async def _project_context(self, user_id: str, project_id: str | None) -> ProjectContext:
        if not project_id:
            return ProjectContext()
        return await self.projects.get_project_context(user_id, project_id)

    def _working_dir(self, project: ProjectContext) -> str:
        return os.path.abspath(
            project.path or self.settings.default_working_dir or os.getcwd()
        )

    async def _generate_title(
        self,
        client: ResilientAnthropicClient,
        model: str,
        user_id: str,
        session_id: str,
        message: str,
    ) -> dict | None:
        try:
            response = await asyncio.wait_for(
                client.create_message(
                    model=model,
                    max_tokens=TITLE_MAX_TOKENS,
                    system=TITLE_SYSTEM_PROMPT,
                    messages=[{"role": "user", "content": message[:TITLE_INPUT_CHARS]}],
                ),
                timeout=self.settings.title_timeout_seconds,
            )
            text = "".join(
                getattr(block, "text", "") for block in response.content
                if getattr(block, "type", None) == "text"
            )
            title = clean_model_title(text)
            if title is None:
                logger.info("Model title rejected", extra={"session_id": session_id})
                return None
            await self.storage.update_session_title(user_id, session_id, title)
        except (asyncio.TimeoutError, AgentWebError) as e:
            logger.info("Title generation skipped: %s", e, extra={"session_id": session_id})
            return None
        return title_update_event(session_id, title)
