"""Session Registry: in-flight agent sessions and their cancellation handles.

Invariants:
    - At most one live AgentSession per session_id (register() refuses a second one)
    - abort() signals the handle and unregisters; unknown ids return False with no side effect
    - abort(session_id, session) and unregister(session_id, session) only touch that exact
      AgentSession, so one request never cancels or evicts a newer turn under the same id
    - Every map access holds one lock; handles may be cancelled from any thread

Design Decisions:
    - Explicitly owned object injected into ChatService, not a module-level dict
      (ADR: testable, one registry per app instance)
    - threading.Lock over asyncio.Lock: operations never await while holding it, and an
      abort may arrive from a worker thread
    - CancellationHandle wraps an asyncio.Event bound to the stream's loop; cancel() from a
      foreign thread is marshalled with call_soon_threadsafe
    - iterate_until_cancelled() races each network read against the handle, so an abort
      cancels the in-flight read itself rather than waiting for the next event
"""

import asyncio
import logging
import threading
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass, field
from typing import TypeVar

from agentweb.core.domain_types import PermissionMode
from agentweb.core.errors import SessionBusyError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationHandle:
    """One-shot cancellation signal shared by a stream and its abort request."""

    def __init__(self) -> None:
        self._flag = threading.Event()
        self._event: asyncio.Event | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        try:
            self._bind(asyncio.get_running_loop())
        except RuntimeError:
            pass

    def _bind(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self._event = asyncio.Event()
        if self._flag.is_set():
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._flag.is_set()

    def cancel(self) -> None:
        if self._flag.is_set():
            return
        self._flag.set()
        if self._loop is None or self._event is None or self._loop.is_closed():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._event.set()
        else:
            self._loop.call_soon_threadsafe(self._event.set)

    async def wait(self) -> None:
        if self._event is None:
            self._bind(asyncio.get_running_loop())
        await self._event.wait()


@dataclass
class AgentSession:
    session_id: str
    user_id: str
    working_dir: str
    project_id: str | None = None
    permission_mode: PermissionMode = PermissionMode.DEFAULT
    cancellation: CancellationHandle = field(default_factory=CancellationHandle)


class SessionRegistry:
    """Lock-guarded map of session_id -> AgentSession."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, AgentSession] = {}

    def register(self, session: AgentSession) -> None:
        with self._lock:
            if session.session_id in self._sessions:
                raise SessionBusyError(session.session_id)
            self._sessions[session.session_id] = session
        logger.info("Agent session registered", extra={"session_id": session.session_id})

    def get(self, session_id: str) -> AgentSession | None:
        with self._lock:
            return self._sessions.get(session_id)

    def unregister(self, session_id: str, session: AgentSession | None = None) -> None:
        with self._lock:
            current = self._sessions.get(session_id)
            if current is None or (session is not None and current is not session):
                return
            del self._sessions[session_id]

    def abort(self, session_id: str, session: AgentSession | None = None) -> bool:
        """Cancel and drop the live session; with `session`, only if it is that exact one."""
        with self._lock:
            current = self._sessions.get(session_id)
            if current is None or (session is not None and current is not session):
                return False
            del self._sessions[session_id]
        current.cancellation.cancel()
        logger.info("Agent session aborted", extra={"session_id": session_id})
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


async def iterate_until_cancelled(
    source: AsyncIterable[T], handle: CancellationHandle,
) -> AsyncIterator[T]:
    """Yield from source until it ends or the handle fires (pending read is cancelled)."""
    if handle.cancelled:
        return
    iterator = source.__aiter__()
    waiter = asyncio.ensure_future(handle.wait())
    try:
        while True:
            step = asyncio.ensure_future(iterator.__anext__())
            done, _ = await asyncio.wait(
                {step, waiter}, return_when=asyncio.FIRST_COMPLETED,
            )
            if step not in done:
                step.cancel()
                await asyncio.wait({step})
                if not step.cancelled():
                    step.exception()
                return
            try:
                item = step.result()
            except StopAsyncIteration:
                return
            yield item
    finally:
        waiter.cancel()
