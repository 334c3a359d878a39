"""Session Registry tests: one live session per id, abort, and cancellable reads.

Invariants:
    - register() refuses a second live session under the same id
    - abort() cancels the handle and frees the id; unknown ids return False
    - unregister() and abort() with a stale AgentSession leave a newer one in place
    - iterate_until_cancelled() stops a pending read as soon as the handle fires
"""

import asyncio
import threading

import pytest

from agentweb.core.errors import SessionBusyError
from agentweb.services.session_registry import (
    AgentSession, CancellationHandle, SessionRegistry, iterate_until_cancelled,
)


def _session(session_id="s1"):
    return AgentSession(session_id=session_id, user_id="u1", working_dir="/w")


async def test_register_refuses_busy_session():
    registry = SessionRegistry()
    first = _session()
    registry.register(first)
    with pytest.raises(SessionBusyError):
        registry.register(_session())
    assert registry.get("s1") is first
    assert len(registry) == 1


async def test_abort_cancels_and_frees_the_id():
    registry = SessionRegistry()
    session = _session()
    registry.register(session)

    assert registry.abort("s1") is True
    assert session.cancellation.cancelled
    assert registry.get("s1") is None
    assert registry.abort("s1") is False
    assert registry.abort("never-seen") is False


async def test_stale_unregister_keeps_newer_session():
    registry = SessionRegistry()
    old = _session()
    registry.register(old)
    registry.abort("s1")
    newer = _session()
    registry.register(newer)

    registry.unregister("s1", old)
    assert registry.get("s1") is newer
    registry.unregister("s1", newer)
    assert len(registry) == 0


async def test_abort_with_stale_session_leaves_newer_running():
    registry = SessionRegistry()
    old = _session()
    registry.register(old)
    registry.unregister("s1", old)
    newer = _session()
    registry.register(newer)

    assert registry.abort("s1", old) is False
    assert not newer.cancellation.cancelled
    assert registry.get("s1") is newer

    assert registry.abort("s1", newer) is True
    assert newer.cancellation.cancelled
    assert registry.get("s1") is None


async def test_cancel_from_another_thread_wakes_waiter():
    handle = CancellationHandle()
    waiter = asyncio.create_task(handle.wait())
    await asyncio.sleep(0)

    thread = threading.Thread(target=handle.cancel)
    thread.start()
    thread.join()

    await asyncio.wait_for(waiter, timeout=1)
    assert handle.cancelled


async def _numbers(stall_after=None, started=None):
    n = 0
    while True:
        if stall_after is not None and n == stall_after:
            if started is not None:
                started.set()
            await asyncio.Event().wait()
        yield n
        n += 1
        if stall_after is None and n == 3:
            return


async def test_iterate_passes_items_through():
    handle = CancellationHandle()
    assert [n async for n in iterate_until_cancelled(_numbers(), handle)] == [0, 1, 2]


async def test_iterate_stops_pending_read():
    handle = CancellationHandle()
    started = asyncio.Event()
    seen = []

    async def consume():
        async for n in iterate_until_cancelled(_numbers(stall_after=2, started=started), handle):
            seen.append(n)

    task = asyncio.create_task(consume())
    await asyncio.wait_for(started.wait(), timeout=1)
    handle.cancel()
    await asyncio.wait_for(task, timeout=1)
    assert seen == [0, 1]


async def test_iterate_on_cancelled_handle_reads_nothing():
    handle = CancellationHandle()
    handle.cancel()
    assert [n async for n in iterate_until_cancelled(_numbers(), handle)] == []
