"""Todo store and TodoRead/TodoWrite tool tests."""

import pytest

from agentweb.core.domain_types import TodoStatus
from agentweb.core.errors import ToolValidationError
from agentweb.services.handle_todo import TodoHandlers
from agentweb.services.todo_store import TodoStore


def test_ids_count_per_session_and_are_not_reused():
    store = TodoStore()
    first = store.create("s1", "one")
    store.create("s1", "two")
    assert store.delete("s1", first.id)
    third = store.create("s1", "three")
    assert third.id == "todo-3"
    assert store.create("s2", "other").id == "todo-1"


def test_update_refreshes_updated_at_only():
    store = TodoStore()
    item = store.create("s1", "write docs")
    updated = store.update("s1", item.id, status=TodoStatus.IN_PROGRESS)
    assert updated.status == TodoStatus.IN_PROGRESS
    assert updated.created_at == item.created_at
    assert updated.updated_at >= item.updated_at
    assert store.update("s1", "todo-99", subject="x") is None


def test_stats_and_filter():
    store = TodoStore()
    store.create("s1", "a")
    done = store.create("s1", "b")
    store.update("s1", done.id, status=TodoStatus.COMPLETED)
    stats = store.stats("s1")
    assert (stats.total, stats.pending, stats.completed) == (2, 1, 1)
    assert [i.subject for i in store.list_items("s1", TodoStatus.COMPLETED)] == ["b"]
    store.clear("s1")
    assert store.list_items("s1") == []


async def test_write_then_read_through_handlers():
    store = TodoStore()
    tools = TodoHandlers(store, "s1")

    created = await tools.todo_write(".", {
        "action": "create", "subject": "Add tests", "blocked_by": ["todo-0"],
    })
    assert created.content.startswith("Created task:\n[todo-1] Add tests")
    assert "blocked by: todo-0" in created.content

    await tools.todo_write(".", {"action": "update", "id": "todo-1", "status": "completed"})
    listing = await tools.todo_read(".", {})
    assert "Total: 1 | pending: 0 | in progress: 0 | completed: 1" in listing.content
    assert "status: completed" in listing.content

    empty = await tools.todo_read(".", {"status": "pending"})
    assert 'No tasks with status "pending"' in empty.content


async def test_sessions_do_not_see_each_other():
    store = TodoStore()
    await TodoHandlers(store, "s1").todo_write(".", {"action": "create", "subject": "mine"})
    listing = await TodoHandlers(store, "s2").todo_read(".", {})
    assert listing.content.endswith("No tasks")


async def test_write_errors():
    tools = TodoHandlers(TodoStore(), "s1")
    with pytest.raises(ToolValidationError):
        await tools.todo_write(".", {"action": "archive"})
    with pytest.raises(ToolValidationError):
        await tools.todo_write(".", {"action": "create"})
    with pytest.raises(ToolValidationError):
        await tools.todo_write(".", {"action": "update", "id": "todo-1", "status": "blocked"})
    missing = await tools.todo_write(".", {"action": "delete", "id": "todo-7"})
    assert missing.is_error
    nothing = await tools.todo_write(".", {"action": "update", "id": "todo-1"})
    assert nothing.is_error
