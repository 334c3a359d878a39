"""Tool Dispatch tests: explicit routing and error conversion at one boundary.

Tests cover:
    - All 19 catalog tools are routed
    - Unknown, disabled and malformed calls become is_error results
    - Handler validation errors and path rejections become is_error results
    - Unexpected handler exceptions are wrapped, cancellation is not
    - Todo state is scoped by the dispatcher's session id
"""

import asyncio

import pytest

from agentweb.services.todo_store import TodoStore
from agentweb.services.tool_dispatch import ToolDispatch
from agentweb.services.tools_registry import TOOL_NAMES, ToolPolicy


def _dispatch(policy=None, session_id="s1", store=None):
    return ToolDispatch(policy or ToolPolicy(), session_id, store or TodoStore())


def test_every_catalog_tool_is_routed():
    assert _dispatch().tool_names == TOOL_NAMES


async def test_unknown_tool(working_dir):
    result = await _dispatch().execute("rm_everything", {}, working_dir)
    assert result.is_error
    assert result.content == "Unknown tool: 'rm_everything'"


async def test_disabled_tool_does_no_io(tmp_path):
    dispatch = _dispatch(ToolPolicy(file_system=False))
    result = await dispatch.execute(
        "Write", {"file_path": "x.txt", "content": "hi"}, str(tmp_path),
    )
    assert result.is_error
    assert "restricted mode" in result.content
    assert not (tmp_path / "x.txt").exists()


async def test_non_object_input(working_dir):
    result = await _dispatch().execute("Ls", ["not", "a", "dict"], working_dir)
    assert result.is_error
    assert result.content == "Tool input must be a JSON object"


async def test_validation_error_becomes_result(working_dir):
    result = await _dispatch().execute("Read", {}, working_dir)
    assert result.is_error
    assert "'file_path' is required" in result.content


async def test_path_escape_becomes_result(tmp_path):
    inner = tmp_path / "inner"
    inner.mkdir()
    (tmp_path / "secret.txt").write_text("s")
    result = await _dispatch().execute("Read", {"file_path": "../secret.txt"}, str(inner))
    assert result.is_error
    assert result.content == "Access denied: '../secret.txt' is outside the working directory"


async def test_handler_exception_is_wrapped(working_dir, monkeypatch):
    dispatch = _dispatch()

    async def broken(working_dir, input_data):
        raise RuntimeError("kaboom")

    monkeypatch.setitem(dispatch._handlers, "Ls", broken)
    result = await dispatch.execute("Ls", {}, working_dir)
    assert result.is_error
    assert result.content == "Tool 'Ls' failed: RuntimeError: kaboom"


async def test_cancellation_propagates(working_dir, monkeypatch):
    dispatch = _dispatch()

    async def cancelled(working_dir, input_data):
        raise asyncio.CancelledError()

    monkeypatch.setitem(dispatch._handlers, "Ls", cancelled)
    with pytest.raises(asyncio.CancelledError):
        await dispatch.execute("Ls", {}, working_dir)


async def test_todos_are_scoped_per_session(working_dir):
    store = TodoStore()
    await _dispatch(session_id="a", store=store).execute(
        "TodoWrite", {"action": "create", "subject": "only in a"}, working_dir,
    )
    seen_by_b = await _dispatch(session_id="b", store=store).execute("TodoRead", {}, working_dir)
    assert "only in a" not in seen_by_b.content
    assert [i.subject for i in store.list_items("a")] == ["only in a"]


def test_definitions_follow_policy():
    names = {t["name"] for t in _dispatch(ToolPolicy(bash=False)).tool_definitions()}
    assert "Bash" not in names
    assert "Write" in names


def test_describe_and_confirmation_for_prompts():
    dispatch = _dispatch()
    assert dispatch.describe("Write", {"file_path": "a.txt"}) == "Write file: a.txt"
    assert dispatch.describe("Grep", "not a dict") == "Search content: None"
    assert dispatch.requires_confirmation("Bash")
    assert not dispatch.requires_confirmation("Glob")
