"""SQL collaborator tests: SqlSessionStorage and SqlProjectService on in-memory SQLite.

Invariants:
    - Sessions and messages are only visible to their owner
    - Messages come back in append order with every block type intact
    - Project instructions fall back to CLAUDE.md in the project directory
"""

import pytest

from agentweb.core.domain_types import Role
from agentweb.core.errors import ResourceNotFoundError
from agentweb.infrastructure.session_storage import SqlProjectService
from agentweb.models.project import Project
from agentweb.schemas.message import (
    ImageBlock, Message, TextBlock, ThinkingBlock, ToolResultBlock, ToolResultPayload,
    ToolUse, ToolUseBlock,
)


async def test_create_get_and_retitle(sql_storage):
    record = await sql_storage.create_session("alice", "First title")
    assert record.title == "First title"
    assert record.project_id is None

    await sql_storage.update_session_title("alice", record.id, "Better title")
    again = await sql_storage.get_session("alice", record.id)
    assert again.title == "Better title"


async def test_sessions_are_scoped_to_their_user(sql_storage):
    record = await sql_storage.create_session("alice", "Mine")
    assert await sql_storage.get_session("bob", record.id) is None
    with pytest.raises(ResourceNotFoundError):
        await sql_storage.update_session_title("bob", record.id, "Stolen")
    with pytest.raises(ResourceNotFoundError):
        await sql_storage.get_messages("bob", record.id)
    with pytest.raises(ResourceNotFoundError):
        await sql_storage.append_message(
            "bob", record.id,
            Message(session_id=record.id, role=Role.USER, content=[TextBlock(content="x")]),
        )


async def test_messages_round_trip_in_order(sql_storage):
    record = await sql_storage.create_session("alice", "Chat")
    user = Message(session_id=record.id, role=Role.USER, content=[
        TextBlock(content="look at this"),
        ImageBlock(media_type="image/png", data="aGk=", name="a.png"),
    ])
    assistant = Message(
        session_id=record.id, role=Role.ASSISTANT,
        model="claude-test", stop_reason="end_turn", input_tokens=12, output_tokens=3,
        content=[
            ThinkingBlock(content="hm", signature="sig"),
            ToolUseBlock(tool_use=ToolUse(id="t1", name="Ls", input={"path": "."})),
            ToolResultBlock(tool_result=ToolResultPayload(tool_use_id="t1", content="a.txt")),
            TextBlock(content="One file."),
        ],
    )
    await sql_storage.append_message("alice", record.id, user)
    await sql_storage.append_message("alice", record.id, assistant)

    stored = await sql_storage.get_messages("alice", record.id)

    assert [m.id for m in stored] == [user.id, assistant.id]
    assert stored[0].content == user.content
    assert stored[1].content == assistant.content
    assert (stored[1].model, stored[1].stop_reason) == ("claude-test", "end_turn")
    assert (stored[1].input_tokens, stored[1].output_tokens) == (12, 3)
    assert stored[0].model is None


async def test_unknown_session_messages(sql_storage):
    with pytest.raises(ResourceNotFoundError):
        await sql_storage.get_messages("alice", "missing")


# -- Projects -------------------------------------------------------------------


async def _add_project(factory, **fields):
    async with factory() as db:
        project = Project(**fields)
        db.add(project)
        await db.commit()
        return project.id


async def test_project_context_with_stored_instructions(test_session_factory, tmp_path):
    project_id = await _add_project(
        test_session_factory, user_id="alice", name="demo",
        path=str(tmp_path), instructions="Use tabs.",
    )
    (tmp_path / "CLAUDE.md").write_text("ignored")

    context = await SqlProjectService(test_session_factory).get_project_context("alice", project_id)

    assert context.path == str(tmp_path)
    assert context.instructions == "Use tabs."


async def test_project_instructions_fall_back_to_file(test_session_factory, tmp_path):
    (tmp_path / "CLAUDE.md").write_text("\nRun make test before committing.\n")
    project_id = await _add_project(
        test_session_factory, user_id="alice", name="demo", path=str(tmp_path),
    )

    context = await SqlProjectService(test_session_factory).get_project_context("alice", project_id)

    assert context.instructions == "Run make test before committing."


async def test_project_without_instructions(test_session_factory, tmp_path):
    project_id = await _add_project(
        test_session_factory, user_id="alice", name="demo", path=str(tmp_path),
    )
    context = await SqlProjectService(test_session_factory).get_project_context("alice", project_id)
    assert context.instructions is None


async def test_other_users_project_is_not_found(test_session_factory):
    project_id = await _add_project(test_session_factory, user_id="alice", name="demo")
    with pytest.raises(ResourceNotFoundError):
        await SqlProjectService(test_session_factory).get_project_context("bob", project_id)
