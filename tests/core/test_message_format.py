"""Message Format tests: stored messages to Messages API wire turns.

Tests cover:
    - Single-text turns collapse to a plain string
    - One stored assistant turn splits at tool_result runs
    - Orphan tool_uses get an interrupted is_error result
    - Thinking is never replayed from history; same-role neighbours merge
"""

from agentweb.core.domain_types import Role
from agentweb.core.message_format import (
    INTERRUPTED_RESULT, assistant_wire_content, to_wire_messages,
)
from agentweb.schemas.message import (
    ImageBlock, Message, TextBlock, ThinkingBlock, ToolResultBlock,
    ToolResultPayload, ToolUse, ToolUseBlock,
)


def _msg(role, *blocks):
    return Message(session_id="s", role=role, content=list(blocks))


def _tool_use(tool_id, name="Ls"):
    return ToolUseBlock(tool_use=ToolUse(id=tool_id, name=name, input={}))


def _tool_result(tool_id, content="ok"):
    return ToolResultBlock(tool_result=ToolResultPayload(tool_use_id=tool_id, content=content))


def test_single_text_collapses_to_string():
    wire = to_wire_messages([_msg(Role.USER, TextBlock(content="hi"))])
    assert wire == [{"role": "user", "content": "hi"}]


def test_assistant_turn_splits_at_tool_results():
    history = [
        _msg(Role.USER, TextBlock(content="list")),
        _msg(
            Role.ASSISTANT,
            _tool_use("t1"), _tool_result("t1", "a.txt"), TextBlock(content="One file."),
        ),
    ]
    wire = to_wire_messages(history)
    assert [m["role"] for m in wire] == ["user", "assistant", "user", "assistant"]
    assert wire[1]["content"][0]["id"] == "t1"
    assert wire[2]["content"][0] == {
        "type": "tool_result", "tool_use_id": "t1", "content": "a.txt", "is_error": False,
    }
    assert wire[3]["content"] == "One file."


def test_orphan_tool_use_gets_interrupted_result():
    history = [
        _msg(Role.USER, TextBlock(content="go")),
        _msg(Role.ASSISTANT, TextBlock(content="Running"), _tool_use("t9")),
        _msg(Role.USER, TextBlock(content="what happened?")),
    ]
    wire = to_wire_messages(history)
    assert [m["role"] for m in wire] == ["user", "assistant", "user"]
    first = wire[2]["content"][0]
    assert first["tool_use_id"] == "t9"
    assert first["is_error"] is True
    assert first["content"] == INTERRUPTED_RESULT
    assert wire[2]["content"][1] == {"type": "text", "text": "what happened?"}


def test_thinking_is_not_replayed_from_history():
    history = [
        _msg(Role.USER, TextBlock(content="q")),
        _msg(Role.ASSISTANT, ThinkingBlock(content="secret", signature="s"), TextBlock(content="a")),
    ]
    assert to_wire_messages(history)[1] == {"role": "assistant", "content": "a"}


def test_in_flight_round_keeps_signed_thinking():
    wire = assistant_wire_content([
        ThinkingBlock(content="plan", signature="sig"), _tool_use("t1"),
    ])
    assert wire[0] == {"type": "thinking", "thinking": "plan", "signature": "sig"}
    assert wire[1]["type"] == "tool_use"


def test_consecutive_user_messages_merge():
    wire = to_wire_messages([
        _msg(Role.USER, TextBlock(content="one")),
        _msg(Role.USER, TextBlock(content="two")),
    ])
    assert wire == [{"role": "user", "content": [
        {"type": "text", "text": "one"}, {"type": "text", "text": "two"},
    ]}]


def test_image_block_travels_as_base64_source():
    wire = to_wire_messages([_msg(
        Role.USER, TextBlock(content="see"), ImageBlock(media_type="image/png", data="AAA"),
    )])
    assert wire[0]["content"][1] == {
        "type": "image",
        "source": {"type": "base64", "media_type": "image/png", "data": "AAA"},
    }


def test_empty_turns_are_dropped():
    wire = to_wire_messages([
        _msg(Role.USER, TextBlock(content="q")),
        _msg(Role.ASSISTANT, ThinkingBlock(content="only thinking")),
    ])
    assert wire == [{"role": "user", "content": "q"}]
