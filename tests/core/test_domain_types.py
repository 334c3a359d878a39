"""Domain Types: enum values are the wire strings, ToolResult is immutable."""

import dataclasses
import json

import pytest

from agentweb.core.domain_types import (
    EventType, PermissionMode, StopReason, ToolMode, ToolResult,
)


def test_event_types_are_the_stream_names():
    assert {e.value for e in EventType} == {
        "init", "text_delta", "thinking_delta", "tool_use", "tool_result",
        "title_update", "error", "done",
    }


def test_stop_reasons_include_loop_outcomes():
    assert StopReason("end_turn") is StopReason.END_TURN
    assert StopReason.MAX_ITERATIONS.value == "max_iterations"
    assert StopReason.ABORTED.value == "aborted"


def test_permission_mode_values():
    assert PermissionMode("acceptEdits") is PermissionMode.ACCEPT_EDITS
    with pytest.raises(ValueError):
        PermissionMode("yolo")


def test_str_enums_serialize_as_json_strings():
    assert json.dumps({"mode": ToolMode.RESTRICTED}) == '{"mode": "restricted"}'


def test_tool_result_error_and_frozen():
    result = ToolResult.error("nope")
    assert result.is_error and result.content == "nope"
    assert ToolResult("ok").is_error is False
    with pytest.raises(dataclasses.FrozenInstanceError):
        result.content = "changed"
