"""Route Tests: chat stream, abort and health endpoints over HTTP.

Invariants:
    - POST /api/v1/chat/stream answers text/event-stream with one frame per event
    - Body validation failures are 400 VALIDATION_ERROR before any stream starts
    - POST /api/v1/chat/abort/{id} reports aborted=false for idle sessions
    - A stream refused as busy never cancels the turn that is running
    - Messages are persisted per user (X-User-Id) in the SQL store

Design Decisions:
    - Real SqlSessionStorage on in-memory SQLite; only the model client is mocked
    - Frames parsed from the buffered body (ASGITransport delivers the whole stream)
"""

import asyncio
import json

from agentweb.api.dependencies import get_chat_service
from agentweb.main import app
from agentweb.services.sse_encoder import frame_event

from tests.services.mock_anthropic import (
    MockAnthropicClient, stalled_text_response, text_response, tool_response,
)


def _frames(body: str) -> list[dict]:
    events = []
    for chunk in body.split("\n\n"):
        if not chunk.strip():
            continue
        lines = dict(line.split(": ", 1) for line in chunk.splitlines())
        event = json.loads(lines["data"])
        assert lines["event"] == event["type"]
        events.append(event)
    return events


def _install(service):
    app.dependency_overrides[get_chat_service] = lambda: service


# ==============================================================================
# Stream
# ==============================================================================


async def test_stream_returns_sse_frames(client, sql_chat_service, sql_storage):
    service = sql_chat_service(MockAnthropicClient([text_response("Hello from the agent.")]))
    _install(service)

    response = await client.post(
        "/api/v1/chat/stream", json={"message": "hi there"}, headers={"X-User-Id": "alice"},
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"
    events = _frames(response.text)
    assert [e["type"] for e in events] == ["init", "text_delta", "done", "title_update"]
    assert all(isinstance(e["timestamp"], int) for e in events)

    session_id = events[0]["data"]["sessionId"]
    stored = await sql_storage.get_messages("alice", session_id)
    assert [m.role for m in stored] == ["user", "assistant"]
    assert stored[1].content[0].content == "Hello from the agent."
    assert await sql_storage.get_session("bob", session_id) is None


async def test_stream_runs_tools_in_working_dir(client, sql_chat_service, tmp_path):
    (tmp_path / "README.md").write_text("# demo\n")
    service = sql_chat_service(MockAnthropicClient([
        tool_response("Read", {"file_path": "README.md"}, tool_id="toolu_r"),
        text_response("It is a demo."),
    ]))
    _install(service)

    response = await client.post(
        "/api/v1/chat/stream", json={"message": "what is in the readme"},
    )

    events = _frames(response.text)
    result = next(e for e in events if e["type"] == "tool_result")
    assert result["data"]["toolUseId"] == "toolu_r"
    assert "# demo" in result["data"]["content"]
    done = next(e for e in events if e["type"] == "done")
    assert done["data"]["stopReason"] == "end_turn"


async def test_follow_up_uses_stored_history(client, sql_chat_service):
    model = MockAnthropicClient([text_response("First."), text_response("Second.")])
    _install(sql_chat_service(model))

    first = _frames((await client.post("/api/v1/chat/stream", json={"message": "one"})).text)
    session_id = first[0]["data"]["sessionId"]
    second = _frames((await client.post(
        "/api/v1/chat/stream", json={"sessionId": session_id, "message": "two"},
    )).text)

    assert second[0]["data"]["sessionId"] == session_id
    sent = model.calls[1]["messages"]
    assert [m["role"] for m in sent] == ["user", "assistant", "user"]


async def test_unknown_session_streams_error_event(client, sql_chat_service):
    _install(sql_chat_service(MockAnthropicClient([])))

    response = await client.post(
        "/api/v1/chat/stream", json={"sessionId": "nope", "message": "hi"},
    )

    assert response.status_code == 200
    events = _frames(response.text)
    assert [e["type"] for e in events] == ["error"]
    assert events[0]["data"]["code"] == "RESOURCE_NOT_FOUND"


async def test_empty_message_is_rejected(client, sql_chat_service):
    _install(sql_chat_service(MockAnthropicClient([])))

    response = await client.post("/api/v1/chat/stream", json={"message": ""})

    assert response.status_code == 400
    body = response.json()["error"]
    assert body["code"] == "VALIDATION_ERROR"
    assert any(d["field"].endswith("message") for d in body["details"])


async def test_bad_permission_mode_is_rejected(client, sql_chat_service):
    _install(sql_chat_service(MockAnthropicClient([])))

    response = await client.post(
        "/api/v1/chat/stream", json={"message": "hi", "permissionMode": "yolo"},
    )

    assert response.status_code == 400


async def test_refused_second_stream_leaves_running_turn_alone(
    client, sql_chat_service, sql_storage,
):
    stalled = stalled_text_response("working on it")
    service = sql_chat_service(MockAnthropicClient([stalled]))
    _install(service)
    record = await sql_storage.create_session("local", "Ongoing")
    body = {"sessionId": record.id, "message": "long job"}

    first = asyncio.create_task(client.post("/api/v1/chat/stream", json=body))
    await asyncio.wait_for(stalled.reached_block.wait(), timeout=2)
    running = service.registry.get(record.id)

    second = await client.post(
        "/api/v1/chat/stream", json={"sessionId": record.id, "message": "again"},
    )

    refused = _frames(second.text)
    assert [e["type"] for e in refused] == ["error"]
    assert refused[0]["data"]["code"] == "SESSION_BUSY"
    assert not running.cancellation.cancelled
    assert service.registry.get(record.id) is running

    aborted = await client.post(f"/api/v1/chat/abort/{record.id}")
    assert aborted.json()["data"]["aborted"] is True
    events = _frames((await asyncio.wait_for(first, timeout=2)).text)
    assert [e["type"] for e in events] == ["init", "text_delta", "done"]
    assert events[-1]["data"]["stopReason"] == "aborted"


# ==============================================================================
# Abort and health
# ==============================================================================


async def test_abort_idle_session_reports_false(client, sql_chat_service):
    _install(sql_chat_service(MockAnthropicClient([])))

    response = await client.post("/api/v1/chat/abort/some-session")

    assert response.status_code == 200
    assert response.json() == {"success": True, "data": {"aborted": False}}


async def test_health_liveness(client):
    response = await client.get("/api/v1/health/")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_health_readiness_checks_database(client):
    response = await client.get("/api/v1/health/ready")
    assert response.status_code == 200
    assert response.json()["checks"]["database"] == "healthy"


def test_frame_event_format():
    frame = frame_event({"type": "text_delta", "data": {"content": "é"}, "timestamp": 1})
    assert frame == 'event: text_delta\ndata: {"type": "text_delta", "data": {"content": "é"}, "timestamp": 1}\n\n'
