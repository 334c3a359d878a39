"""SSE Encoder tests: framing, ordering and a transport that goes away."""

import json

from agentweb.services.sse_encoder import SseEncoder, encode_events


async def _events():
    yield {"type": "init", "data": {"sessionId": "s1"}, "timestamp": 1}
    yield {"type": "done", "data": {"stopReason": "end_turn"}, "timestamp": 2}


async def test_encode_events_keeps_order():
    frames = [f async for f in encode_events(_events())]
    assert [f.split("\n", 1)[0] for f in frames] == ["event: init", "event: done"]
    assert json.loads(frames[1].split("data: ", 1)[1]) == {
        "type": "done", "data": {"stopReason": "end_turn"}, "timestamp": 2,
    }


async def test_encoder_sends_until_closed():
    sent = []

    async def send(frame):
        sent.append(frame)

    encoder = SseEncoder(send)
    await encoder.write({"type": "init", "data": {}, "timestamp": 1})
    encoder.close()
    await encoder.write({"type": "done", "data": {}, "timestamp": 2})

    assert encoder.closed
    assert len(sent) == 1


async def test_broken_transport_closes_encoder():
    calls = []

    async def send(frame):
        calls.append(frame)
        raise ConnectionResetError("client went away")

    encoder = SseEncoder(send)
    await encoder.write({"type": "text_delta", "data": {"content": "a"}, "timestamp": 1})
    await encoder.write({"type": "text_delta", "data": {"content": "b"}, "timestamp": 2})

    assert encoder.closed
    assert len(calls) == 1
