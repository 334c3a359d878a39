"""Mock Anthropic Client: simulates the raw streaming API for agent loop tests.

Invariants:
    - Events are plain dicts shaped like the SDK's raw stream events
      (message_start, content_block_*, message_delta, message_stop)
    - MockAnthropicClient sequences responses, one per stream_events() call
    - Every stream is closed when its context exits (closed flag checked by abort tests)

Design Decisions:
    - Flat mock classes (no inheritance): simple, explicit, easy to debug
    - Builders return event lists; the client wraps them in _RawStream
    - BlockingStream emits its events then waits forever: the only way out is
      cancellation, as with a stalled upstream connection
"""

import asyncio
import json
from contextlib import asynccontextmanager


# -- Mock Anthropic SDK objects ------------------------------------------------


class _Block:
    def __init__(self, **kwargs):
        for k, v in kwargs.items():
            setattr(self, k, v)


class _Message:
    """Non-streaming response (title generation)."""

    def __init__(self, text, input_tokens=20, output_tokens=5):
        self.content = [_Block(type="text", text=text)]
        self.usage = _Block(input_tokens=input_tokens, output_tokens=output_tokens)


class _RawStream:
    """Async iterable over pre-built raw events, with close()."""

    def __init__(self, events):
        self._events = list(events)
        self._idx = 0
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.closed or self._idx >= len(self._events):
            raise StopAsyncIteration
        ev = self._events[self._idx]
        self._idx += 1
        await asyncio.sleep(0)
        return ev

    async def close(self):
        self.closed = True


class BlockingStream(_RawStream):
    """Emits its events, then blocks until cancelled; `reached_block` fires on blocking."""

    def __init__(self, events):
        super().__init__(events)
        self.reached_block = asyncio.Event()

    async def __anext__(self):
        if self._idx < len(self._events):
            return await super().__anext__()
        self.reached_block.set()
        await asyncio.Event().wait()


class MockAnthropicClient:
    """Replaces ResilientAnthropicClient. Sequences pre-configured responses."""

    def __init__(self, responses, title="Mock Title"):
        self._responses = list(responses)
        self._idx = 0
        self.title = title
        self.calls = []
        self.title_calls = []
        self.streams = []

    @asynccontextmanager
    async def stream_events(self, **kwargs):
        self.calls.append(kwargs)
        if self._idx >= len(self._responses):
            raise RuntimeError(
                f"MockAnthropicClient: no response at index {self._idx} "
                f"(configured {len(self._responses)})",
            )
        response = self._responses[self._idx]
        self._idx += 1
        if isinstance(response, Exception):
            raise response
        stream = response if isinstance(response, _RawStream) else _RawStream(response)
        self.streams.append(stream)
        try:
            yield stream
        finally:
            await stream.close()

    async def create_message(self, **kwargs):
        self.title_calls.append(kwargs)
        if isinstance(self.title, Exception):
            raise self.title
        return _Message(self.title)


# -- Builder helpers -----------------------------------------------------------


def _message_start(model, input_tokens):
    return {
        "type": "message_start",
        "message": {
            "model": model,
            "usage": {"input_tokens": input_tokens, "output_tokens": 1},
        },
    }


def _message_end(stop_reason, output_tokens):
    return [
        {
            "type": "message_delta",
            "delta": {"stop_reason": stop_reason},
            "usage": {"output_tokens": output_tokens},
        },
        {"type": "message_stop"},
    ]


def text_block_events(index, text, chunks=1):
    size = max(1, -(-len(text) // chunks))
    parts = [text[i:i + size] for i in range(0, len(text), size)] or [""]
    events = [{
        "type": "content_block_start", "index": index,
        "content_block": {"type": "text", "text": ""},
    }]
    events += [
        {"type": "content_block_delta", "index": index,
         "delta": {"type": "text_delta", "text": part}}
        for part in parts
    ]
    events.append({"type": "content_block_stop", "index": index})
    return events


def tool_block_events(index, name, tool_input, tool_id=None, json_text=None):
    raw = json_text if json_text is not None else json.dumps(tool_input)
    half = len(raw) // 2
    return [
        {
            "type": "content_block_start", "index": index,
            "content_block": {
                "type": "tool_use", "id": tool_id or f"toolu_{name}_{index}",
                "name": name, "input": {},
            },
        },
        {"type": "content_block_delta", "index": index,
         "delta": {"type": "input_json_delta", "partial_json": raw[:half]}},
        {"type": "content_block_delta", "index": index,
         "delta": {"type": "input_json_delta", "partial_json": raw[half:]}},
        {"type": "content_block_stop", "index": index},
    ]


def text_response(text, stop_reason="end_turn", tokens=(100, 50), model="claude-test", chunks=1):
    """Text-only round."""
    return (
        [_message_start(model, tokens[0])]
        + text_block_events(0, text, chunks)
        + _message_end(stop_reason, tokens[1])
    )


def tool_response(name, tool_input, tool_id=None, text=None, tokens=(150, 80), model="claude-test"):
    """Round ending in one tool_use (optionally preceded by text)."""
    events = [_message_start(model, tokens[0])]
    index = 0
    if text:
        events += text_block_events(0, text)
        index = 1
    events += tool_block_events(index, name, tool_input, tool_id)
    return events + _message_end("tool_use", tokens[1])


def multi_tool_response(tools, tokens=(200, 120), model="claude-test"):
    """Round with several tool_use blocks; tools = [(id, name, input), ...]."""
    events = [_message_start(model, tokens[0])]
    for index, (tool_id, name, tool_input) in enumerate(tools):
        events += tool_block_events(index, name, tool_input, tool_id)
    return events + _message_end("tool_use", tokens[1])


def thinking_response(thinking, text, tokens=(120, 90), model="claude-test"):
    """Round with a thinking block followed by text."""
    events = [
        _message_start(model, tokens[0]),
        {"type": "content_block_start", "index": 0,
         "content_block": {"type": "thinking", "thinking": ""}},
        {"type": "content_block_delta", "index": 0,
         "delta": {"type": "thinking_delta", "thinking": thinking}},
        {"type": "content_block_delta", "index": 0,
         "delta": {"type": "signature_delta", "signature": "sig-1"}},
        {"type": "content_block_stop", "index": 0},
    ]
    events += text_block_events(1, text)
    return events + _message_end("end_turn", tokens[1])


def stalled_text_response(text, model="claude-test"):
    """Text deltas then a stalled connection (no block stop, no message end)."""
    events = [
        _message_start(model, 100),
        {"type": "content_block_start", "index": 0,
         "content_block": {"type": "text", "text": ""}},
        {"type": "content_block_delta", "index": 0,
         "delta": {"type": "text_delta", "text": text}},
    ]
    return BlockingStream(events)
