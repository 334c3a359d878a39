"""SSE Encoder: frames stream events for a text/event-stream transport.

Invariants:
    - One frame per event: `event: <type>\\ndata: <json>\\n\\n`, the JSON being the whole
      {type, data, timestamp} event
    - Frames leave in production order, one at a time, no batching
    - Writing after close (or after the transport failed) is a silent no-op

Design Decisions:
    - Encoding is a separate stage pulling from the agent's async-generator channel:
      the transport's own backpressure paces the loop, no queue in between
      (ADR: pull-based pipeline)
    - SseEncoder wraps a send callable for push-style transports; encode_events() is the
      pull-style form StreamingResponse consumes
"""

import json
import logging
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable

logger = logging.getLogger(__name__)


def frame_event(event: dict) -> str:
    payload = json.dumps(event, ensure_ascii=False, default=str)
    return f"event: {event['type']}\ndata: {payload}\n\n"


async def encode_events(events: AsyncIterable[dict]) -> AsyncIterator[str]:
    async for event in events:
        yield frame_event(event)


class SseEncoder:
    """Push-style sink: write(event) frames and sends, until closed."""

    def __init__(self, send: Callable[[str], Awaitable[None]]):
        self._send = send
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def write(self, event: dict) -> None:
        if self._closed:
            return
        try:
            await self._send(frame_event(event))
        except (ConnectionError, OSError) as e:
            logger.info("SSE transport closed while writing: %s", e)
            self._closed = True

    def close(self) -> None:
        self._closed = True
