"""Stream Accumulator: decodes the upstream streaming event sequence into deltas and final blocks.

Invariants:
    - One open block per content-block index; state is one of idle / text / thinking / tool_input
    - Tool input JSON fragments are concatenated and parsed exactly once, at block stop
    - A tool input that fails to parse becomes {} plus a logged warning, never an exception
    - finalized blocks keep emission order (thinking, text, tool_use as the model produced them)
    - finish() closes what is still open: partial text/thinking survive, partial tool_use is dropped

Design Decisions:
    - Pure state machine fed one event at a time: testable without any transport
      (ADR: decoding separated from network plumbing)
    - Duck-typed events (getattr): accepts SDK RawMessageStreamEvent objects and test doubles
    - Dropping a half-streamed tool_use on abort keeps the tool_use/tool_result pairing valid
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from agentweb.core.errors import ModelAPIError
from agentweb.schemas.message import (
    TextBlock, ThinkingBlock, ToolUse, ToolUseBlock,
)

logger = logging.getLogger(__name__)


class BlockState(str, Enum):
    IDLE = "idle"
    TEXT = "accumulating_text"
    THINKING = "accumulating_thinking"
    TOOL_INPUT = "accumulating_tool_input"


_START_STATES = {
    "text": BlockState.TEXT,
    "thinking": BlockState.THINKING,
    "tool_use": BlockState.TOOL_INPUT,
}


@dataclass
class StreamDelta:
    """Something the loop forwards to the client right away."""
    kind: str  # "text" | "thinking" | "tool_use"
    text: str = ""
    tool_use: ToolUse | None = None


@dataclass
class _OpenBlock:
    state: BlockState
    parts: list[str] = field(default_factory=list)
    tool_id: str | None = None
    tool_name: str | None = None
    signature: str | None = None

    @property
    def buffer(self) -> str:
        return "".join(self.parts)


def _get(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def parse_tool_input(raw: str, tool_name: str | None = None) -> dict:
    """Parse accumulated tool input JSON. Empty or broken input yields {}."""
    if not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(
            "Failed to parse tool input JSON: %s", e,
            extra={"tool_name": tool_name},
        )
        return {}
    if not isinstance(parsed, dict):
        logger.warning(
            "Tool input is not a JSON object", extra={"tool_name": tool_name},
        )
        return {}
    return parsed


class StreamAccumulator:
    """Per-round decoder: feed() each raw event, read results when done."""

    def __init__(self) -> None:
        self.model: str | None = None
        self.input_tokens = 0
        self.output_tokens = 0
        self.stop_reason: str | None = None
        self.blocks: list[TextBlock | ThinkingBlock | ToolUseBlock] = []
        self._open: dict[int, _OpenBlock] = {}
        self._last_index: int | None = None

    @property
    def state(self) -> BlockState:
        """State of the most recently opened block still accumulating."""
        if self._last_index is None or self._last_index not in self._open:
            return BlockState.IDLE
        return self._open[self._last_index].state

    @property
    def tool_uses(self) -> list[ToolUse]:
        return [b.tool_use for b in self.blocks if isinstance(b, ToolUseBlock)]

    def feed(self, event: Any) -> list[StreamDelta]:
        """Consume one event; return deltas to forward immediately."""
        kind = _get(event, "type")
        if kind == "message_start":
            self._on_message_start(event)
        elif kind == "content_block_start":
            self._on_block_start(event)
        elif kind == "content_block_delta":
            return self._on_block_delta(event)
        elif kind == "content_block_stop":
            return self._on_block_stop(_get(event, "index", 0))
        elif kind == "message_delta":
            self._on_message_delta(event)
        elif kind == "error":
            error = _get(event, "error") or {}
            raise ModelAPIError(
                _get(error, "message", "stream error"),
                _get(error, "type", "stream_error"),
            )
        return []

    def finish(self) -> None:
        """Close blocks left open (aborted or truncated stream)."""
        for index in sorted(self._open):
            block = self._open[index]
            if block.state == BlockState.TOOL_INPUT:
                logger.info(
                    "Dropping incomplete tool_use block",
                    extra={"tool_name": block.tool_name},
                )
                continue
            self._finalize(block)
        self._open.clear()

    # -- event handlers --------------------------------------------------------

    def _on_message_start(self, event: Any) -> None:
        message = _get(event, "message")
        self.model = _get(message, "model", self.model)
        usage = _get(message, "usage")
        if usage is not None:
            self.input_tokens = _get(usage, "input_tokens", 0) or 0
            self.output_tokens = _get(usage, "output_tokens", 0) or 0

    def _on_block_start(self, event: Any) -> None:
        index = _get(event, "index", 0)
        block = _get(event, "content_block")
        block_type = _get(block, "type")
        state = _START_STATES.get(block_type)
        if state is None:
            # redacted_thinking, server tool blocks: nothing to accumulate
            return
        open_block = _OpenBlock(state=state)
        if state == BlockState.TEXT and _get(block, "text"):
            open_block.parts.append(_get(block, "text"))
        elif state == BlockState.THINKING and _get(block, "thinking"):
            open_block.parts.append(_get(block, "thinking"))
        elif state == BlockState.TOOL_INPUT:
            open_block.tool_id = _get(block, "id")
            open_block.tool_name = _get(block, "name")
        self._open[index] = open_block
        self._last_index = index

    def _on_block_delta(self, event: Any) -> list[StreamDelta]:
        block = self._open.get(_get(event, "index", 0))
        if block is None:
            return []
        delta = _get(event, "delta")
        delta_type = _get(delta, "type")
        if delta_type == "text_delta" and block.state == BlockState.TEXT:
            text = _get(delta, "text", "")
            block.parts.append(text)
            return [StreamDelta("text", text=text)] if text else []
        if delta_type == "thinking_delta" and block.state == BlockState.THINKING:
            text = _get(delta, "thinking", "")
            block.parts.append(text)
            return [StreamDelta("thinking", text=text)] if text else []
        if delta_type == "signature_delta" and block.state == BlockState.THINKING:
            block.signature = _get(delta, "signature")
            return []
        if delta_type == "input_json_delta" and block.state == BlockState.TOOL_INPUT:
            block.parts.append(_get(delta, "partial_json", ""))
            return []
        logger.debug("Ignoring %s for %s block", delta_type, block.state.value)
        return []

    def _on_block_stop(self, index: int) -> list[StreamDelta]:
        block = self._open.pop(index, None)
        if block is None:
            return []
        finalized = self._finalize(block)
        if isinstance(finalized, ToolUseBlock):
            return [StreamDelta("tool_use", tool_use=finalized.tool_use)]
        return []

    def _on_message_delta(self, event: Any) -> None:
        delta = _get(event, "delta")
        stop_reason = _get(delta, "stop_reason")
        if stop_reason:
            self.stop_reason = stop_reason
        usage = _get(event, "usage")
        if usage is not None:
            self.output_tokens = _get(usage, "output_tokens", self.output_tokens) or 0

    def _finalize(self, block: _OpenBlock):
        if block.state == BlockState.TOOL_INPUT:
            done = ToolUseBlock(tool_use=ToolUse(
                id=block.tool_id or "",
                name=block.tool_name or "",
                input=parse_tool_input(block.buffer, block.tool_name),
            ))
        elif block.state == BlockState.THINKING:
            done = ThinkingBlock(content=block.buffer, signature=block.signature)
        else:
            if not block.buffer:
                return None
            done = TextBlock(content=block.buffer)
        self.blocks.append(done)
        return done
