"""Message Format: stored Message blocks to upstream Messages API wire format.

Invariants:
    - Output strictly alternates user/assistant turns (same-role neighbours are merged)
    - tool_result blocks always travel in a user turn right after the assistant turn
      holding their tool_use; a tool_use left without a result gets an is_error result
    - Thinking blocks from stored history are never replayed
    - A turn consisting of exactly one text block is sent as a plain string
    - Empty turns are dropped

Design Decisions:
    - One stored assistant message spans several model rounds
      (text, tool_use, tool_result, text, ...); splitting happens here, at read time,
      so storage keeps one message per turn
    - Pure functions over dicts: no SDK types, trivially testable
"""

from collections.abc import Iterable, Sequence

from agentweb.core.domain_types import Role
from agentweb.schemas.message import (
    ContentBlock, DocumentBlock, ImageBlock, Message, TextBlock,
    ThinkingBlock, ToolResultBlock, ToolUseBlock,
)

INTERRUPTED_RESULT = "Tool execution was interrupted before it produced a result."


def block_to_wire(block: ContentBlock, include_thinking: bool = False) -> dict | None:
    if isinstance(block, TextBlock):
        return {"type": "text", "text": block.content} if block.content else None
    if isinstance(block, ThinkingBlock):
        # the API only accepts replayed thinking with its signature
        if include_thinking and block.signature:
            return {
                "type": "thinking",
                "thinking": block.content,
                "signature": block.signature,
            }
        return None
    if isinstance(block, (ImageBlock, DocumentBlock)):
        return {
            "type": block.type,
            "source": {
                "type": "base64",
                "media_type": block.media_type,
                "data": block.data,
            },
        }
    if isinstance(block, ToolUseBlock):
        return {
            "type": "tool_use",
            "id": block.tool_use.id,
            "name": block.tool_use.name,
            "input": block.tool_use.input,
        }
    if isinstance(block, ToolResultBlock):
        return {
            "type": "tool_result",
            "tool_use_id": block.tool_result.tool_use_id,
            "content": block.tool_result.content,
            "is_error": block.tool_result.is_error,
        }
    return None


def assistant_wire_content(blocks: Iterable[ContentBlock]) -> list[dict]:
    """Content of one in-flight assistant round (thinking kept for tool continuation)."""
    return [w for b in blocks if (w := block_to_wire(b, include_thinking=True))]


def to_wire_messages(messages: Sequence[Message]) -> list[dict]:
    turns: list[tuple[str, list[dict]]] = []
    for message in messages:
        role = Role(message.role).value
        for turn_role, parts in _split_turns(role, message.content):
            if parts:
                turns.append((turn_role, parts))

    merged = _merge_same_role(turns)
    _pair_orphan_tool_uses(merged)
    return [
        {"role": role, "content": _collapse(parts)} for role, parts in merged
    ]


def _split_turns(role: str, blocks: Sequence[ContentBlock]):
    """Cut an assistant message at every tool_result run."""
    current_role = role
    current: list[dict] = []
    for block in blocks:
        wire = block_to_wire(block)
        if wire is None:
            continue
        block_role = "user" if wire["type"] == "tool_result" else role
        if block_role != current_role:
            yield current_role, current
            current_role, current = block_role, []
        current.append(wire)
    yield current_role, current


def _merge_same_role(turns: list[tuple[str, list[dict]]]) -> list[tuple[str, list[dict]]]:
    merged: list[tuple[str, list[dict]]] = []
    for role, parts in turns:
        if merged and merged[-1][0] == role:
            merged[-1][1].extend(parts)
        else:
            merged.append((role, list(parts)))
    return merged


def _pair_orphan_tool_uses(turns: list[tuple[str, list[dict]]]) -> None:
    k = 0
    while k < len(turns):
        role, parts = turns[k]
        ids = [p["id"] for p in parts if p["type"] == "tool_use"]
        if role != "assistant" or not ids:
            k += 1
            continue
        if k + 1 >= len(turns) or turns[k + 1][0] != "user":
            turns.insert(k + 1, ("user", []))
        user_parts = turns[k + 1][1]
        answered = {p.get("tool_use_id") for p in user_parts if p["type"] == "tool_result"}
        missing = [
            {
                "type": "tool_result",
                "tool_use_id": tool_id,
                "content": INTERRUPTED_RESULT,
                "is_error": True,
            }
            for tool_id in ids if tool_id not in answered
        ]
        # tool_results must lead the user turn, in tool_use order
        results = [p for p in user_parts if p["type"] == "tool_result"] + missing
        order = {tool_id: n for n, tool_id in enumerate(ids)}
        results.sort(key=lambda p: order.get(p["tool_use_id"], len(ids)))
        others = [p for p in user_parts if p["type"] != "tool_result"]
        turns[k + 1] = ("user", results + others)
        k += 2


def _collapse(parts: list[dict]) -> str | list[dict]:
    if len(parts) == 1 and parts[0]["type"] == "text":
        return parts[0]["text"]
    return parts
