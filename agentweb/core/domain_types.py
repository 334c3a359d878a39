"""Domain Types: rich types that replace bare primitives across the codebase.

Invariants:
    - All valid states encoded as Enums, no raw string matching in domain logic
    - ToolResult is the only value a tool implementation produces
    - StopReason values match the upstream API's stop_reason strings plus the two
      loop-level outcomes (max_iterations, aborted)

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders (ADR: SSE payloads are JSON)
"""

from dataclasses import dataclass
from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

SessionId = NewType("SessionId", str)
UserId = NewType("UserId", str)
ProjectId = NewType("ProjectId", str)
MessageId = NewType("MessageId", str)


# ─── Enums ───────────────────────────────────────────────────────

class StopReason(str, Enum):
    """Why a round or a whole turn ended."""
    END_TURN = "end_turn"
    TOOL_USE = "tool_use"
    MAX_TOKENS = "max_tokens"
    STOP_SEQUENCE = "stop_sequence"
    MAX_ITERATIONS = "max_iterations"
    ABORTED = "aborted"


class EventType(str, Enum):
    """Stream event types pushed to the client."""
    INIT = "init"
    TEXT_DELTA = "text_delta"
    THINKING_DELTA = "thinking_delta"
    TOOL_USE = "tool_use"
    TOOL_RESULT = "tool_result"
    TITLE_UPDATE = "title_update"
    ERROR = "error"
    DONE = "done"


class PermissionMode(str, Enum):
    """Client-selected permission mode, carried on the AgentSession."""
    PLAN = "plan"
    ACCEPT_EDITS = "acceptEdits"
    DEFAULT = "default"


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class TodoStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ToolMode(str, Enum):
    """Deployment-wide tool policy."""
    FULL = "full"
    RESTRICTED = "restricted"


# ─── Value Types ─────────────────────────────────────────────────

@dataclass(frozen=True)
class ToolResult:
    """Outcome of one tool invocation. Never raised, always returned."""
    content: str
    is_error: bool = False

    @classmethod
    def error(cls, content: str) -> "ToolResult":
        return cls(content=content, is_error=True)
