"""Message Schemas: stored chat messages and their tagged content blocks.

Invariants:
    - ContentBlock is a discriminated union on `type`
    - A tool_result block always references the id of an earlier tool_use block
    - Messages are immutable once persisted (storage appends, never edits)

Design Decisions:
    - Pydantic discriminated union over a dict soup: storage round-trips through
      model_dump()/model_validate() without custom decoders
    - image/document blocks keep base64 data inline (attachments are capped at 10 MB)
"""

import uuid
from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

from agentweb.core.domain_types import Role


class TextBlock(BaseModel):
    type: Literal["text"] = "text"
    content: str


class ThinkingBlock(BaseModel):
    type: Literal["thinking"] = "thinking"
    content: str
    signature: str | None = None


class ImageBlock(BaseModel):
    type: Literal["image"] = "image"
    media_type: str
    data: str
    name: str | None = None


class DocumentBlock(BaseModel):
    type: Literal["document"] = "document"
    media_type: str
    data: str
    name: str | None = None


class ToolUse(BaseModel):
    id: str
    name: str
    input: dict[str, Any] = Field(default_factory=dict)


class ToolUseBlock(BaseModel):
    type: Literal["tool_use"] = "tool_use"
    tool_use: ToolUse


class ToolResultPayload(BaseModel):
    tool_use_id: str
    content: str
    is_error: bool = False


class ToolResultBlock(BaseModel):
    type: Literal["tool_result"] = "tool_result"
    tool_result: ToolResultPayload


ContentBlock = Annotated[
    Union[
        TextBlock, ThinkingBlock, ImageBlock, DocumentBlock,
        ToolUseBlock, ToolResultBlock,
    ],
    Field(discriminator="type"),
]


def _new_id() -> str:
    return str(uuid.uuid4())


class Message(BaseModel):
    """One stored chat message (user or assistant)."""
    id: str = Field(default_factory=_new_id)
    session_id: str
    role: Role
    content: list[ContentBlock]
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    model: str | None = None
    stop_reason: str | None = None
    input_tokens: int | None = None
    output_tokens: int | None = None
