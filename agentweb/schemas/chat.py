"""Chat Schemas: request bodies for the streaming chat and abort endpoints.

Invariants:
    - message: at least 1 char
    - attachments: at most 10, each at most 10 MB (size as reported by the client)
    - permission_mode: plan | acceptEdits | default

Design Decisions:
    - Literal for permission_mode: Pydantic validates natively, value maps 1:1 to PermissionMode
    - populate_by_name + camelCase aliases: the browser client sends camelCase keys
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

MAX_ATTACHMENTS = 10
MAX_ATTACHMENT_BYTES = 10 * 1024 * 1024


class Attachment(BaseModel):
    """Base64 attachment sent with a chat message."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    media_type: str = Field(alias="mediaType")
    data: str
    size: int = Field(ge=0, le=MAX_ATTACHMENT_BYTES)


class ChatRequest(BaseModel):
    """Body of POST /api/v1/chat/stream."""
    model_config = ConfigDict(populate_by_name=True)

    session_id: str | None = Field(None, alias="sessionId")
    project_id: str | None = Field(None, alias="projectId")
    message: str = Field(min_length=1)
    attachments: list[Attachment] | None = Field(
        None, max_length=MAX_ATTACHMENTS,
    )
    permission_mode: Literal["plan", "acceptEdits", "default"] = Field(
        "default", alias="permissionMode",
    )


class AbortResult(BaseModel):
    aborted: bool


class AbortResponse(BaseModel):
    success: bool = True
    data: AbortResult
