"""Chat Stream: SSE endpoint for one chat turn, plus abort.

Invariants:
    - POST /api/v1/chat/stream answers 200 text/event-stream; every failure after the
      body validated travels as an `error` event inside the stream
    - A client disconnect before the stream completed aborts this request's own turn
      only: a request refused as busy, or a later turn reusing the session id, is
      never cancelled by it
    - POST /api/v1/chat/abort/{session_id} reports whether a running turn was signalled

Design Decisions:
    - StreamingResponse pulls frames from encode_events(ChatService.events()): the
      client's read pace is the loop's pace (ADR: pull-based pipeline)
    - Routes stay thin: session handling, tools and persistence live in ChatService
"""

import asyncio
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from agentweb.api.dependencies import get_chat_service, get_user_id
from agentweb.schemas.chat import AbortResponse, AbortResult, ChatRequest
from agentweb.services.chat_service import ChatService, TurnHandle
from agentweb.services.sse_encoder import encode_events

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/chat", tags=["chat"])

# ADR: SSE headers prevent proxy/browser buffering of streamed events.
_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}


@router.post("/stream")
async def stream_chat(
    body: ChatRequest,
    user_id: str = Depends(get_user_id),
    service: ChatService = Depends(get_chat_service),
):
    """Run one chat turn and stream its events."""
    turn = TurnHandle()

    async def event_generator():
        completed = False
        try:
            async for frame in encode_events(service.events(user_id, body, turn=turn)):
                yield frame
            completed = True
        except asyncio.CancelledError:
            logger.info("Client disconnected from stream", extra={"user_id": user_id})
            raise
        finally:
            if not completed:
                service.abort_turn(turn)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=_SSE_HEADERS,
    )


@router.post("/abort/{session_id}", response_model=AbortResponse)
async def abort_chat(
    session_id: str,
    service: ChatService = Depends(get_chat_service),
):
    """Signal the running turn of a session to stop."""
    aborted = service.abort_session(session_id)
    logger.info("Abort requested", extra={"session_id": session_id, "aborted": aborted})
    return AbortResponse(data=AbortResult(aborted=aborted))
