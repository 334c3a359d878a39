"""Agent Runner: bounded model-call / tool-execute loop for one user turn.

Invariants:
    - At most max_iterations model rounds per turn (default 20)
    - Within a round every tool_use gets exactly one tool_result, same id, same order,
      before the next model call; unexecuted tool_uses of an aborted round get an
      is_error "aborted" result in the stored message
    - Tools run strictly one after another; cancellation is checked at the top of each
      round, on every stream event and before each tool
    - Nothing is forwarded after cancellation: the last event of an aborted turn is
      done(stopReason=aborted)
    - A transport failure ends the turn with an error event and no done event
    - One assistant message per turn, persisted once with model, stop reason and
      summed token counts

Design Decisions:
    - Raw event stream + StreamAccumulator instead of the SDK MessageStream helper:
      decoding is a tested state machine, and an abort closes the HTTP stream itself
      (ADR: cancellation reaches the in-flight read)
    - The runner is an async generator (the event channel); framing is the SSE
      encoder's job (ADR: pull-based pipeline, no internal queue)
    - Thinking is decided once per turn from the last user text: all rounds of a turn
      use the same max_tokens/thinking settings
    - Pure helpers extracted to agent_runner_helpers.py (ADR: ExMA 400-line limit)
"""

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

from agentweb.core.domain_types import Role, StopReason, ToolResult
from agentweb.core.errors import AgentLoopExceededError, ErrorContext, ModelAPIError
from agentweb.core.message_format import (
    assistant_wire_content, block_to_wire, to_wire_messages,
)
from agentweb.core.repository_protocols import SessionStorage
from agentweb.core.stream_accumulator import StreamAccumulator
from agentweb.core.thinking_mode import last_user_text, should_use_thinking
from agentweb.infrastructure.anthropic_client import ResilientAnthropicClient
from agentweb.schemas.message import (
    ContentBlock, Message, ToolResultBlock, ToolResultPayload, ToolUse,
)
from agentweb.services.agent_runner_helpers import (
    delta_event, done_event, tool_result_event,
    with_message_cache, with_system_cache, with_tools_cache,
)
from agentweb.services.session_registry import AgentSession, iterate_until_cancelled
from agentweb.services.tool_dispatch import ToolDispatch

logger = logging.getLogger(__name__)

ABORTED_RESULT = "Tool execution aborted by the user."

MAX_TOKENS = 8192
MAX_TOKENS_WITH_THINKING = 16000


@dataclass
class TurnState:
    """Everything one turn accumulates across rounds."""
    blocks: list[ContentBlock] = field(default_factory=list)
    stop_reason: str = StopReason.END_TURN.value
    model: str | None = None
    input_tokens: int = 0
    output_tokens: int = 0
    rounds: int = 0

    def add_round(self, acc: StreamAccumulator) -> None:
        self.rounds += 1
        self.blocks.extend(acc.blocks)
        self.model = acc.model or self.model
        self.input_tokens += acc.input_tokens
        self.output_tokens += acc.output_tokens


def _result_block(tool_use_id: str, result: ToolResult) -> ToolResultBlock:
    return ToolResultBlock(tool_result=ToolResultPayload(
        tool_use_id=tool_use_id, content=result.content, is_error=result.is_error,
    ))


class AgentRunner:
    """Drives one user turn and yields stream events."""

    def __init__(
        self,
        client: ResilientAnthropicClient,
        dispatch: ToolDispatch,
        storage: SessionStorage,
        model: str,
        max_iterations: int = 20,
        thinking_budget_tokens: int = 5000,
    ):
        self.client = client
        self.dispatch = dispatch
        self.storage = storage
        self.model = model
        self.max_iterations = max_iterations
        self.thinking_budget_tokens = thinking_budget_tokens
        self.turn = TurnState()

    async def run(
        self,
        session: AgentSession,
        history: list[Message],
        system: str,
        message_id: str,
    ) -> AsyncIterator[dict]:
        """Async generator of stream events; persists the assistant message at the end."""
        ctx = ErrorContext(session_id=session.session_id)
        messages = to_wire_messages(history)
        use_thinking = should_use_thinking(last_user_text(history))
        self.turn = TurnState()

        try:
            async for event in self._iteration_loop(
                session, system, messages, use_thinking, ctx,
            ):
                yield event
        except ModelAPIError as e:
            logger.error(
                "Model API error: %s", e.message,
                extra={"session_id": session.session_id, "error_code": e.code},
            )
            yield e.to_sse_event()
            await self._persist(session, message_id, "error")
            return

        await self._persist(session, message_id, self.turn.stop_reason)
        logger.info(
            "Turn finished",
            extra={
                "session_id": session.session_id,
                "iteration": self.turn.rounds,
                "input_tokens": self.turn.input_tokens,
                "output_tokens": self.turn.output_tokens,
            },
        )
        yield done_event(
            message_id, self.turn.stop_reason,
            self.turn.input_tokens, self.turn.output_tokens,
        )

    async def _iteration_loop(
        self, session: AgentSession, system: str, messages: list[dict],
        use_thinking: bool, ctx: ErrorContext,
    ) -> AsyncIterator[dict]:
        handle = session.cancellation
        for iteration in range(1, self.max_iterations + 1):
            if handle.cancelled:
                self.turn.stop_reason = StopReason.ABORTED.value
                return
            ctx.iteration = iteration

            acc = StreamAccumulator()
            try:
                async for event in self._stream_round(
                    session, system, messages, use_thinking, acc, ctx,
                ):
                    yield event
            finally:
                # partial blocks of a failed or aborted round are kept
                acc.finish()
                self.turn.add_round(acc)
            tool_uses = acc.tool_uses

            if handle.cancelled:
                self._close_aborted(tool_uses)
                return
            if not tool_uses:
                self.turn.stop_reason = acc.stop_reason or StopReason.END_TURN.value
                return

            messages.append({"role": "assistant", "content": assistant_wire_content(acc.blocks)})
            results: list[ToolResultBlock] = []
            async for event in self._execute_tools(session, tool_uses, results):
                yield event
            self.turn.blocks.extend(results)
            if handle.cancelled:
                self.turn.stop_reason = StopReason.ABORTED.value
                return
            messages.append({"role": "user", "content": [block_to_wire(b) for b in results]})

        # Max iterations exceeded with tools still requested
        error = AgentLoopExceededError(self.max_iterations, ctx)
        logger.warning(error.message, extra={"session_id": session.session_id})
        self.turn.stop_reason = StopReason.MAX_ITERATIONS.value
        yield error.to_sse_event()

    async def _stream_round(
        self, session: AgentSession, system: str, messages: list[dict],
        use_thinking: bool, acc: StreamAccumulator, ctx: ErrorContext,
    ) -> AsyncIterator[dict]:
        """One model call: forward deltas as they decode; stops reading on abort."""
        handle = session.cancellation
        tools = self.dispatch.tool_definitions()
        async with self.client.stream_events(
            model=self.model,
            max_tokens=MAX_TOKENS_WITH_THINKING if use_thinking else MAX_TOKENS,
            system=with_system_cache(system),
            tools=with_tools_cache(tools) or None,
            messages=with_message_cache(messages),
            thinking=(
                {"type": "enabled", "budget_tokens": self.thinking_budget_tokens}
                if use_thinking else None
            ),
            context=ctx,
        ) as stream:
            async for raw in iterate_until_cancelled(stream, handle):
                deltas = acc.feed(raw)
                if handle.cancelled:
                    break
                for delta in deltas:
                    yield delta_event(delta)

    async def _execute_tools(
        self, session: AgentSession, tool_uses: list[ToolUse],
        results: list[ToolResultBlock],
    ) -> AsyncIterator[dict]:
        for tool_use in tool_uses:
            if session.cancellation.cancelled:
                results.append(_result_block(tool_use.id, ToolResult.error(ABORTED_RESULT)))
                continue
            result = await self.dispatch.execute(
                tool_use.name, tool_use.input, session.working_dir,
            )
            results.append(_result_block(tool_use.id, result))
            yield tool_result_event(tool_use.id, result)

    def _close_aborted(self, tool_uses: list[ToolUse]) -> None:
        self.turn.blocks.extend(
            _result_block(t.id, ToolResult.error(ABORTED_RESULT)) for t in tool_uses
        )
        self.turn.stop_reason = StopReason.ABORTED.value

    async def _persist(self, session: AgentSession, message_id: str, stop_reason: str) -> None:
        if not self.turn.blocks and stop_reason == "error":
            return
        await self.storage.append_message(session.user_id, session.session_id, Message(
            id=message_id,
            session_id=session.session_id,
            role=Role.ASSISTANT,
            content=self.turn.blocks,
            model=self.turn.model or self.model,
            stop_reason=stop_reason,
            input_tokens=self.turn.input_tokens,
            output_tokens=self.turn.output_tokens,
        ))
