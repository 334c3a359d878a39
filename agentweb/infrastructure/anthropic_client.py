"""Resilient Anthropic Client: wraps AsyncAnthropic with retry, backoff, and error mapping.

Invariants:
    - Rate limits (429): exponential backoff with jitter, respects Retry-After header
    - Transient errors (5xx, 529, connection): max_retries retries with exponential backoff
    - Client errors (4xx except 429): immediate failure, no retry
    - All failures mapped to ModelAPIError (core/errors.py)
    - Streaming never retries: a half-delivered stream cannot be replayed to the client

Design Decisions:
    - Wrapper over raw client: isolates retry logic from agent_runner (ADR: single responsibility)
    - stream_events() yields the SDK's raw event stream (messages.create(stream=True)) instead of
      the MessageStream helper: decoding lives in core/stream_accumulator.py, and the raw
      AsyncStream exposes close() so an abort tears down the HTTP response itself
    - ±25% jitter on backoff: prevents thundering herd on shared rate limits
    - One client per (base_url, api_key): the model config can change at runtime
"""

import asyncio
import random
import logging
from contextlib import asynccontextmanager
from typing import Any

import anthropic
from anthropic import (
    APIError,
    APIConnectionError,
    APIStatusError,
    RateLimitError,
    APITimeoutError,
    InternalServerError,
)

from agentweb.config import Settings
from agentweb.core.errors import ModelAPIError, ErrorContext
from agentweb.core.repository_protocols import ModelConfig

logger = logging.getLogger(__name__)

# OverloadedError (HTTP 529) is not re-exported by every SDK release; detect by status.
_OVERLOADED_STATUS = 529


def _is_overloaded(e: APIError) -> bool:
    """Check if error is Anthropic 529 Overloaded."""
    return isinstance(e, APIStatusError) and e.status_code == _OVERLOADED_STATUS


def _without_unset(kwargs: dict[str, Any]) -> dict[str, Any]:
    """Drop None-valued optional params (the SDK would send them as null)."""
    return {k: v for k, v in kwargs.items() if v is not None}


class ResilientAnthropicClient:
    """Wraps Anthropic client with retry logic, timeouts, and error mapping."""

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        max_retries: int = 3,
        base_delay_ms: int = 1000,
        max_delay_ms: int = 60_000,
        timeout_seconds: int = 300,
    ):
        self.client = anthropic.AsyncAnthropic(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
        )
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    async def create_message(
        self,
        *,
        model: str,
        max_tokens: int,
        messages: list,
        system: str | list | None = None,
        tools: list | None = None,
        context: ErrorContext | None = None,
    ):
        """Create a (non-streaming) message with automatic retry on transient failures."""
        params = _without_unset({
            "model": model, "max_tokens": max_tokens, "messages": messages,
            "system": system, "tools": tools,
        })
        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.messages.create(**params)
                self._log_success(response, attempt)
                return response

            except RateLimitError as e:
                await self._handle_rate_limit(e, attempt, context)

            except (APIConnectionError, InternalServerError) as e:
                if isinstance(e, APITimeoutError):
                    raise ModelAPIError("API timeout", "timeout", context=context)
                await self._handle_transient_error(e, attempt, context)

            except APIError as e:
                if _is_overloaded(e):
                    await self._handle_transient_error(e, attempt, context)
                    continue
                raise ModelAPIError(str(e), "client_error", context=context)

    @asynccontextmanager
    async def stream_events(
        self,
        *,
        model: str,
        max_tokens: int,
        messages: list,
        system: str | list | None = None,
        tools: list | None = None,
        thinking: dict | None = None,
        context: ErrorContext | None = None,
    ):
        """Open a raw event stream; errors at setup or mid-stream become ModelAPIError.

        The yielded object is the SDK AsyncStream: `async for event in stream`
        and `await stream.close()`. CancelledError (BaseException) passes through.
        """
        params = _without_unset({
            "model": model, "max_tokens": max_tokens, "messages": messages,
            "system": system, "tools": tools, "thinking": thinking,
        })
        stream = None
        try:
            stream = await self.client.messages.create(stream=True, **params)
            yield stream
        except RateLimitError as e:
            raise ModelAPIError(
                "Rate limit exceeded (streaming)",
                "rate_limit",
                retry_after_ms=self._extract_retry_after(e),
                context=context,
            )
        except APITimeoutError:
            raise ModelAPIError(
                "API timeout during stream", "timeout", context=context,
            )
        except (APIConnectionError, InternalServerError) as e:
            raise ModelAPIError(
                f"Connection error during stream: {e}",
                "connection_error",
                context=context,
            )
        except APIError as e:
            if _is_overloaded(e):
                raise ModelAPIError(
                    "Model API overloaded (529)", "overloaded", context=context,
                )
            raise ModelAPIError(str(e), "client_error", context=context)
        finally:
            if stream is not None:
                await stream.close()

    def _log_success(self, response, attempt: int) -> None:
        usage = response.usage
        logger.info(
            "Model API success",
            extra={
                "attempt": attempt + 1,
                "input_tokens": usage.input_tokens,
                "output_tokens": usage.output_tokens,
            },
        )

    async def _handle_rate_limit(
        self, e: RateLimitError, attempt: int, context: ErrorContext | None,
    ) -> None:
        """Handle rate limit error with retry or raise."""
        retry_after_ms = self._extract_retry_after(e)
        if attempt >= self.max_retries:
            raise ModelAPIError(
                "Rate limit exceeded after retries",
                "rate_limit",
                retry_after_ms=retry_after_ms,
                context=context,
            )
        delay = retry_after_ms or self._backoff(attempt)
        logger.warning(
            f"Rate limit hit, retry after {delay}ms (attempt {attempt + 1})",
        )
        await asyncio.sleep(delay / 1000)

    async def _handle_transient_error(
        self, e: Exception, attempt: int, context: ErrorContext | None,
    ) -> None:
        """Handle transient errors with retry or raise."""
        if attempt >= self.max_retries:
            raise ModelAPIError(
                f"Transient failure after {self.max_retries} retries: {e}",
                "connection_error",
                context=context,
            )
        delay = self._backoff(attempt)
        logger.warning(f"Transient error, retry after {delay}ms: {e}")
        await asyncio.sleep(delay / 1000)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311

    def _extract_retry_after(self, error: RateLimitError) -> int | None:
        """Extract Retry-After header (returns milliseconds)."""
        response = getattr(error, "response", None)
        if response is None:
            return None
        val = response.headers.get("retry-after")
        try:
            return int(float(val) * 1000) if val else None
        except ValueError:
            return None


class AnthropicClientCache:
    """One ResilientAnthropicClient per active model endpoint."""

    def __init__(self, settings: Settings):
        self._settings = settings
        self._clients: dict[tuple[str | None, str], ResilientAnthropicClient] = {}

    def get(self, config: ModelConfig) -> ResilientAnthropicClient:
        key = (config.base_url, config.api_key)
        client = self._clients.get(key)
        if client is None:
            client = ResilientAnthropicClient(
                api_key=config.api_key,
                base_url=config.base_url,
                max_retries=self._settings.anthropic_max_retries,
                base_delay_ms=self._settings.anthropic_base_delay_ms,
                max_delay_ms=self._settings.anthropic_max_delay_ms,
                timeout_seconds=self._settings.anthropic_timeout_seconds,
            )
            self._clients[key] = client
        return client
