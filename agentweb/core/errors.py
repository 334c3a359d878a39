"""Error Hierarchy: typed, categorized exceptions for every agentweb failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - to_response() produces the REST envelope; to_sse_event() produces the `error` stream event
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with AgentWebError base: FastAPI global handler catches all (ADR: uniform error shape)
    - ErrorContext as dataclass: rich observability without coupling to the logging framework
    - Tool-level failures never reach this hierarchy's HTTP path: the dispatcher turns them
      into is_error tool results (see services/tool_dispatch.py)
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    SECURITY = "security"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    CONFIGURATION = "configuration"
    INTERNAL = "internal"
    CONFLICT = "conflict"
    TIMEOUT = "timeout"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    session_id: str | None = None
    tool_name: str | None = None
    iteration: int | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class AgentWebError(Exception):
    """Base exception for all agentweb errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "session_id": self.context.session_id,
                    "tool_name": self.context.tool_name,
                    "iteration": self.context.iteration,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }

    def to_sse_event(self) -> dict:
        """Convert to the `error` stream event ({type, data, timestamp})."""
        return {
            "type": "error",
            "data": {
                "code": self.code,
                "message": self.context.user_message or self.message,
            },
            "timestamp": int(time.time() * 1000),
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class ToolValidationError(AgentWebError):
    """Tool input validation failed."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class PathValidationError(AgentWebError):
    """A tool tried to touch a path outside the sandbox or a protected file."""
    def __init__(self, message: str, path: str, context: ErrorContext | None = None):
        super().__init__(
            message, "PATH_REJECTED", ErrorCategory.SECURITY,
            ErrorSeverity.WARNING, context, 403,
        )
        self.path = path


class ResourceNotFoundError(AgentWebError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


class SessionBusyError(AgentWebError):
    """A second stream was opened for a session that is still running."""
    def __init__(self, session_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"Session '{session_id}' already has an active stream",
            "SESSION_BUSY", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(AgentWebError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class ModelAPIError(AgentWebError):
    """Upstream model API call failed (transport error)."""
    def __init__(
        self,
        message: str,
        api_error_type: str,
        retry_after_ms: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_ms = retry_after_ms
        super().__init__(
            f"Model API error ({api_error_type}): {message}",
            "MODEL_API_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.CRITICAL, ctx, 503,
        )
        self.api_error_type = api_error_type


class ModelNotConfiguredError(AgentWebError):
    """No usable model configuration (missing API key or model)."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "No model is configured. Set ANTHROPIC_API_KEY and AGENT_MODEL.",
            "MODEL_NOT_CONFIGURED", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, context, 503,
        )


class AgentLoopExceededError(AgentWebError):
    """Agent exceeded maximum iteration limit."""
    def __init__(self, max_iterations: int, context: ErrorContext | None = None):
        super().__init__(
            f"Reached the maximum of {max_iterations} tool iterations",
            "MAX_ITERATIONS", ErrorCategory.INTERNAL,
            ErrorSeverity.ERROR, context, 500,
        )
