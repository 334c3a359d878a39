"""Error Handlers: global exception handlers for the chat API.

Invariants:
    - AgentWebError → its own http_status with the structured {error: {...}} body
    - RequestValidationError → 400 VALIDATION_ERROR with field-level details
    - Exception (catch-all) → 500 INTERNAL_ERROR, never leaks internal details
    - Errors raised inside an SSE stream never reach these handlers (they become
      `error` events in the stream)

Design Decisions:
    - Three-layer handler: domain (AgentWebError), validation (Pydantic), catch-all (Exception)
    - 4xx domain errors log at warning, 5xx at error: client mistakes are not incidents
    - Extracted from main.py (ADR: ExMA import fan-out < 10)
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from agentweb.core.errors import AgentWebError, ErrorSeverity

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    app.add_exception_handler(AgentWebError, handle_domain_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)


async def handle_domain_error(request: Request, exc: AgentWebError) -> JSONResponse:
    level = logging.WARNING if exc.http_status < 500 else logging.ERROR
    logger.log(
        level, "AgentWebError: %s", exc.message,
        extra={"error_code": exc.code, "path": request.url.path},
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


async def handle_validation_error(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=validation_error_body(exc),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception on %s: %s", request.url.path, exc, exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "category": "internal",
                "severity": ErrorSeverity.CRITICAL.value,
            },
        },
    )


def validation_error_body(exc: RequestValidationError) -> dict:
    return {
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "Invalid request data",
            "category": "validation",
            "severity": ErrorSeverity.ERROR.value,
            "details": [
                {
                    "field": ".".join(str(loc) for loc in e["loc"]),
                    "message": e["msg"],
                    "type": e["type"],
                }
                for e in exc.errors()
            ],
        },
    }
