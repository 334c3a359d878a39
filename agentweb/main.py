"""agentweb API: FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery, ExMA anti-pattern)
    - Global error handlers map AgentWebError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup via lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Tables created at startup only when DATABASE_AUTO_CREATE is set; deployments
      run `alembic upgrade head` instead (ADR: SQLite works out of the box)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agentweb.api.error_handlers import register_error_handlers
from agentweb.api.routes import chat_stream, health
from agentweb.config import get_settings
from agentweb.infrastructure.database import init_db
from agentweb.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    if settings.database_auto_create:
        await manager.create_all()
    logger.info("agentweb API started")
    yield
    await manager.dispose()
    logger.info("agentweb API shutting down")


app = FastAPI(title="agentweb API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes: explicit registration (ExMA: no convention-over-config)
app.include_router(health.router)
app.include_router(chat_stream.router)

register_error_handlers(app)
