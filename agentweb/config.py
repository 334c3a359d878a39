"""Application Configuration: environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache): single instance per process
    - Tool policy (tools_file_system, tools_bash) is deployment-wide, read once per dispatcher

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support (ADR: developer UX)
    - Defaults provided for all non-secret settings: SQLite + local working dir work out of the box
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = "sqlite+aiosqlite:///./agentweb.db"

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres hands out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10
    database_auto_create: bool = True

    # Model (Anthropic Messages API)
    anthropic_api_key: str = ""
    anthropic_base_url: str | None = None
    anthropic_max_retries: int = 3
    anthropic_timeout_seconds: int = 300
    anthropic_base_delay_ms: int = 1000
    anthropic_max_delay_ms: int = 60_000
    agent_model: str = "claude-sonnet-4-5"
    title_timeout_seconds: float = 8.0

    # Agent loop
    agent_max_iterations: int = 20
    thinking_budget_tokens: int = 5000
    default_working_dir: str = ""

    # Tools
    tools_file_system: bool = True
    tools_bash: bool = True
    bash_default_timeout_ms: int = 30_000
    web_fetch_timeout_seconds: float = 30.0

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
