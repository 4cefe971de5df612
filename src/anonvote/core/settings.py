"""Application settings and configuration.

This module defines all configuration options for the anonvote ledger and its
client. Settings are loaded from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Server and client share one settings class so a single `.env` file can
    configure both halves of a local deployment.
    """

    # Application metadata
    app_name: str = Field(default="anonvote", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Database configuration
    database_url: str = Field(default="sqlite:///./anonvote.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Per-key mutual exclusion around the insert+increment step
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")
    ledger_lock_backend: Literal["local", "redis"] = Field(
        default="local",
        alias="LEDGER_LOCK_BACKEND",
    )
    ledger_lock_timeout_seconds: float = Field(
        default=5.0,
        alias="LEDGER_LOCK_TIMEOUT_SECONDS",
    )

    # Input limits
    visitor_id_min_length: int = Field(default=1, alias="VISITOR_ID_MIN_LENGTH")
    # Upper bounds match the vote and content_item column widths.
    visitor_id_max_length: int = Field(default=128, ge=1, le=128, alias="VISITOR_ID_MAX_LENGTH")
    item_id_max_length: int = Field(default=64, ge=1, le=64, alias="ITEM_ID_MAX_LENGTH")

    # Unlock state machine: distinct-vote thresholds for stages 1, 2 and 3
    stage_thresholds: tuple[int, int, int] = Field(
        default=(10, 20, 25),
        alias="STAGE_THRESHOLDS",
    )
    # 0 leaves the Normal/Alternate toggle ungated
    mode_toggle_min_stage: int = Field(default=0, ge=0, le=3, alias="MODE_TOGGLE_MIN_STAGE")

    # Client-side storage and transport
    client_storage_path: str = Field(
        default="~/.anonvote/profile.json",
        alias="CLIENT_STORAGE_PATH",
    )
    client_storage_key: str = Field(default="anonvote", alias="CLIENT_STORAGE_KEY")
    api_base_url: str = Field(default="http://localhost:8000/api/v1", alias="API_BASE_URL")
    http_timeout_seconds: float = Field(default=10.0, alias="HTTP_TIMEOUT_SECONDS")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("stage_thresholds")
    @classmethod
    def _thresholds_ascending(cls, value: tuple[int, int, int]) -> tuple[int, int, int]:
        if list(value) != sorted(value) or value[0] < 0:
            raise ValueError("STAGE_THRESHOLDS must be non-negative and ascending")
        return value

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()
