"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(RuntimeError):
    """Raised when a required backend credential or secret is missing."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "SAT Tracker"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    # If database_url_override is set (e.g., the hosted Postgres URL), it takes precedence
    database_url_override: str | None = None
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "sattrack"
    postgres_password: str = ""
    postgres_db: str = "sattrack"

    @computed_field
    @property
    def database_url(self) -> str:
        """Get async database URL. Uses override if provided, otherwise constructs from parts."""
        if self.database_url_override:
            url = self.database_url_override
            # Replace scheme for async driver
            if url.startswith("postgresql://"):
                url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
            elif url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql+asyncpg://", 1)
            # asyncpg doesn't accept query params via URL; SSL goes through connect_args
            if url.startswith("postgresql+asyncpg://") and "?" in url:
                url = url.split("?")[0]
            return url
        return f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    @computed_field
    @property
    def database_requires_ssl(self) -> bool:
        """Check if the database connection requires SSL (hosted Postgres)."""
        if self.database_url_override:
            return "sslmode=require" in self.database_url_override or "ssl=require" in self.database_url_override
        return False

    @computed_field
    @property
    def database_url_sync(self) -> str:
        """Get sync database URL (for Alembic). Uses override if provided, otherwise constructs from parts."""
        if self.database_url_override:
            url = self.database_url_override
            if url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql://", 1)
            elif url.startswith("postgresql+asyncpg://"):
                url = url.replace("postgresql+asyncpg://", "postgresql://", 1)
            return url
        return f"postgresql://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    # Auth
    # Tokens are issued by the hosted auth provider and signed with its JWT secret
    supabase_jwt_secret: str  # Required - no default, must be set in .env
    jwt_algorithm: str = "HS256"
    jwt_audience: str | None = "authenticated"

    # Cron endpoints. When unset the endpoints are open.
    cron_secret: str | None = None

    # User directory
    user_directory: Literal["database", "supabase"] = "database"
    supabase_url: str | None = None
    supabase_service_role_key: str | None = None
    directory_page_size: int = 1000

    # Transactional email (Resend)
    resend_api_key: str | None = None
    resend_from_email: str = "notifications@satracker.uz"
    resend_api_url: str = "https://api.resend.com/emails"
    site_url: str = "https://www.app.satracker.uz"
    email_max_concurrency: int = 10
    email_timeout_seconds: float = 10.0

    # Realtime mirror
    mirror_poll_interval_seconds: float = 30.0
    toast_duration_seconds: float = 10.0
    toast_fresh_seconds: float = 60.0
    mirror_tomorrow_reminder_hour: int = 18

    # Client-side durable storage (timer snapshots, preferences)
    client_state_path: str = ".sattrack_state.json"

    # CORS
    cors_origins: list[str] = ["http://localhost:8081"]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def sanitize_error(error: Exception, *, generic_message: str = "An internal error occurred.") -> str:
    """
    Return a user-safe error message.

    In development, returns the full exception string for debugging.
    In staging/production, returns a generic message to avoid leaking internals.
    """
    settings = get_settings()
    if settings.environment == "development":
        return str(error)
    return generic_message
