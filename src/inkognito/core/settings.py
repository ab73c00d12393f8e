"""Application settings and configuration.

This module defines all configuration options for Inkognito, covering both the
backing API and the feed engine that consumes it. Settings are loaded from
environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Inkognito", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Security and moderator capability
    secret_key: str = Field(default="insecure-development-key", alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 12,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )
    moderator_role: str = Field(default="admin", alias="MODERATOR_ROLE")

    # Database configuration
    database_url: str = Field(default="sqlite:///./inkognito.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Feed engine
    feed_page_size: int = Field(default=10, ge=1, le=100, alias="FEED_PAGE_SIZE")
    feed_max_page_size: int = Field(default=100, alias="FEED_MAX_PAGE_SIZE")
    api_base_url: str = Field(
        default="http://localhost:8000/api/v1",
        alias="INKOGNITO_API_BASE_URL",
    )
    api_key: str | None = Field(default=None, alias="INKOGNITO_API_KEY")
    http_timeout_seconds: float = Field(default=10.0, alias="HTTP_TIMEOUT_SECONDS")

    # Edge functions invoked fire-and-forget (AI comment, e-mail notification)
    functions_base_url: str | None = Field(default=None, alias="FUNCTIONS_BASE_URL")
    ai_comment_function: str = Field(
        default="generate-ai-comment",
        alias="AI_COMMENT_FUNCTION",
    )
    comment_notification_function: str = Field(
        default="send-comment-notification",
        alias="COMMENT_NOTIFICATION_FUNCTION",
    )

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def functions_enabled(self) -> bool:
        """Return True when edge functions have somewhere to go."""
        return bool(self.functions_base_url)


settings = Settings()
