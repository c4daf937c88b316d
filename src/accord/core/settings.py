"""Application settings and configuration.

This module defines all configuration options for the Accord server.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    Federation code does not read this object directly; it receives a
    `FederationConfig` snapshot built by `load_federation_config()`.
    """

    # Application metadata
    app_name: str = Field(default="Accord", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Database configuration
    database_url: str = Field(default="sqlite:///./accord.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    # Comma separated status codes to log, prefix with "-" to log everything else.
    log_requests: str | None = Field(default=None, alias="LOG_REQUESTS")

    # Federation
    federation_enabled: bool = Field(default=False, alias="FEDERATION_ENABLED")
    federation_host: str = Field(default="localhost:3001", alias="FEDERATION_HOST")
    federation_account_domain: str = Field(
        default="localhost:3001",
        alias="FEDERATION_ACCOUNT_DOMAIN",
    )
    federation_key_size: int = Field(default=4096, ge=4096, alias="FEDERATION_KEY_SIZE")
    federation_http_timeout_seconds: float = Field(
        default=10.0,
        alias="FEDERATION_HTTP_TIMEOUT_SECONDS",
    )
    federation_user_agent: str = Field(
        default="Accord-ActivityPub/0.1.0",
        alias="FEDERATION_USER_AGENT",
    )

    # CDN used to build avatar and icon URLs
    cdn_endpoint_public: str = Field(
        default="http://localhost:3003",
        alias="CDN_ENDPOINT_PUBLIC",
    )

    # Registration and defaults applied to shadow users of remote actors
    registration_disabled: bool = Field(default=False, alias="REGISTRATION_DISABLED")
    default_user_premium: bool = Field(default=True, alias="DEFAULT_USER_PREMIUM")
    default_user_premium_type: int = Field(default=2, alias="DEFAULT_USER_PREMIUM_TYPE")
    default_user_verified: bool = Field(default=True, alias="DEFAULT_USER_VERIFIED")
    default_rights: str = Field(default="875069521787904", alias="DEFAULT_RIGHTS")

    # CORS configuration for remote servers and web clients
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_methods: list[str] = Field(
        default=["GET", "OPTIONS"],
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
    )

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
