from datetime import timedelta

from pydantic import BaseModel, ConfigDict, PositiveInt
from pydantic_settings import BaseSettings, SettingsConfigDict


class LinkPolicy(BaseModel):
    """
    Immutable link allocation policy.

    Passed explicitly into the short code generator and the link service
    so neither reads global settings.
    """

    code_length: PositiveInt = 6
    default_expiration: timedelta = timedelta(hours=24)
    # Fail create_link when the cache write after the durable write fails
    strict_cache_writes: bool = True

    model_config = ConfigDict(frozen=True)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below
    """

    # Environment
    environment: str = "development"
    debug: bool = True

    # Application
    app_name: str = "Expiring Links"
    app_version: str = "1.0.0"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Database
    store_backend: str = "sqlalchemy"  # Options: "sqlalchemy", "memory"
    database_url: str = "sqlite:///./expiring_links.db"

    # Link policy
    base_url: str = "http://127.0.0.1:8000"  # Only used to format short_url
    code_length: PositiveInt = 6
    default_expiration: timedelta = timedelta(hours=24)
    strict_cache_writes: bool = True

    # Expiry sweep
    cleanup_interval: timedelta = timedelta(hours=1)

    # Cache settings
    cache_backend: str = "redis"  # Options: "redis", "memory", "null"
    redis_url: str = "redis://localhost:6379/0"
    redis_socket_timeout: float = 2.0  # Seconds, bounds every Redis call

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def link_policy(self) -> LinkPolicy:
        """Snapshot the link related settings as an immutable policy"""
        return LinkPolicy(
            code_length=self.code_length,
            default_expiration=self.default_expiration,
            strict_cache_writes=self.strict_cache_writes,
        )


# Create settings instance
settings = Settings()
