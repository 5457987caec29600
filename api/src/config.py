"""
FastAPI application configuration using Pydantic Settings.

Provides centralized configuration for:
- API settings (bind address, environment)
- Templates, uploads and the upstream used by the streaming example
- Basic authentication accounts for the admin group
- Background work and shutdown timing
- Logging and monitoring

All settings support environment variable overrides and .env file loading.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import Dict, Optional
from functools import lru_cache
from pathlib import Path


DEFAULT_TEMPLATES_DIR = Path(__file__).parent / "templates"

# Shutdown runs connection drain, then task drain, then cleanup, all on the
# listener thread; the shares must sum below 1 so cleanup fits the deadline.
GRACEFUL_SHUTDOWN_SHARE = 0.5
TASK_DRAIN_SHARE = 0.25


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables with the
    prefix "SHOWCASE_" (e.g., SHOWCASE_PORT).

    Environment variables are loaded from:
    1. System environment
    2. .env file in the current directory
    3. Default values defined below
    """

    # =========================================================================
    # API Settings
    # =========================================================================

    app_name: str = Field(
        default="Showcase API",
        description="Application name"
    )
    app_version: str = Field(
        default="0.1.0",
        description="API version"
    )

    debug: bool = Field(
        default=False,
        description="Debug mode - enables verbose error traces"
    )
    environment: str = Field(
        default="development",
        description="Environment: development|staging|production"
    )

    host: str = Field(
        default="0.0.0.0",
        description="API bind host"
    )
    port: int = Field(
        default=8080,
        description="API bind port",
        ge=0,
        lt=65536
    )

    # =========================================================================
    # Rendering and Storage
    # =========================================================================

    templates_dir: Path = Field(
        default=DEFAULT_TEMPLATES_DIR,
        description="Directory holding the HTML templates"
    )
    upload_dir: Path = Field(
        default=Path("."),
        description="Directory where uploaded files are saved"
    )
    secure_json_prefix: str = Field(
        default="while(1);",
        description="Prefix prepended to secure JSON array bodies"
    )

    # =========================================================================
    # Upstream and Redirects
    # =========================================================================

    upstream_url: str = Field(
        default="https://github.com/gongluck/gindemo",
        description="URL streamed back by /someDataFromReader"
    )
    upstream_timeout: float = Field(
        default=10.0,
        description="Upstream request timeout (seconds)",
        gt=0
    )
    redirect_url: str = Field(
        default="http://www.google.com/",
        description="Target of the external redirect example"
    )

    # =========================================================================
    # Basic Authentication
    # =========================================================================

    basic_auth_accounts: Dict[str, str] = Field(
        default={"test1": "test11", "test2": "test22"},
        description="Accounts accepted by the /admin group (user -> password)"
    )
    basic_auth_realm: str = Field(
        default="Authorization Required",
        description="Realm announced in the WWW-Authenticate challenge"
    )

    # =========================================================================
    # Background Work and Lifecycle
    # =========================================================================

    long_async_delay: float = Field(
        default=5.0,
        description="Seconds the /long_async background task sleeps",
        ge=0
    )
    shutdown_timeout: float = Field(
        default=5.0,
        description="Upper bound for graceful shutdown (seconds)",
        gt=0
    )

    # =========================================================================
    # Monitoring and Logging
    # =========================================================================

    metrics_enabled: bool = Field(
        default=True,
        description="Expose Prometheus metrics on /metrics"
    )
    log_level: str = Field(
        default="INFO",
        description="Log level: DEBUG|INFO|WARNING|ERROR|CRITICAL"
    )
    log_format: str = Field(
        default="json",
        description="Log format: json|text"
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of {allowed}, got: {v}")
        return v_upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is one of the allowed values."""
        allowed = ["development", "staging", "production"]
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of {allowed}, got: {v}")
        return v_lower

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        allowed = ["json", "text"]
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"log_format must be one of {allowed}, got: {v}")
        return v_lower

    @field_validator("basic_auth_accounts")
    @classmethod
    def validate_basic_auth_accounts(cls, v: Dict[str, str]) -> Dict[str, str]:
        """Reject accounts with an empty user name."""
        if any(not user for user in v):
            raise ValueError("basic_auth_accounts must not contain an empty user name")
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def graceful_shutdown_timeout(self) -> float:
        """Share of shutdown_timeout uvicorn waits for open connections."""
        return self.shutdown_timeout * GRACEFUL_SHUTDOWN_SHARE

    @property
    def task_drain_timeout(self) -> float:
        """Share of shutdown_timeout granted to pending background tasks."""
        return self.shutdown_timeout * TASK_DRAIN_SHARE

    @property
    def json_logs(self) -> bool:
        return self.log_format == "json"

    # =========================================================================
    # Model Config
    # =========================================================================

    model_config = SettingsConfigDict(
        env_prefix="SHOWCASE_",  # Environment variable prefix
        env_file=".env",         # Load from .env file
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",          # Ignore extra environment variables
        validate_default=True,   # Validate default values
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once and shared across the application from:
    1. Environment variables with SHOWCASE_ prefix
    2. .env file in the current directory
    3. Default values

    Returns:
        Settings: Cached settings instance

    Example:
        >>> from api.src.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.port)
        8080
    """
    return Settings()


def clear_settings_cache():
    """
    Clear the settings cache.

    Useful for testing when you need to reload settings with different
    environment variables.
    """
    get_settings.cache_clear()


def get_current_settings(**overrides: Optional[object]) -> Settings:
    """
    Get fresh settings without caching.

    Keyword arguments take precedence over the environment, which makes this
    the entry point for tests that need a tailored configuration.

    Returns:
        Settings: Fresh settings instance
    """
    return Settings(**overrides)
