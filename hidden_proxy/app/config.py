"""
Configuration module for the Hidden URL Proxy.

This module uses Pydantic Settings to load and validate environment variables
for key material, outbound fetch limits, optional request variants and
server settings.

Environment variables are loaded from .env file or system environment.
Key material is deliberately kept as the raw configuration string here; it is
parsed and validated when a request needs it (see app.crypto.keys), so a
misconfigured key yields a clean 401 instead of a crash at startup.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All configuration for key material, the outbound fetch, the response
    byte ceiling and the optional request variants is defined here.
    """

    # =========================================================================
    # Key Material
    # =========================================================================

    KEY_BASE64: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("KEY_BASE64", "KEY"),
        description=(
            "AES-256 key. Prefix with 'base64:' or 'hex:' to select the encoding; "
            "anything else is taken as raw UTF-8 bytes. Must decode to 32 bytes."
        ),
    )

    # =========================================================================
    # Outbound Fetch Configuration
    # =========================================================================

    TIMEOUT_SECS: float = Field(
        default=60.0,
        description="Timeout for the outbound fetch (connection + headers) in seconds",
        gt=0,
    )

    TIMEOUT_MS: Optional[int] = Field(
        default=None,
        description="Timeout override in milliseconds (takes precedence over TIMEOUT_SECS)",
        gt=0,
    )

    MAX_MEGABYTES: Optional[int] = Field(
        default=None,
        description="Maximum relayed response size in MiB (unset or 0 disables the ceiling)",
    )

    # =========================================================================
    # Request Variants & Target Policy
    # =========================================================================

    ALLOW_POST: bool = Field(
        default=False,
        description="Accept POST / with the container as raw body text or a JSON 'q' field",
    )

    BLOCK_PRIVATE_HOSTS: bool = Field(
        default=False,
        description="Reject decrypted targets pointing at loopback/private hosts",
    )

    # =========================================================================
    # Server Configuration
    # =========================================================================

    PROXY_HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the proxy server",
    )

    PROXY_PORT: int = Field(
        default=8080,
        description="Port to bind the proxy server",
        ge=1,
        le=65535,
    )

    ALLOWED_ORIGINS: Optional[str] = Field(
        default=None,
        description="Comma-separated list of allowed CORS origins (leave empty for no CORS)",
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    # =========================================================================
    # Pydantic Settings Configuration
    # =========================================================================

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def timeout_seconds(self) -> float:
        """Effective outbound timeout in seconds."""
        if self.TIMEOUT_MS is not None:
            return self.TIMEOUT_MS / 1000.0
        return self.TIMEOUT_SECS

    @property
    def max_bytes(self) -> Optional[int]:
        """
        Byte ceiling for relayed responses.

        Returns:
            Ceiling in bytes, or None when no ceiling is configured.
        """
        if not self.MAX_MEGABYTES or self.MAX_MEGABYTES <= 0:
            return None
        return self.MAX_MEGABYTES * 1024 * 1024

    @property
    def allowed_origins_list(self) -> List[str]:
        """
        Parse and return ALLOWED_ORIGINS as a list.

        Returns:
            List of allowed origin URLs, or empty list if not configured.
        """
        if not self.ALLOWED_ORIGINS:
            return []

        return [
            origin.strip()
            for origin in self.ALLOWED_ORIGINS.split(",")
            if origin.strip()
        ]

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("MAX_MEGABYTES", "TIMEOUT_MS", mode="before")
    @classmethod
    def blank_as_unset(cls, v):
        """Treat an empty value (e.g. ``MAX_MEGABYTES=`` in .env) as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """
        Validate that LOG_LEVEL names a standard logging level.

        Raises:
            ValueError: If the level is not recognised
        """
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        level = v.strip().upper()

        if level not in allowed_levels:
            raise ValueError(
                f"LOG_LEVEL must be one of {allowed_levels}, got: {v}"
            )

        return level


# =============================================================================
# Settings Singleton
# =============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Get or create a singleton Settings instance.

    This function is cached so that the settings are loaded only once
    during the process lifetime. It doubles as a FastAPI dependency, which
    lets tests swap configuration through ``app.dependency_overrides``.

    Returns:
        Settings instance with all configuration loaded and validated.

    Raises:
        ValidationError: If an environment variable holds an invalid value.
    """
    return Settings()
