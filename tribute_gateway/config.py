"""
Configuration module for the CMS Gateway.

This module uses Pydantic Settings to load and validate environment variables
for the upstream CMS connection, the session cookie, CORS and logging.

Environment variables are loaded from .env file or system environment.
"""

from functools import lru_cache
from typing import List

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


SECONDS_PER_DAY = 24 * 60 * 60


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Everything the gateway needs to reach the CMS and to manage the
    session cookie is defined here and injected into the app at startup.
    """

    # =========================================================================
    # Upstream CMS
    # =========================================================================

    CMS_API_URL: HttpUrl = Field(
        default="https://api.tributestream.com/api",
        description="Base URL of the headless CMS REST API (e.g., http://localhost:1337/api)",
    )

    # =========================================================================
    # Session Cookie
    # =========================================================================

    SESSION_COOKIE_NAME: str = Field(
        default="jwt",
        description="Name of the cookie holding the CMS bearer token",
        min_length=1,
    )

    SESSION_COOKIE_MAX_AGE_DAYS: int = Field(
        default=7,
        description="Cookie lifetime after API login/registration, in days",
        ge=1,
        le=30,
    )

    LOGIN_MAX_AGE_DAYS: int = Field(
        default=1,
        description="Cookie lifetime after a form login without 'remember me'",
        ge=1,
        le=30,
    )

    REMEMBER_ME_MAX_AGE_DAYS: int = Field(
        default=30,
        description="Cookie lifetime after a form login with 'remember me'",
        ge=1,
        le=30,
    )

    ENVIRONMENT: str = Field(
        default="development",
        description="Deployment environment; 'production' marks the cookie Secure",
    )

    # =========================================================================
    # Server / CORS / Logging
    # =========================================================================

    HOST: str = Field(default="0.0.0.0", description="Host to bind the gateway")

    PORT: int = Field(default=8080, description="Port to bind the gateway", ge=1, le=65535)

    ALLOWED_ORIGINS: str = Field(
        default="",
        description="Comma-separated list of allowed CORS origins for /api routes; empty disables CORS",
    )

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def cms_api_url_str(self) -> str:
        """CMS base URL as a string without trailing slash."""
        return str(self.CMS_API_URL).rstrip("/")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def session_cookie_max_age(self) -> int:
        return self.SESSION_COOKIE_MAX_AGE_DAYS * SECONDS_PER_DAY

    @property
    def login_max_age(self) -> int:
        return self.LOGIN_MAX_AGE_DAYS * SECONDS_PER_DAY

    @property
    def remember_me_max_age(self) -> int:
        return self.REMEMBER_ME_MAX_AGE_DAYS * SECONDS_PER_DAY

    @property
    def allowed_origins_list(self) -> List[str]:
        """
        Parse and return ALLOWED_ORIGINS as a list.

        Returns:
            List of allowed origin URLs, or empty list if not configured.
        """
        return [
            origin.strip()
            for origin in self.ALLOWED_ORIGINS.split(",")
            if origin.strip()
        ]

    @property
    def cors_allow_credentials(self) -> bool:
        """Credentials are only allowed for an explicit origin list, never with ``*``."""
        return "*" not in self.allowed_origins_list

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        allowed = ["development", "test", "production"]
        if v.lower() not in allowed:
            raise ValueError(f"ENVIRONMENT must be one of {allowed}, got: {v}")
        return v.lower()

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in levels:
            raise ValueError(f"LOG_LEVEL must be one of {levels}, got: {v}")
        return v.upper()


@lru_cache()
def get_settings() -> Settings:
    """
    Get or create a singleton Settings instance.

    Only used to build the default application; handlers receive the
    instance attached to ``app.state.settings``.

    Raises:
        ValidationError: If environment variables are invalid.
    """
    return Settings()
