# =============================================================================
# app/config.py - Application Settings
# =============================================================================
# This module loads configuration from environment variables using pydantic-settings.
# It provides a single Settings class with all configuration values.
#
# Usage:
#   from app.config import settings
#   print(settings.SUPABASE_URL)
#
# Environment variables are loaded from:
# 1. System environment variables
# 2. .env file in project root (if exists)
#
# Only the Supabase values are required at import time. Provider keys
# (LLM, Stripe, GitHub, PostHog) are checked by validate_environment()
# when the API starts.
# =============================================================================

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings are accessed via the global `settings` instance.
    """

    # -------------------------------------------------------------------------
    # Supabase Configuration
    # -------------------------------------------------------------------------
    # These are required - app won't start without them

    SUPABASE_URL: str = Field(
        ...,
        description="Supabase project URL (e.g., https://xxx.supabase.co)"
    )

    SUPABASE_ANON_KEY: str = Field(
        ...,
        description="Supabase anon/public API key"
    )

    SUPABASE_SERVICE_KEY: str = Field(
        ...,
        description="Supabase service_role key (bypasses RLS)"
    )

    SUPABASE_JWT_SECRET: str = Field(
        default="",
        description="Legacy HS256 JWT secret used to verify Supabase access tokens"
    )

    # -------------------------------------------------------------------------
    # LLM Configuration
    # -------------------------------------------------------------------------
    # Used to generate architecture documents and implementation tasks

    LLM_PROVIDER: Literal["openai", "groq", "ollama"] = Field(
        default="openai",
        description="Which LLM backend generates markdown"
    )

    OPENAI_API_KEY: str = Field(
        default="",
        description="OpenAI API key (required when LLM_PROVIDER=openai)"
    )

    OPENAI_MODEL: str = Field(
        default="gpt-4o",
        description="OpenAI chat model"
    )

    GROQ_API_KEY: str = Field(
        default="",
        description="Groq API key (required when LLM_PROVIDER=groq)"
    )

    GROQ_MODEL: str = Field(
        default="llama-3.3-70b-versatile",
        description="Groq chat model"
    )

    OLLAMA_BASE_URL: str | None = Field(
        default=None,
        description="Ollama server URL (defaults to http://localhost:11434)"
    )

    OLLAMA_MODEL: str = Field(
        default="llama3",
        description="Ollama model name"
    )

    # -------------------------------------------------------------------------
    # Stripe Configuration
    # -------------------------------------------------------------------------

    STRIPE_SECRET_KEY: str = Field(
        default="",
        description="Stripe secret API key"
    )

    STRIPE_WEBHOOK_SECRET: str = Field(
        default="",
        description="Signing secret for the Stripe webhook endpoint"
    )

    STRIPE_PRO_PRICE_ID: str = Field(
        default="",
        description="Stripe price ID for the Pro plan"
    )

    STRIPE_TEAM_PRICE_ID: str = Field(
        default="",
        description="Stripe price ID for the Team plan"
    )

    # -------------------------------------------------------------------------
    # GitHub OAuth
    # -------------------------------------------------------------------------

    GITHUB_CLIENT_ID: str = Field(
        default="",
        description="GitHub OAuth app client ID"
    )

    GITHUB_CLIENT_SECRET: str = Field(
        default="",
        description="GitHub OAuth app client secret"
    )

    GITHUB_REDIRECT_URI: str = Field(
        default="http://localhost:3000/auth/github/callback",
        description="Where GitHub redirects after the user authorizes the app"
    )

    # -------------------------------------------------------------------------
    # Analytics
    # -------------------------------------------------------------------------

    POSTHOG_KEY: str = Field(
        default="",
        description="PostHog project API key (analytics disabled when empty)"
    )

    POSTHOG_HOST: str = Field(
        default="https://app.posthog.com",
        description="PostHog host receiving /capture/ events"
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Current environment"
    )

    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (verbose logging, auto-reload)"
    )

    API_HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the API server to"
    )

    API_PORT: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port for the API server"
    )

    APP_URL: str = Field(
        default="http://localhost:3000",
        description="Public frontend URL used for Stripe redirect targets"
    )

    CORS_ORIGINS: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    HTTP_TIMEOUT_SECONDS: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for outbound GitHub / Ollama / PostHog requests"
    )

    # -------------------------------------------------------------------------
    # Rate Limits
    # -------------------------------------------------------------------------

    LLM_RATE_LIMIT_PER_MINUTE: int = Field(
        default=5,
        ge=1,
        description="LLM-backed requests per user per minute"
    )

    API_RATE_LIMIT_PER_MINUTE: int = Field(
        default=60,
        ge=1,
        description="General API requests per user per minute"
    )

    AUTH_RATE_LIMIT_PER_WINDOW: int = Field(
        default=5,
        ge=1,
        description="Auth attempts per client IP per 15 minutes"
    )

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=True,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def cors_origins_list(self) -> list[str]:
        """
        Parse CORS_ORIGINS string into a list.

        Example: "http://localhost:3000, https://myapp.com" -> ["http://localhost:3000", "https://myapp.com"]
        """
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def ollama_base_url(self) -> str:
        return (self.OLLAMA_BASE_URL or "http://localhost:11434").rstrip("/")

    @property
    def app_url(self) -> str:
        return self.APP_URL.rstrip("/")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


# =============================================================================
# Environment Validation
# =============================================================================

@dataclass
class EnvValidation:
    """Result of validate_environment()."""
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def validate_environment(config: Settings) -> EnvValidation:
    """
    Check provider-dependent settings that pydantic can't express as required.

    Errors mean a feature cannot work at all (e.g. the selected LLM provider
    has no API key). Warnings mean a feature will be degraded.

    Args:
        config: The settings instance to inspect

    Returns:
        EnvValidation with errors and warnings lists
    """
    result = EnvValidation()

    if config.LLM_PROVIDER == "openai" and not config.OPENAI_API_KEY:
        result.errors.append('OPENAI_API_KEY is required when LLM_PROVIDER is set to "openai"')
    elif config.LLM_PROVIDER == "groq" and not config.GROQ_API_KEY:
        result.errors.append('GROQ_API_KEY is required when LLM_PROVIDER is set to "groq"')
    elif config.LLM_PROVIDER == "ollama" and not config.OLLAMA_BASE_URL:
        result.warnings.append(
            "OLLAMA_BASE_URL is recommended when LLM_PROVIDER is set to \"ollama\" "
            "(defaults to http://localhost:11434)"
        )

    if not config.SUPABASE_JWT_SECRET:
        result.warnings.append(
            "SUPABASE_JWT_SECRET is not set: only JWKS-signed (ES256/RS256) access tokens will be accepted"
        )

    if not config.STRIPE_SECRET_KEY:
        result.warnings.append("Missing recommended environment variable: STRIPE_SECRET_KEY")
    else:
        if not config.STRIPE_PRO_PRICE_ID:
            result.warnings.append("Stripe Pro price ID not configured. Billing features may not work correctly.")
        if not config.STRIPE_TEAM_PRICE_ID:
            result.warnings.append("Stripe Team price ID not configured. Billing features may not work correctly.")

    return result


@lru_cache
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Using lru_cache ensures we only parse .env and validate once,
    not on every access.

    Returns:
        Settings: The application settings instance
    """
    return Settings()


# Global settings instance for easy importing
# Usage: from app.config import settings
settings = get_settings()
