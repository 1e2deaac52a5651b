"""
Configuration module - centralized settings for the entire application.
Uses pydantic-settings to load values from environment variables and .env file.
"""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Pydantic-settings automatically:
    1. Reads from environment variables (highest priority)
    2. Falls back to .env file values
    3. Uses default values if neither exists

    To override in production, set environment variables:
        export OPENAI_API_KEY=sk-...
        export DEFAULT_PREFERRED_PROVIDERS='["anthropic", "openai"]'
    """

    # ---------------------------------------------------------------------------
    # PYDANTIC SETTINGS CONFIGURATION
    # ---------------------------------------------------------------------------
    model_config = SettingsConfigDict(
        env_file=".env",        # Load from .env file in project root
        env_file_encoding="utf-8",  # File encoding
        extra="ignore",         # Ignore extra env vars not defined here
    )

    # ---------------------------------------------------------------------------
    # APPLICATION SETTINGS
    # ---------------------------------------------------------------------------
    # APP_NAME: Display name shown in API docs and logging
    APP_NAME: str = "Device Insights"

    # DEBUG: Enable debug mode (more verbose errors, auto-reload in dev)
    DEBUG: bool = False

    # ---------------------------------------------------------------------------
    # AI/LLM PROVIDER SETTINGS
    # ---------------------------------------------------------------------------
    # A provider is only registered when its key is present. Keys are handed
    # to the SDK clients and never logged.
    OPENAI_API_KEY: str = ""
    ANTHROPIC_API_KEY: str = ""
    GEMINI_API_KEY: str = ""

    # Azure OpenAI needs both a key and the resource endpoint (https only)
    AZURE_OPENAI_API_KEY: str = ""
    AZURE_OPENAI_ENDPOINT: str = ""
    AZURE_OPENAI_API_VERSION: str = "2023-05-15"
    AZURE_OPENAI_DEPLOYMENT: str = "gpt-35-turbo"

    # ---------------------------------------------------------------------------
    # AI MODEL CONFIGURATION
    # ---------------------------------------------------------------------------
    OPENAI_MODEL: str = "gpt-4o-mini"
    ANTHROPIC_MODEL: str = "claude-3-5-haiku-latest"
    GEMINI_MODEL: str = "gemini-2.5-flash"

    # AI Request timeout in seconds (SDK-level, the dispatcher has its own)
    AI_REQUEST_TIMEOUT: int = 30

    # ---------------------------------------------------------------------------
    # DISPATCH SETTINGS
    # ---------------------------------------------------------------------------
    # DISPATCH_TIMEOUT_MS: Upper bound for a single provider call
    DISPATCH_TIMEOUT_MS: int = 30000

    # DISPATCH_RETRY_ATTEMPTS: Calls made against one provider before moving
    # on to the next candidate. AuthError always skips the remaining calls.
    DISPATCH_RETRY_ATTEMPTS: int = 1

    # DISPATCH_BACKOFF_BASE_MS: First backoff delay, doubled on every retry
    DISPATCH_BACKOFF_BASE_MS: int = 250

    # DEFAULT_PREFERRED_PROVIDERS: Used when a caller passes no preference.
    # Empty means registration order.
    DEFAULT_PREFERRED_PROVIDERS: List[str] = []

    # ---------------------------------------------------------------------------
    # SNAPSHOT CACHE SETTINGS
    # ---------------------------------------------------------------------------
    # Freshness windows in milliseconds. Battery data goes stale faster than
    # the general snapshot.
    SNAPSHOT_FRESHNESS_MS: int = 5 * 60 * 1000  # 5 minutes
    BATTERY_FRESHNESS_MS: int = 60 * 1000
    PERFORMANCE_FRESHNESS_MS: int = 2 * 60 * 1000
    DATA_SOURCE_FRESHNESS_MS: int = 30 * 1000

    # PROCESS_TOP_N: How many top CPU processes a snapshot carries
    PROCESS_TOP_N: int = 5


# ---------------------------------------------------------------------------
# GLOBAL SETTINGS INSTANCE
# ---------------------------------------------------------------------------
# Usage: from device_insights.core.config import settings
settings = Settings()
