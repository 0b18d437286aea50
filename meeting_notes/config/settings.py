"""
Application Configuration using Pydantic Settings

This module centralizes all configuration for the meeting notes pipeline.
Configuration values are loaded from environment variables with sensible defaults.

=============================================================================
CONFIGURATION HIERARCHY (lowest to highest priority):
=============================================================================

    1. Default values in this file (lowest priority)
    2. .env file (if present in the working directory)
    3. Environment variables (highest priority)

Example:
    # In .env file:
    OPENAI_API_KEY=sk-your-key-here
    OPENAI_MODEL=gpt-4o-mini
    AI_REQUEST_TIMEOUT_MS=180000

    # OR via environment:
    export OPENAI_API_KEY=sk-your-key-here

=============================================================================
IMPORTANT SETTINGS FOR NEW DEVELOPERS:
=============================================================================

REQUIRED:
    - OPENAI_API_KEY: Your OpenAI API key (get from platform.openai.com)

OPTIONAL (have defaults):
    - OPENAI_MODEL: Chat model used by every pipeline stage
    - AI_REQUEST_TIMEOUT_MS: Timeout shared by every model request
    - CHUNK_SIZE / CHUNK_OVERLAP: Chunking budget in estimated tokens
    - GENERATE_PRD: Produce a requirements document when deliverables exist
    - LOG_LEVEL / LOG_FORMAT: Logging verbosity and output format

=============================================================================
"""

import logging
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT_MS = 120_000

# Anything below one second is almost certainly a value given in seconds
MIN_REQUEST_TIMEOUT_MS = 1_000


class Settings(BaseSettings):
    """
    Pipeline settings loaded from environment variables.

    All settings have reasonable defaults for local development.
    Only OPENAI_API_KEY is truly required for model calls to succeed.

    USAGE:
    ------
        from meeting_notes.config import get_settings

        settings = get_settings()
        print(settings.openai_model)  # "gpt-4o"
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # =========================================================================
    # Model Provider Settings
    # =========================================================================

    llm_provider: str = Field(
        default="openai",
        description="Provider name reported in error context and logs",
    )

    openai_api_key: str = Field(
        default="",
        description="OpenAI API key for every pipeline stage. Get from platform.openai.com",
    )

    openai_model: str = Field(
        default="gpt-4o",
        description="Chat model used for extraction, refinement, PRD generation and editing",
    )

    openai_base_url: Optional[str] = Field(
        default=None,
        description="Optional OpenAI-compatible endpoint (proxy or gateway)",
    )

    ai_request_timeout_ms: int = Field(
        default=DEFAULT_REQUEST_TIMEOUT_MS,
        description=(
            "Timeout in milliseconds applied to each model request. "
            "Values below 1000 fall back to the default."
        ),
    )

    # =========================================================================
    # Token Budgets (per stage)
    # =========================================================================

    extraction_max_tokens: int = Field(default=4000, description="Output budget per chunk extraction")
    refinement_max_tokens: int = Field(default=8000, description="Output budget for consolidation")
    generation_max_tokens: int = Field(default=4000, description="Output budget for PRD generation")
    editing_max_tokens: int = Field(default=8000, description="Output budget for the editing pass")

    # =========================================================================
    # Chunking Settings
    # =========================================================================
    # Sizes are in estimated tokens (1 token ~= 4 characters)

    chunk_size: int = Field(
        default=4000,
        gt=0,
        description="Maximum estimated tokens per transcript chunk",
    )

    chunk_overlap: int = Field(
        default=200,
        ge=0,
        description="Estimated tokens of read-only lookahead attached to each chunk",
    )

    preserve_speaker_context: bool = Field(
        default=True,
        description="Carry the last active speaker across chunk boundaries",
    )

    inter_chunk_delay_ms: int = Field(
        default=100,
        ge=0,
        description="Pause between chunk extraction requests",
    )

    # =========================================================================
    # Output Settings
    # =========================================================================

    generate_prd: bool = Field(
        default=True,
        description="Generate a PRD when the meeting discussed deliverables",
    )

    # =========================================================================
    # Logging / Progress Settings
    # =========================================================================

    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )

    log_format: Literal["text", "json"] = Field(
        default="text",
        description="Log format: json (for log shipping) or text (for development)",
    )

    verbose: bool = Field(
        default=False,
        description="Print debug lines from every pipeline stage",
    )

    silent: bool = Field(
        default=False,
        description="Suppress all progress output",
    )

    @field_validator("ai_request_timeout_ms", mode="before")
    @classmethod
    def _fallback_timeout(cls, value: object) -> int:
        """Reject timeouts that are non-numeric, non-positive or sub-second."""
        try:
            parsed = int(float(value))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            logger.warning(f"Invalid AI_REQUEST_TIMEOUT_MS={value!r}, using default")
            return DEFAULT_REQUEST_TIMEOUT_MS

        if parsed < MIN_REQUEST_TIMEOUT_MS:
            logger.warning(
                f"AI_REQUEST_TIMEOUT_MS={parsed} is below {MIN_REQUEST_TIMEOUT_MS}ms, using default"
            )
            return DEFAULT_REQUEST_TIMEOUT_MS

        return parsed


# =============================================================================
# SINGLETON PATTERN FOR SETTINGS
# =============================================================================
# Settings are loaded once per process; tests build Settings(...) directly
# and inject them instead of touching the cache.

@lru_cache()
def get_settings() -> Settings:
    """
    Get the application settings (singleton).

    Returns:
        Settings: The application settings object
    """
    logger.info("Loading application settings from environment")
    return Settings()
