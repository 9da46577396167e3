"""Configuration management for PRD Engine."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # Sandboxed environments may not expose .env; rely on the process env
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase configuration (required)
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(..., description="Supabase service role key")

    # Anthropic configuration (required)
    ANTHROPIC_API_KEY: str = Field(..., description="Anthropic API key")
    ANTHROPIC_TIMEOUT_SECONDS: float = Field(
        default=120.0, description="Per-request timeout for the Anthropic client"
    )

    # Environment
    PRD_ENGINE_ENV: str = Field(default="dev", description="Environment: dev, staging, prod")

    # Prompt templates
    PROMPTS_DIR: str | None = Field(
        default=None, description="Directory holding <stage>.txt templates (defaults to packaged prompts)"
    )

    # Intro stage
    INTRO_MODEL: str = Field(default="claude-sonnet-4-20250514", description="Model for PRD intro")
    INTRO_MAX_TOKENS: int = Field(default=1000, description="Max output tokens for PRD intro")
    INTRO_TEMPERATURE: float = Field(default=0.2, description="Temperature for PRD intro")

    # Section (page requirements) stage
    SECTION_MODEL: str = Field(
        default="claude-sonnet-4-20250514", description="Model for page requirements"
    )
    SECTION_MAX_TOKENS: int = Field(default=4000, description="Max output tokens for page requirements")
    SECTION_TEMPERATURE: float = Field(default=0.7, description="Temperature for page requirements")

    # Implementation plan stage
    IMPLEMENTATION_MODEL: str = Field(
        default="claude-sonnet-4-20250514", description="Model for implementation plan"
    )
    IMPLEMENTATION_MAX_TOKENS: int = Field(
        default=4000, description="Max output tokens for implementation plan"
    )
    IMPLEMENTATION_TEMPERATURE: float = Field(
        default=0.2, description="Temperature for implementation plan"
    )

    # Retry policy for completion calls
    LLM_MAX_ATTEMPTS: int = Field(default=3, ge=1, description="Max attempts per completion call")
    LLM_RETRY_BASE_DELAY: float = Field(
        default=1.0, ge=0, description="Base backoff delay in seconds (doubles per attempt)"
    )
    LLM_RETRY_JITTER: float = Field(
        default=0.0, ge=0, description="Max fractional jitter added to each backoff delay"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If required environment variables are missing
    """
    return Settings()
