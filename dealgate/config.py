"""Configuration management for the brand deal gate service.

This module uses Pydantic Settings to load configuration from environment
variables. All settings are validated at startup to catch configuration
errors early; the classifier receives a Settings instance explicitly and
never reads the environment itself.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


SUPPORTED_PROVIDERS = ("gemini", "groq", "together", "huggingface")


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    API keys must be provided via environment variables or .env file.
    """

    # Text-generation provider (required: startup fails when unset)
    llm_provider: str = Field(
        ...,
        description="Text-generation provider: gemini, groq, together or huggingface"
    )
    llm_model: Optional[str] = Field(
        default=None,
        description="Model name; the provider default is used when unset"
    )
    llm_api_key: Optional[str] = Field(
        default=None,
        description="API key for the provider (optional for huggingface)"
    )

    # Classifier behaviour
    stage_timeout_seconds: float = Field(
        default=12.0,
        gt=0,
        le=60,
        description="Timeout applied to each model-backed classification stage"
    )
    prompt_char_limit: int = Field(
        default=6000,
        ge=500,
        description="Number of leading document characters sent to the model"
    )

    # Rate limiting
    classify_rate_limit: str = Field(
        default="20/minute",
        description="slowapi limit for POST /api/classify (up to two model calls each)"
    )
    trusted_proxies: str = Field(
        default="",
        description="Comma-separated proxy IPs allowed to set X-Forwarded-For"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("llm_provider")
    @classmethod
    def validate_llm_provider(cls, v: str) -> str:
        """Validate that LLM_PROVIDER names a supported provider."""
        provider = (v or "").strip().lower()
        if not provider:
            raise ValueError("LLM_PROVIDER must be set in environment variables")
        if provider not in SUPPORTED_PROVIDERS:
            raise ValueError(
                f"Unsupported LLM_PROVIDER '{provider}'. "
                f"Supported providers: {', '.join(SUPPORTED_PROVIDERS)}"
            )
        return provider

    @field_validator("llm_api_key", "llm_model")
    @classmethod
    def strip_optional(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty or whitespace-only values as unset."""
        if v is None or not v.strip():
            return None
        return v.strip()

    @property
    def trusted_proxy_list(self) -> List[str]:
        """Parsed TRUSTED_PROXIES."""
        return [ip.strip() for ip in self.trusted_proxies.split(",") if ip.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached Settings instance.

    Returns:
        Settings: Validated application settings

    Raises:
        ValueError: If environment variables are missing or invalid
    """
    return Settings()
