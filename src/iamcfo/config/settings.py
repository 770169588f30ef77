"""Configuration settings for I AM CFO."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class FlatSettings(BaseSettings):
    """Flat settings read from environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Data store (Supabase REST + Storage)
    supabase_url: str = Field(..., validation_alias="SUPABASE_URL")
    supabase_service_key: SecretStr = Field(
        ..., validation_alias="SUPABASE_SERVICE_ROLE_KEY"
    )
    supabase_timeout: float = Field(default=30.0, validation_alias="SUPABASE_TIMEOUT")
    supabase_max_retries: int = Field(default=3, validation_alias="SUPABASE_MAX_RETRIES")
    fetch_limit: int = Field(default=200, validation_alias="SUPABASE_FETCH_LIMIT")

    # Production photos
    photo_bucket: str = Field(
        default="production-photos", validation_alias="PRODUCTION_PHOTO_BUCKET"
    )
    signed_url_expiry: int = Field(
        default=120, validation_alias="SIGNED_URL_EXPIRY_SECONDS"
    )

    # LLM
    openai_api_key: SecretStr = Field(..., validation_alias="OPENAI_API_KEY")
    gpt_model: str = Field(default="gpt-4o", validation_alias="GPT_MODEL")
    llm_temperature: float = Field(default=0.3, validation_alias="LLM_TEMPERATURE")
    llm_max_tokens: int = Field(default=500, validation_alias="LLM_MAX_TOKENS")
    llm_final_max_tokens: int = Field(
        default=800, validation_alias="LLM_FINAL_MAX_TOKENS"
    )

    # Local durable queue
    data_dir: Path = Field(
        default=Path.home() / ".iamcfo", validation_alias="IAMCFO_DATA_DIR"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="LOG_FORMAT"
    )


@lru_cache
def get_settings() -> FlatSettings:
    """Get cached settings instance."""
    return FlatSettings()
