"""
ProofChain - Shared Configuration
Centralized configuration management using pydantic-settings
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini generate-content backend settings."""

    model_config = SettingsConfigDict(env_prefix="GEMINI_")

    api_key: str | None = Field(default=None, description="Gemini API key")
    endpoint: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/models/gemini-2.5-flash:generateContent",
        description="generateContent endpoint",
    )
    temperature: float = Field(default=0.7, description="Default sampling temperature")


class DeepSeekSettings(BaseSettings):
    """DeepSeek chat-completion backend settings."""

    model_config = SettingsConfigDict(env_prefix="DEEPSEEK_")

    api_key: str | None = Field(default=None, description="DeepSeek API key")
    endpoint: str = Field(
        default="https://api.deepseek.com/v1/chat/completions",
        description="Chat completions endpoint",
    )
    model: str = Field(default="deepseek-reasoner", description="Model name sent in the payload")
    temperature: float = Field(default=0.7, description="Default sampling temperature")


class LLMSettings(BaseSettings):
    """Settings shared by every model backend."""

    model_config = SettingsConfigDict(env_prefix="LLM_")

    default_model: str = Field(default="gemini", description="Backend used when a request names none")

    # Timeout settings
    timeout_seconds: float = Field(default=120.0, description="Per-call request timeout")


class RosterSettings(BaseSettings):
    """Personnel roster source settings."""

    model_config = SettingsConfigDict(env_prefix="PERSONNEL_")

    api_url: str | None = Field(default=None, description="Roster source URL")
    cache_ttl_seconds: float = Field(default=30 * 60, description="Roster cache time-to-live")
    timeout_seconds: float = Field(default=30.0, description="Roster fetch timeout")


class WebhookSettings(BaseSettings):
    """Remote notification webhook settings."""

    model_config = SettingsConfigDict(env_prefix="REMOTE_WEBHOOK_")

    url: str | None = Field(default=None, description="Webhook URL (disabled when unset)")
    utc_offset_hours: int = Field(default=8, description="UTC offset used to render timestamps")
    timeout_seconds: float = Field(default=10.0, description="Webhook delivery timeout")


class ServerSettings(BaseSettings):
    """MCP Server settings."""

    model_config = SettingsConfigDict(env_prefix="SERVER_")

    name: str = Field(default="proofchain", description="Server name")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "console"] = "console"


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # Sub-settings
    gemini: GeminiSettings = Field(default_factory=GeminiSettings)
    deepseek: DeepSeekSettings = Field(default_factory=DeepSeekSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    roster: RosterSettings = Field(default_factory=RosterSettings)
    webhook: WebhookSettings = Field(default_factory=WebhookSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Export settings instance
settings = get_settings()
