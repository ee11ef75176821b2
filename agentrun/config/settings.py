"""
Global settings from environment variables.
"""

from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class AgentrunSettings(BaseSettings):
    """
    Configuration loaded from environment variables.

    Environment variables are prefixed with AGENTRUN_
    Example: AGENTRUN_LOG_LEVEL=DEBUG, AGENTRUN_REDIS_URL=redis://localhost:6379/0

    Settings are read at composition points (CLI, API factory, provider
    construction). The runner loop only sees an explicit ExecutionConfig.
    """

    model_config = SettingsConfigDict(
        env_prefix="AGENTRUN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )

    # Core settings
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_json: bool = False

    # Default agent used by the CLI server
    default_model: str = "gpt-4o-mini"
    default_provider: Literal["openai", "anthropic"] = "openai"
    default_agent_name: str = "assistant"
    default_instructions: str = "You are a helpful assistant."

    # Session storage
    redis_url: str | None = None
    session_ttl: int | None = 3600

    # Model Provider Settings
    # OpenAI
    openai_api_key: SecretStr | None = None
    openai_base_url: str | None = None

    # Anthropic
    anthropic_api_key: SecretStr | None = None
    anthropic_base_url: str | None = None

    # API server
    api_host: str = "0.0.0.0"
    api_port: int = 8900


# Global settings instance (singleton)
settings = AgentrunSettings()


__all__ = ["AgentrunSettings", "settings"]
