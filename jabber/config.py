"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Jabber configuration. All values come from environment variables."""

    # HTTP server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=10000)

    # Chat completion
    chat_provider: str = Field(default="openai")
    openai_api_key: str = Field(default="")
    openai_chat_model: str = Field(default="gpt-4o-mini")
    anthropic_api_key: str = Field(default="")
    claude_model: str = Field(default="claude-haiku-4-5-20251001")
    chat_temperature: float = Field(default=0.2)
    chat_max_tokens: int = Field(default=600)
    assistant_name: str = Field(default="Jabber")

    # Image generation
    image_model: str = Field(default="gpt-image-1")
    image_default_size: str = Field(default="1024x1024")

    # Web search (DuckDuckGo Instant Answer, no key required)
    search_api_url: str = Field(default="https://api.duckduckgo.com/")
    search_max_results: int = Field(default=5)

    # Upstream calls
    upstream_timeout_seconds: float = Field(default=30.0)

    # Conversation memory
    context_window: int = Field(default=8)
    conversation_max_messages: int = Field(default=100)

    # Remember / schedule ledgers
    ledger_max_entries: int = Field(default=200)
    prompt_note_count: int = Field(default=6)
    ledger_db_path: Path | None = Field(default=None)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    def chat_api_key(self) -> str:
        """Return the API key for the configured chat provider."""
        if self.chat_provider.strip().lower() == "anthropic":
            return self.anthropic_api_key
        return self.openai_api_key


settings = Settings()
