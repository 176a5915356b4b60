"""Application settings."""

import os
from typing import Optional
from pydantic import BaseModel


class Settings(BaseModel):
    """Application configuration settings."""

    # LLM Provider settings
    llm_provider: str = "gemini"  # "gemini", "openai" or "anthropic"
    llm_model: Optional[str] = None  # Override the provider's default model
    llm_timeout: float = 15.0

    # API Keys
    gemini_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    tmdb_api_key: Optional[str] = None
    rawg_api_key: Optional[str] = None
    serper_api_key: Optional[str] = None

    # Data adapters
    adapter_timeout: float = 8.0
    adapter_retries: int = 2  # Extra attempts after the first failure
    adapter_retry_wait: float = 0.25

    # Synthesis
    history_turns: int = 6
    min_reply_length: int = 20
    template_seed: Optional[int] = None

    # Memory settings
    memory_backend: str = "memory"  # "memory" or "sqlite"
    db_path: str = "data/conversations.db"

    # Logging
    verbose: bool = False

    def __init__(self, **data):
        # Auto-load API keys from environment if not provided
        env_keys = {
            "gemini_api_key": "GEMINI_API_KEY",
            "openai_api_key": "OPENAI_API_KEY",
            "anthropic_api_key": "ANTHROPIC_API_KEY",
            "tmdb_api_key": "TMDB_API_KEY",
            "rawg_api_key": "RAWG_API_KEY",
            "serper_api_key": "SERPER_API_KEY",
        }
        for field, env_var in env_keys.items():
            if data.get(field) is None:
                data[field] = os.environ.get(env_var)

        super().__init__(**data)

    def get_llm_api_key(self) -> Optional[str]:
        """Get the API key for the configured LLM provider."""
        if self.llm_provider == "gemini":
            return self.gemini_api_key
        elif self.llm_provider == "openai":
            return self.openai_api_key
        elif self.llm_provider == "anthropic":
            return self.anthropic_api_key
        return None
