"""LLM client abstraction layer."""

from .base_client import BaseLLMClient, Message, LLMResponse, GenerationConfig, LLMError
from .factory import create_llm_client, LLMProvider

__all__ = [
    "BaseLLMClient",
    "Message",
    "LLMResponse",
    "GenerationConfig",
    "LLMError",
    "create_llm_client",
    "LLMProvider",
]
