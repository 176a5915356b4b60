"""Base LLM client interface."""

from abc import ABC, abstractmethod
from typing import Optional, List, Dict
from pydantic import BaseModel


class LLMError(RuntimeError):
    """Raised when a completion cannot be produced."""


class GenerationConfig(BaseModel):
    """Sampling options for a single completion."""
    temperature: float = 0.8
    top_k: Optional[int] = 40
    top_p: Optional[float] = 0.95
    max_output_tokens: int = 300


class Message(BaseModel):
    """Chat message."""
    role: str  # "system", "user", "assistant"
    content: str


class LLMResponse(BaseModel):
    """Response from LLM."""
    content: str
    usage: Optional[Dict[str, int]] = None
    finish_reason: Optional[str] = None


class BaseLLMClient(ABC):
    """Abstract base class for LLM clients."""

    @abstractmethod
    def chat(
        self,
        messages: List[Message],
        config: Optional[GenerationConfig] = None
    ) -> LLMResponse:
        """
        Send chat completion request.

        Args:
            messages: List of messages in conversation
            config: Sampling options (provider defaults when omitted)

        Returns:
            LLMResponse with content

        Raises:
            LLMError: On missing credentials, transport errors or empty output
        """
        pass

    @abstractmethod
    def get_provider_name(self) -> str:
        """Get the name of the LLM provider."""
        pass

    @abstractmethod
    def get_model_name(self) -> str:
        """Get the name of the model being used."""
        pass

    def complete(
        self,
        prompt: str,
        config: Optional[GenerationConfig] = None
    ) -> str:
        """
        Run a single-prompt completion.

        Args:
            prompt: Full prompt text
            config: Sampling options

        Returns:
            Generated text

        Raises:
            LLMError: If the provider fails or returns no text
        """
        response = self.chat([Message(role="user", content=prompt)], config=config)
        if not response.content or not response.content.strip():
            raise LLMError(f"{self.get_provider_name()} returned an empty completion")
        return response.content
