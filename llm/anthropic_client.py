"""Anthropic Claude LLM client implementation."""

import os
import logging
from typing import Optional, List

from .base_client import BaseLLMClient, Message, LLMResponse, GenerationConfig, LLMError

logger = logging.getLogger(__name__)


class AnthropicClient(BaseLLMClient):
    """Anthropic Claude client implementation."""

    DEFAULT_MODEL = "claude-sonnet-4-20250514"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = 15.0
    ):
        """
        Initialize Anthropic client.

        Args:
            api_key: Anthropic API key (falls back to ANTHROPIC_API_KEY env var)
            model: Model to use (default: claude-sonnet-4-20250514)
            timeout: Request timeout in seconds
        """
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self.model = model or self.DEFAULT_MODEL
        self.client = None

        if self.api_key:
            import anthropic
            self.client = anthropic.Anthropic(api_key=self.api_key, timeout=timeout, max_retries=0)
            logger.info(f"Anthropic client initialized with model: {self.model}")
        else:
            logger.warning("No Anthropic API key provided")

    def chat(
        self,
        messages: List[Message],
        config: Optional[GenerationConfig] = None
    ) -> LLMResponse:
        """Send chat completion request to Anthropic."""
        if not self.client:
            raise LLMError("Anthropic client not initialized. Check API key.")

        config = config or GenerationConfig()

        # Separate system message from conversation
        system_content = "\n".join(m.content for m in messages if m.role == "system")
        conversation_messages = [
            {"role": msg.role, "content": msg.content}
            for msg in messages
            if msg.role != "system"
        ]

        kwargs = {
            "model": self.model,
            "max_tokens": config.max_output_tokens,
            "temperature": config.temperature,
            "messages": conversation_messages,
        }
        if config.top_k is not None:
            kwargs["top_k"] = config.top_k
        if system_content:
            kwargs["system"] = system_content.strip()

        try:
            response = self.client.messages.create(**kwargs)
        except Exception as e:
            logger.error(f"Anthropic API error: {e}")
            raise LLMError(f"Anthropic API error: {e}") from e

        content = "".join(block.text for block in response.content if block.type == "text")

        usage = None
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.input_tokens,
                "completion_tokens": response.usage.output_tokens,
                "total_tokens": response.usage.input_tokens + response.usage.output_tokens,
            }

        return LLMResponse(
            content=content,
            usage=usage,
            finish_reason=response.stop_reason
        )

    def get_provider_name(self) -> str:
        """Get the provider name."""
        return "anthropic"

    def get_model_name(self) -> str:
        """Get the model name."""
        return self.model
