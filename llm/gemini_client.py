"""Google Gemini client over the generateContent REST endpoint."""

import os
import logging
from typing import Optional, List

import requests

from .base_client import BaseLLMClient, Message, LLMResponse, GenerationConfig, LLMError

logger = logging.getLogger(__name__)


class GeminiClient(BaseLLMClient):
    """Gemini client implementation."""

    DEFAULT_MODEL = "gemini-1.5-flash"
    BASE_URL = "https://generativelanguage.googleapis.com/v1/models"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = 15.0
    ):
        """
        Initialize Gemini client.

        Args:
            api_key: Gemini API key (falls back to GEMINI_API_KEY env var)
            model: Model to use (default: gemini-1.5-flash)
            timeout: Request timeout in seconds
        """
        self.api_key = api_key or os.environ.get("GEMINI_API_KEY")
        self.model = model or self.DEFAULT_MODEL
        self.timeout = timeout

        if self.api_key:
            logger.info(f"Gemini client initialized with model: {self.model}")
        else:
            logger.warning("No Gemini API key provided")

    def chat(
        self,
        messages: List[Message],
        config: Optional[GenerationConfig] = None
    ) -> LLMResponse:
        """Send a generateContent request to Gemini."""
        if not self.api_key:
            raise LLMError("Gemini client not initialized. Check API key.")

        config = config or GenerationConfig()
        payload = {
            "contents": self._to_contents(messages),
            "generationConfig": self._to_generation_config(config),
        }

        url = f"{self.BASE_URL}/{self.model}:generateContent"
        try:
            response = requests.post(
                url,
                params={"key": self.api_key},
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout
            )
        except requests.exceptions.Timeout as e:
            raise LLMError(f"Gemini request timeout after {self.timeout}s") from e
        except requests.exceptions.RequestException as e:
            raise LLMError(f"Gemini request failed: {e}") from e

        if response.status_code != 200:
            logger.error(f"Gemini API error: {response.status_code}")
            raise LLMError(f"Gemini API returned status {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise LLMError("Gemini API returned invalid JSON") from e

        candidates = data.get("candidates") or []
        if not candidates:
            raise LLMError("Gemini API returned no candidates")

        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts)
        if not text.strip():
            raise LLMError("Gemini API returned an empty candidate")

        usage = None
        meta = data.get("usageMetadata")
        if meta:
            usage = {
                "prompt_tokens": meta.get("promptTokenCount", 0),
                "completion_tokens": meta.get("candidatesTokenCount", 0),
                "total_tokens": meta.get("totalTokenCount", 0),
            }

        return LLMResponse(
            content=text,
            usage=usage,
            finish_reason=candidate.get("finishReason")
        )

    @staticmethod
    def _to_contents(messages: List[Message]) -> list:
        """Gemini has no system role on v1; fold system text into the first user turn."""
        system_text = "\n".join(m.content for m in messages if m.role == "system")
        contents = []
        for msg in messages:
            if msg.role == "system":
                continue
            role = "model" if msg.role == "assistant" else "user"
            contents.append({"role": role, "parts": [{"text": msg.content}]})

        if system_text:
            if contents and contents[0]["role"] == "user":
                first = contents[0]["parts"][0]
                first["text"] = f"{system_text}\n\n{first['text']}"
            else:
                contents.insert(0, {"role": "user", "parts": [{"text": system_text}]})
        return contents

    @staticmethod
    def _to_generation_config(config: GenerationConfig) -> dict:
        generation_config = {
            "temperature": config.temperature,
            "maxOutputTokens": config.max_output_tokens,
        }
        if config.top_k is not None:
            generation_config["topK"] = config.top_k
        if config.top_p is not None:
            generation_config["topP"] = config.top_p
        return generation_config

    def get_provider_name(self) -> str:
        """Get the provider name."""
        return "gemini"

    def get_model_name(self) -> str:
        """Get the model name."""
        return self.model
