"""Generative model clients."""

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from compliance_engine.config import settings
from compliance_engine.rag.exceptions import LLMConnectionError, is_retryable

logger = logging.getLogger(__name__)


class BaseLLM(ABC):
    """Base class for model providers.

    Providers only need to implement ``generate``; ``complete`` is the
    entry point used by the answer classifier.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'ollama', 'claude')."""
        pass

    @abstractmethod
    async def generate(
        self, prompt: str, system: str | None = None, **kwargs: Any
    ) -> str:
        """Generate text from a user prompt and optional system prompt."""
        pass

    @abstractmethod
    async def check_health(self) -> bool:
        """Check if the provider is reachable."""
        pass

    async def complete(self, system_prompt: str, user_prompt: str, **kwargs: Any) -> str:
        """Run one completion with a fixed system prompt."""
        return await self.generate(user_prompt, system=system_prompt, **kwargs)

    async def is_available(self) -> bool:
        """Lightweight check if provider is configured.

        This checks configuration (e.g., API key exists) without making
        network requests. Override in subclasses as needed.
        """
        return True


class OllamaLLM(BaseLLM):
    """Ollama client for self-hosted models."""

    def __init__(
        self,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float = 120.0,
    ):
        self.base_url = (base_url or settings.OLLAMA_BASE_URL).rstrip("/")
        self.model = model or settings.OLLAMA_LLM_MODEL
        self.timeout = timeout

    @property
    def provider_name(self) -> str:
        return "ollama"

    async def is_available(self) -> bool:
        """Check if Ollama is configured (URL exists)."""
        return bool(self.base_url)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception(is_retryable),
        reraise=True,
    )
    async def generate(
        self, prompt: str, system: str | None = None, **kwargs: Any
    ) -> str:
        """Generate text using Ollama's /api/generate endpoint."""
        payload: dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            **kwargs,
        }
        if system:
            payload["system"] = system

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(f"{self.base_url}/api/generate", json=payload)
            except (httpx.ConnectError, httpx.TimeoutException) as e:
                raise LLMConnectionError(
                    f"Failed to reach Ollama: {e}", provider=self.provider_name
                ) from e
            response.raise_for_status()
            data = response.json()
            return data.get("response", "")

    async def check_health(self) -> bool:
        """Check if Ollama is accessible."""
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                response = await client.get(f"{self.base_url}/api/tags")
                return response.status_code == 200
        except Exception as e:
            logger.error(f"Ollama health check failed: {e}")
            return False
