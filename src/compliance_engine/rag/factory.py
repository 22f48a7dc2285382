"""Picks the model that classifies SOA answers."""

import logging

from compliance_engine.config import settings
from compliance_engine.rag.exceptions import LLMProviderNotConfiguredError
from compliance_engine.rag.llm import BaseLLM, OllamaLLM
from compliance_engine.rag.providers.claude import ClaudeLLM

logger = logging.getLogger(__name__)

PROVIDERS = ("claude", "ollama")


def resolve_provider_name(configured: str | None) -> str:
    """Name of the provider to use.

    An empty setting means Claude when an Anthropic key is present,
    otherwise the local Ollama server.
    """
    name = (configured or "").strip().lower()
    if not name:
        return "claude" if settings.ANTHROPIC_API_KEY else "ollama"
    if name not in PROVIDERS:
        raise LLMProviderNotConfiguredError(
            f"Unknown provider '{configured}'. Expected one of: {', '.join(PROVIDERS)}",
            provider=name,
        )
    return name


async def get_llm(provider: str | None = None) -> BaseLLM:
    """Return the configured model client.

    A configured provider that is unusable is an error; answers are never
    silently produced by a different model than the one configured.

    Raises:
        LLMProviderNotConfiguredError: If the provider is unknown or unusable
    """
    name = resolve_provider_name(provider or settings.LLM_PROVIDER)
    llm: BaseLLM = ClaudeLLM() if name == "claude" else OllamaLLM()

    if not await llm.is_available():
        raise LLMProviderNotConfiguredError(
            "Provider is not usable. Set ANTHROPIC_API_KEY for Claude "
            "or OLLAMA_BASE_URL for Ollama.",
            provider=name,
        )

    logger.info(f"Using LLM provider: {name} ({llm.model})")
    return llm
