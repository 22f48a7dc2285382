"""Model clients used to classify SOA answers."""

from compliance_engine.rag.exceptions import (
    LLMAuthenticationError,
    LLMConnectionError,
    LLMError,
    LLMProviderNotConfiguredError,
    LLMRateLimitError,
    LLMResponseError,
)
from compliance_engine.rag.factory import PROVIDERS, get_llm
from compliance_engine.rag.llm import BaseLLM, OllamaLLM
from compliance_engine.rag.providers.claude import ClaudeLLM

__all__ = [
    "BaseLLM",
    "ClaudeLLM",
    "OllamaLLM",
    "PROVIDERS",
    "get_llm",
    "LLMError",
    "LLMConnectionError",
    "LLMAuthenticationError",
    "LLMRateLimitError",
    "LLMResponseError",
    "LLMProviderNotConfiguredError",
]
