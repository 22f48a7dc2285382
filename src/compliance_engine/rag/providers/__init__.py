"""Model provider implementations."""

from compliance_engine.rag.providers.claude import ClaudeLLM

__all__ = ["ClaudeLLM"]
