"""Exceptions raised while asking a model to classify an answer.

Each error says whether repeating the same call can succeed; providers
retry only those.
"""


class LLMError(Exception):
    """A model call failed."""

    retryable = False

    def __init__(self, message: str, provider: str = "unknown"):
        self.provider = provider
        super().__init__(f"{provider}: {message}")


class LLMConnectionError(LLMError):
    """Network failure, timeout or server-side error."""

    retryable = True


class LLMRateLimitError(LLMError):
    retryable = True

    def __init__(self, message: str, provider: str, retry_after: float | None = None):
        self.retry_after = retry_after
        super().__init__(message, provider)


class LLMAuthenticationError(LLMError):
    """Missing or rejected credentials."""


class LLMResponseError(LLMError):
    """The model answered with nothing usable."""


class LLMProviderNotConfiguredError(LLMError):
    """LLM_PROVIDER names an unknown provider, or the chosen one is unusable."""


def is_retryable(error: BaseException) -> bool:
    return isinstance(error, LLMError) and error.retryable
