"""Claude (Anthropic) provider using raw httpx."""

import logging
from typing import Any

import httpx
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from compliance_engine.config import settings
from compliance_engine.rag.exceptions import (
    LLMAuthenticationError,
    LLMConnectionError,
    LLMRateLimitError,
    LLMResponseError,
    is_retryable,
)
from compliance_engine.rag.llm import BaseLLM

logger = logging.getLogger(__name__)

ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
MAX_RETRY_WAIT = 30.0

_backoff = wait_exponential(multiplier=1, min=2, max=MAX_RETRY_WAIT)


def _wait_before_retry(retry_state: RetryCallState) -> float:
    """Wait the server's retry-after on a rate limit, else back off."""
    error = retry_state.outcome.exception() if retry_state.outcome else None
    if isinstance(error, LLMRateLimitError) and error.retry_after is not None:
        return min(error.retry_after, MAX_RETRY_WAIT)
    return _backoff(retry_state)


class ClaudeLLM(BaseLLM):
    """Claude client using the Anthropic Messages API.

    Connection errors, 5xx and 429 responses are retried, waiting the
    server's retry-after when given; everything else propagates.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float = 60.0,
        max_tokens: int = 1024,
    ):
        """Initialize Claude client.

        Args:
            api_key: Anthropic API key (defaults to settings.ANTHROPIC_API_KEY)
            model: Model to use (defaults to settings.ANTHROPIC_MODEL)
            timeout: Request timeout in seconds
            max_tokens: Default max tokens for responses
        """
        self.api_key = api_key or settings.ANTHROPIC_API_KEY
        self.model = model or settings.ANTHROPIC_MODEL
        self.timeout = timeout
        self.max_tokens = max_tokens

        if not self.api_key:
            logger.warning("Claude API key not configured")

    @property
    def provider_name(self) -> str:
        return "claude"

    async def is_available(self) -> bool:
        """Check if Claude is configured (API key exists)."""
        return bool(self.api_key)

    def _get_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    @retry(
        stop=stop_after_attempt(3),
        wait=_wait_before_retry,
        retry=retry_if_exception(is_retryable),
        reraise=True,
    )
    async def generate(
        self, prompt: str, system: str | None = None, **kwargs: Any
    ) -> str:
        """Generate text from a prompt using Claude.

        Args:
            prompt: User message
            system: Optional system prompt
            **kwargs: Additional parameters (max_tokens, temperature)

        Returns:
            Concatenated text blocks of the response

        Raises:
            LLMAuthenticationError: If API key is missing or invalid
            LLMRateLimitError: If rate limit is exceeded
            LLMConnectionError: If connection fails
            LLMResponseError: If the response carries no text
        """
        if not self.api_key:
            raise LLMAuthenticationError(
                "API key not configured", provider=self.provider_name
            )

        body: dict[str, Any] = {
            "model": self.model,
            "max_tokens": kwargs.get("max_tokens", self.max_tokens),
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            body["system"] = system
        if "temperature" in kwargs:
            body["temperature"] = kwargs["temperature"]

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(
                    ANTHROPIC_API_URL,
                    headers=self._get_headers(),
                    json=body,
                )
            except httpx.ConnectError as e:
                raise LLMConnectionError(
                    f"Failed to connect: {e}", provider=self.provider_name
                ) from e
            except httpx.TimeoutException as e:
                raise LLMConnectionError(
                    f"Request timed out: {e}", provider=self.provider_name
                ) from e

        if response.status_code == 401:
            raise LLMAuthenticationError("Invalid API key", provider=self.provider_name)
        if response.status_code == 429:
            retry_after = response.headers.get("retry-after")
            raise LLMRateLimitError(
                "Rate limit exceeded",
                provider=self.provider_name,
                retry_after=float(retry_after) if retry_after else None,
            )
        if response.status_code >= 500:
            raise LLMConnectionError(
                f"Server error {response.status_code}", provider=self.provider_name
            )

        response.raise_for_status()
        data = response.json()

        text = "".join(
            block.get("text", "")
            for block in data.get("content", [])
            if block.get("type") == "text"
        )
        if not text.strip():
            raise LLMResponseError("Empty completion", provider=self.provider_name)
        return text

    async def check_health(self) -> bool:
        """Verify the API key with a one-token request.

        400 still counts as reachable.
        """
        if not self.api_key:
            logger.warning("Claude health check: No API key configured")
            return False

        try:
            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.post(
                    ANTHROPIC_API_URL,
                    headers=self._get_headers(),
                    json={
                        "model": self.model,
                        "max_tokens": 1,
                        "messages": [{"role": "user", "content": "Hi"}],
                    },
                )
                logger.info(f"Claude health check status: {response.status_code}")
                return response.status_code in (200, 400)
        except httpx.HTTPError as e:
            logger.error(f"Claude health check failed: {type(e).__name__}: {e}")
            return False
