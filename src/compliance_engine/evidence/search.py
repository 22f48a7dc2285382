"""Evidence retrieval collaborators.

The engine only depends on the ``SimilaritySearch`` and ``EmbeddingSync``
protocols. Concrete clients talk to Upstash Vector (which embeds the query
server-side) and to an HTTP sync webhook.
"""

import asyncio
import logging
from typing import Any, Protocol

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from compliance_engine.config import settings
from compliance_engine.evidence.exceptions import EmbeddingSyncError, EvidenceSearchError
from compliance_engine.evidence.models import EvidenceChunk

logger = logging.getLogger(__name__)


class SimilaritySearch(Protocol):
    """Ranked evidence lookup scoped to one organization."""

    async def search(
        self, query: str, organization_id: str, top_k: int | None = None
    ) -> list[EvidenceChunk]: ...

    async def search_batch(
        self, queries: list[str], organization_id: str
    ) -> list[list[EvidenceChunk]]: ...


class EmbeddingSync(Protocol):
    """Brings an organization's embeddings up to date."""

    async def sync(self, organization_id: str) -> None: ...


class UpstashVectorSearch:
    """Similarity search over the Upstash Vector REST API."""

    def __init__(
        self,
        url: str | None = None,
        token: str | None = None,
        top_k: int | None = None,
        min_score: float | None = None,
        timeout: float | None = None,
    ):
        self.url = (url or settings.UPSTASH_VECTOR_REST_URL).rstrip("/")
        self.token = token or settings.UPSTASH_VECTOR_REST_TOKEN
        self.top_k = top_k or settings.VECTOR_TOP_K
        self.min_score = settings.VECTOR_MIN_SCORE if min_score is None else min_score
        self.timeout = timeout or settings.VECTOR_TIMEOUT

    def _get_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def _organization_filter(organization_id: str) -> str:
        escaped = organization_id.replace('"', '\\"')
        return f'organizationId = "{escaped}"'

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _query(self, query: str, organization_id: str, top_k: int) -> list[dict[str, Any]]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.url}/query-data",
                headers=self._get_headers(),
                json={
                    "data": query,
                    "topK": top_k,
                    "includeMetadata": True,
                    "filter": self._organization_filter(organization_id),
                },
            )
            response.raise_for_status()
            payload = response.json()

        if "error" in payload:
            raise EvidenceSearchError(f"Vector query failed: {payload['error']}")
        return payload.get("result") or []

    async def search(
        self, query: str, organization_id: str, top_k: int | None = None
    ) -> list[EvidenceChunk]:
        """Return chunks above the score threshold, best first."""
        if not query or not query.strip():
            return []
        if not self.url or not self.token:
            logger.warning("Vector search is not configured, returning empty results")
            return []

        try:
            hits = await self._query(query, organization_id, top_k or self.top_k)
        except httpx.HTTPError as e:
            raise EvidenceSearchError(f"Vector query failed: {e}") from e

        chunks = [
            EvidenceChunk.from_vector_metadata(
                score=hit.get("score", 0.0),
                metadata=hit.get("metadata") or {},
                vector_id=str(hit.get("id", "")),
            )
            for hit in hits
            if hit.get("score", 0.0) >= self.min_score
        ]
        chunks.sort(key=lambda c: c.relevance_score, reverse=True)

        logger.debug(
            f"Vector search for org {organization_id}: "
            f"{len(hits)} hits, {len(chunks)} above {self.min_score}"
        )
        return chunks

    async def search_batch(
        self, queries: list[str], organization_id: str
    ) -> list[list[EvidenceChunk]]:
        """Run several searches concurrently, preserving query order."""
        return list(
            await asyncio.gather(*(self.search(q, organization_id) for q in queries))
        )


class WebhookEmbeddingSync:
    """Triggers the embedding sync job over HTTP."""

    def __init__(self, url: str | None = None, timeout: float | None = None):
        self.url = url or settings.EMBEDDING_SYNC_URL
        self.timeout = timeout or settings.EMBEDDING_SYNC_TIMEOUT

    async def sync(self, organization_id: str) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.url, json={"organizationId": organization_id}
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise EmbeddingSyncError(f"Embedding sync failed: {e}") from e
        logger.info(f"Embeddings synced for organization {organization_id}")


class NullEmbeddingSync:
    """Used when no sync endpoint is configured."""

    async def sync(self, organization_id: str) -> None:
        logger.debug(f"Embedding sync disabled, skipping org {organization_id}")


def get_similarity_search() -> SimilaritySearch:
    """Get the configured similarity search client."""
    return UpstashVectorSearch()


def get_embedding_sync() -> EmbeddingSync:
    """Get the configured embedding sync client."""
    if settings.EMBEDDING_SYNC_URL:
        return WebhookEmbeddingSync()
    return NullEmbeddingSync()
