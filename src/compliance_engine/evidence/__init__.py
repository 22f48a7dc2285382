"""Evidence retrieval, deduplication and prompt context assembly."""

from compliance_engine.evidence.context import build_context, provenance_header
from compliance_engine.evidence.exceptions import (
    EmbeddingSyncError,
    EmptyContextError,
    EvidenceError,
    EvidenceSearchError,
)
from compliance_engine.evidence.models import EvidenceChunk, EvidenceSourceType, Source
from compliance_engine.evidence.search import (
    EmbeddingSync,
    NullEmbeddingSync,
    SimilaritySearch,
    UpstashVectorSearch,
    WebhookEmbeddingSync,
    get_embedding_sync,
    get_similarity_search,
)
from compliance_engine.evidence.sources import deduplicate_sources, derive_source_name

__all__ = [
    # Models
    "EvidenceChunk",
    "EvidenceSourceType",
    "Source",
    # Pure helpers
    "build_context",
    "provenance_header",
    "deduplicate_sources",
    "derive_source_name",
    # Collaborators
    "SimilaritySearch",
    "EmbeddingSync",
    "UpstashVectorSearch",
    "WebhookEmbeddingSync",
    "NullEmbeddingSync",
    "get_similarity_search",
    "get_embedding_sync",
    # Exceptions
    "EvidenceError",
    "EvidenceSearchError",
    "EmbeddingSyncError",
    "EmptyContextError",
]
