"""Evidence models shared by retrieval, deduplication and prompting."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class EvidenceSourceType(str, Enum):
    """Kinds of organizational content indexed for retrieval."""

    POLICY = "policy"
    CONTEXT = "context"
    DOCUMENT_HUB = "document_hub"
    ATTACHMENT = "attachment"
    MANUAL_ANSWER = "manual_answer"
    KNOWLEDGE_BASE_DOCUMENT = "knowledge_base_document"


@dataclass
class EvidenceChunk:
    """A scored snippet returned by similarity search.

    Only lives for one engine invocation.
    """

    source_type: str
    source_id: str
    content: str
    relevance_score: float  # Higher is better
    source_label: str | None = None

    # Provenance fields carried in the vector metadata
    policy_name: str | None = None
    context_question: str | None = None
    document_name: str | None = None
    manual_answer_question: str | None = None

    @classmethod
    def from_vector_metadata(
        cls, score: float, metadata: dict[str, Any], vector_id: str = ""
    ) -> "EvidenceChunk":
        """Build a chunk from a vector store hit."""
        return cls(
            source_type=metadata.get("sourceType") or "policy",
            source_id=metadata.get("sourceId") or vector_id,
            content=metadata.get("content") or "",
            relevance_score=float(score),
            policy_name=metadata.get("policyName") or None,
            context_question=metadata.get("contextQuestion") or None,
            document_name=metadata.get("documentName") or None,
            manual_answer_question=metadata.get("manualAnswerQuestion") or None,
        )


@dataclass
class Source:
    """A deduplicated, displayable reference to evidence."""

    source_type: str
    source_id: str
    relevance_score: float
    source_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "sourceType": self.source_type,
            "sourceName": self.source_name,
            "sourceId": self.source_id,
            "relevanceScore": self.relevance_score,
        }
