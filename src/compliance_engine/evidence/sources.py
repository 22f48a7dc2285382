"""Collapse retrieved chunks into a minimal set of displayable sources."""

import logging

from compliance_engine.evidence.models import EvidenceChunk, EvidenceSourceType, Source

logger = logging.getLogger(__name__)

CONTEXT_QA_LABEL = "Context Q&A"
MANUAL_ANSWER_PREVIEW_CHARS = 80


def derive_source_name(chunk: EvidenceChunk) -> str | None:
    """Return the human-readable origin of a chunk, if one can be derived.

    Chunks from the same policy carry different source IDs (one per chunk),
    so the name, not the ID, identifies the origin.
    """
    if chunk.source_label:
        return chunk.source_label
    if chunk.policy_name:
        return f"Policy: {chunk.policy_name}"
    if chunk.context_question:
        return CONTEXT_QA_LABEL
    if chunk.source_type == EvidenceSourceType.MANUAL_ANSWER.value:
        if chunk.manual_answer_question:
            question = chunk.manual_answer_question.strip()
            if len(question) > MANUAL_ANSWER_PREVIEW_CHARS:
                question = question[:MANUAL_ANSWER_PREVIEW_CHARS].rstrip() + "..."
            return f"Manual Answer: {question}"
        return None
    # Knowledge base documents and attachments are named by their file
    return chunk.document_name or None


def dedup_key(chunk: EvidenceChunk) -> str:
    """Key used to detect duplicate sources."""
    return derive_source_name(chunk) or chunk.source_id


def deduplicate_sources(chunks: list[EvidenceChunk]) -> list[Source]:
    """Reduce chunks to one Source per dedup key.

    The highest-scoring chunk wins each key; keys keep first-seen order.
    """
    best: dict[str, EvidenceChunk] = {}
    for chunk in chunks:
        key = dedup_key(chunk)
        current = best.get(key)
        if current is None or chunk.relevance_score > current.relevance_score:
            # Reassigning an existing key keeps its insertion position
            best[key] = chunk

    sources = [
        Source(
            source_type=chunk.source_type,
            source_id=chunk.source_id,
            relevance_score=chunk.relevance_score,
            source_name=derive_source_name(chunk),
        )
        for chunk in best.values()
    ]

    if len(sources) < len(chunks):
        logger.debug(f"Deduplicated {len(chunks)} chunks into {len(sources)} sources")
    return sources
