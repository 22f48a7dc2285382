"""Render evidence chunks into the prompt context."""

from compliance_engine.evidence.exceptions import EmptyContextError
from compliance_engine.evidence.models import EvidenceChunk, EvidenceSourceType


def provenance_header(chunk: EvidenceChunk) -> str:
    """One-line description of where a chunk came from."""
    if chunk.policy_name:
        return f'Source: Policy "{chunk.policy_name}"'
    if chunk.context_question:
        return "Source: Context Q&A"
    if chunk.source_type == EvidenceSourceType.KNOWLEDGE_BASE_DOCUMENT.value:
        if chunk.document_name:
            return f'Source: Knowledge Base Document "{chunk.document_name}"'
        return "Source: Knowledge Base Document"
    if chunk.source_type == EvidenceSourceType.MANUAL_ANSWER.value:
        return "Source: Manual Answer"
    return f"Source: {chunk.source_type}"


def build_context(chunks: list[EvidenceChunk]) -> str:
    """Join chunks as numbered, labelled blocks separated by blank lines.

    Raises:
        EmptyContextError: If there is nothing to render. Callers must
            not send an empty context to the model.
    """
    if not chunks:
        raise EmptyContextError("No evidence chunks to build context from")

    return "\n\n".join(
        f"[{index}] {provenance_header(chunk)}\n{chunk.content}"
        for index, chunk in enumerate(chunks, start=1)
    )
