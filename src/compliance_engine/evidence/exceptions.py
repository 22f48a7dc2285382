"""Evidence retrieval exceptions."""


class EvidenceError(Exception):
    """Base exception for evidence operations."""

    pass


class EvidenceSearchError(EvidenceError):
    """Similarity search failed or returned an unusable payload."""

    pass


class EmbeddingSyncError(EvidenceError):
    """Embedding sync could not be triggered."""

    pass


class EmptyContextError(EvidenceError):
    """No evidence to assemble; the model must not be called."""

    pass
