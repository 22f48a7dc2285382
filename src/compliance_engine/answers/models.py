"""Data models for SOA questions and classification outcomes."""

from dataclasses import dataclass, field
from typing import Any

from compliance_engine.evidence.models import Source


@dataclass
class Question:
    """A control question from an SOA configuration."""

    id: str
    text: str
    title: str = ""
    control_code: str = ""
    is_applicable: bool | None = None
    justification: str | None = None

    @classmethod
    def from_config(cls, data: dict[str, Any]) -> "Question":
        """Build from a configuration entry.

        Entries look like ``{id, text, columnMapping: {closure, title,
        isApplicable, justification}}``.
        """
        mapping = data.get("columnMapping") or {}
        return cls(
            id=str(data["id"]),
            text=data.get("text") or "",
            title=mapping.get("title") or "",
            control_code=mapping.get("closure") or "",
            is_applicable=mapping.get("isApplicable"),
            justification=mapping.get("justification"),
        )


@dataclass
class ClassificationResult:
    """Outcome of classifying one question.

    ``is_applicable is None`` means the question could not be resolved.
    """

    question_id: str
    is_applicable: bool | None
    justification: str | None = None
    sources_used: list[Source] = field(default_factory=list)
    succeeded: bool = True
    insufficient_data: bool = False

    def __post_init__(self) -> None:
        # Justification only accompanies "not applicable"
        if self.is_applicable is not False:
            self.justification = None

    @property
    def is_resolved(self) -> bool:
        """True when the result should be persisted."""
        return self.succeeded and self.is_applicable is not None

    @classmethod
    def no_evidence(cls, question_id: str) -> "ClassificationResult":
        """Retrieval found nothing; the model was not called."""
        return cls(
            question_id=question_id,
            is_applicable=None,
            succeeded=False,
            insufficient_data=True,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "questionId": self.question_id,
            "isApplicable": self.is_applicable,
            "justification": self.justification,
            "succeeded": self.succeeded,
            "insufficientData": self.insufficient_data,
            "sourcesUsed": [s.to_dict() for s in self.sources_used],
        }


@dataclass
class QuestionFailure:
    """An exception raised while processing a single question."""

    question_id: str
    error: str

    def to_result(self) -> ClassificationResult:
        return ClassificationResult(
            question_id=self.question_id,
            is_applicable=None,
            succeeded=False,
        )


QuestionOutcome = ClassificationResult | QuestionFailure


def settle(outcome: QuestionOutcome) -> ClassificationResult:
    """Collapse an outcome into the result reported and stored."""
    if isinstance(outcome, QuestionFailure):
        return outcome.to_result()
    return outcome
