"""Stream events emitted during an auto-fill run.

Wire keys are camelCase; Python attributes stay snake_case.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from compliance_engine.answers.models import ClassificationResult


class AutoFillEvent(BaseModel):
    """Base event."""

    type: str

    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    def to_wire(self) -> str:
        """One JSON object with camelCase keys."""
        return self.model_dump_json(by_alias=True)


class ProgressEvent(AutoFillEvent):
    """Emitted once, before any question is processed."""

    type: Literal["progress"] = "progress"
    total: int = Field(..., ge=0)
    completed: int = Field(default=0, ge=0)
    remaining: int = Field(..., ge=0)


class ProcessingEvent(AutoFillEvent):
    """Marks a question as queued for this run."""

    type: Literal["processing"] = "processing"
    question_id: str
    question_index: int


class AnswerEvent(AutoFillEvent):
    """Result for a single question."""

    type: Literal["answer"] = "answer"
    question_id: str
    question_index: int
    is_applicable: bool | None
    justification: str | None = None
    succeeded: bool
    insufficient_data: bool = False
    sources_used: list[dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def from_result(cls, index: int, result: ClassificationResult) -> "AnswerEvent":
        return cls(
            question_id=result.question_id,
            question_index=index,
            is_applicable=result.is_applicable,
            justification=result.justification,
            succeeded=result.succeeded,
            insufficient_data=result.insufficient_data,
            sources_used=[s.to_dict() for s in result.sources_used],
        )


class CompleteEvent(AutoFillEvent):
    """Final event, emitted after answers are persisted."""

    type: Literal["complete"] = "complete"
    total: int
    answered: int
    results: list[dict[str, Any]] = Field(default_factory=list)


class ErrorEvent(AutoFillEvent):
    """Terminal failure of the run."""

    type: Literal["error"] = "error"
    message: str
