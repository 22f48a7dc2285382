"""SOA auto-fill: classification, output parsing, orchestration and storage."""

from compliance_engine.answers.classifier import AnswerClassifier
from compliance_engine.answers.events import (
    AnswerEvent,
    AutoFillEvent,
    CompleteEvent,
    ErrorEvent,
    ProcessingEvent,
    ProgressEvent,
)
from compliance_engine.answers.exceptions import AutoFillError, DocumentNotFoundError
from compliance_engine.answers.models import (
    ClassificationResult,
    Question,
    QuestionFailure,
    settle,
)
from compliance_engine.answers.orchestrator import (
    AutoFillOrchestrator,
    RunContext,
    create_orchestrator,
)
from compliance_engine.answers.overrides import (
    FULLY_REMOTE_JUSTIFICATION,
    fully_remote_override,
    is_physical_security_control,
)
from compliance_engine.answers.parser import ParsedAnswer, interpret, parse_answer, resolve
from compliance_engine.answers.store import VersionedAnswerStore, document_status

__all__ = [
    # Models
    "Question",
    "ClassificationResult",
    "QuestionFailure",
    "settle",
    "ParsedAnswer",
    # Parsing
    "interpret",
    "resolve",
    "parse_answer",
    # Rules
    "FULLY_REMOTE_JUSTIFICATION",
    "fully_remote_override",
    "is_physical_security_control",
    # Pipeline
    "AnswerClassifier",
    "AutoFillOrchestrator",
    "RunContext",
    "create_orchestrator",
    "VersionedAnswerStore",
    "document_status",
    # Events
    "AutoFillEvent",
    "ProgressEvent",
    "ProcessingEvent",
    "AnswerEvent",
    "CompleteEvent",
    "ErrorEvent",
    # Exceptions
    "AutoFillError",
    "DocumentNotFoundError",
]
