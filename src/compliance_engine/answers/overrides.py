"""Deterministic answers that bypass retrieval and the model."""

from compliance_engine.answers.models import ClassificationResult, Question
from compliance_engine.config import settings

FULLY_REMOTE_JUSTIFICATION = (
    "This control is not applicable as our organization operates fully remotely."
)

_FULLY_REMOTE_PHRASES = ("fully remote", "fully-remote")


def control_group(control_code: str) -> str:
    """Top-level numeric group of a control code ("7.1.2" -> "7")."""
    return control_code.strip().split(".", 1)[0].strip()


def is_physical_security_control(
    control_code: str, physical_group: str | None = None
) -> bool:
    """Check whether a control belongs to the physical-security group."""
    if not control_code:
        return False
    group = physical_group or settings.PHYSICAL_CONTROL_GROUP
    return control_group(control_code) == group


def answer_indicates_fully_remote(answer: str | None) -> bool:
    """Interpret the onboarding answer about how the team works."""
    if not answer:
        return False
    lowered = answer.lower()
    return any(phrase in lowered for phrase in _FULLY_REMOTE_PHRASES)


def fully_remote_override(
    question: Question,
    organization_is_fully_remote: bool,
    physical_group: str | None = None,
) -> ClassificationResult | None:
    """Exempt physical-security controls for fully remote organizations.

    Returns None when the rule does not apply.
    """
    if not organization_is_fully_remote:
        return None
    if not is_physical_security_control(question.control_code, physical_group):
        return None

    return ClassificationResult(
        question_id=question.id,
        is_applicable=False,
        justification=FULLY_REMOTE_JUSTIFICATION,
        succeeded=True,
    )
