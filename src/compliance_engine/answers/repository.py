"""Read-side lookups performed before an auto-fill run."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from compliance_engine.answers.exceptions import DocumentNotFoundError
from compliance_engine.answers.models import Question
from compliance_engine.answers.overrides import answer_indicates_fully_remote
from compliance_engine.config import settings
from compliance_engine.db.models import ContextEntry, SOAConfiguration, SOADocument

logger = logging.getLogger(__name__)


def load_config_questions(configuration: SOAConfiguration) -> list[dict[str, Any]]:
    """Decode the configuration's JSON question list."""
    if not configuration.questions:
        return []
    try:
        questions = json.loads(configuration.questions)
    except (json.JSONDecodeError, TypeError):
        logger.error(f"Configuration {configuration.id} has malformed questions JSON")
        return []
    return questions if isinstance(questions, list) else []


@dataclass
class AutoFillTarget:
    """A document together with the questions to answer."""

    document: SOADocument
    configuration: SOAConfiguration
    questions: list[Question] = field(default_factory=list)


async def load_autofill_target(
    session: AsyncSession, document_id: str, organization_id: str
) -> AutoFillTarget:
    """Load a document scoped to its organization.

    Raises:
        DocumentNotFoundError: If the document or its configuration is missing
    """
    stmt = select(SOADocument).where(
        SOADocument.id == document_id,
        SOADocument.organization_id == organization_id,
    )
    result = await session.execute(stmt)
    document = result.scalars().first()

    if document is None or document.configuration is None:
        raise DocumentNotFoundError(document_id, organization_id)

    questions = [
        Question.from_config(entry)
        for entry in load_config_questions(document.configuration)
        if isinstance(entry, dict) and entry.get("id")
    ]
    return AutoFillTarget(
        document=document,
        configuration=document.configuration,
        questions=questions,
    )


async def check_fully_remote(session: AsyncSession, organization_id: str) -> bool:
    """Check the onboarding answer to "How does your team work".

    Lookup failures count as "not fully remote".
    """
    phrase = settings.FULLY_REMOTE_CONTEXT_QUESTION.lower()
    stmt = (
        select(ContextEntry)
        .where(
            ContextEntry.organization_id == organization_id,
            func.lower(ContextEntry.question).contains(phrase),
        )
        .limit(1)
    )
    try:
        result = await session.execute(stmt)
    except SQLAlchemyError as e:
        logger.warning(f"Fully remote check failed for org {organization_id}: {e}")
        return False

    entry = result.scalars().first()
    if entry is None:
        logger.debug(f"No team work context for org {organization_id}")
        return False
    return answer_indicates_fully_remote(entry.answer)
