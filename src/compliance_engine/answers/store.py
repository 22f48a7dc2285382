"""Append-only versioned storage for SOA answers.

Every write inserts a new version and flips the previous latest row, so
the full answer history of a question is preserved. After a batch the
configuration's question list and the document's progress are brought in
line with the new answers.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random,
)

from compliance_engine.answers.models import ClassificationResult
from compliance_engine.answers.repository import load_config_questions
from compliance_engine.config import settings
from compliance_engine.db.database import async_session_maker
from compliance_engine.db.models import SOAAnswer, SOADocument

logger = logging.getLogger(__name__)

STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"


def document_status(answered: int, total: int) -> str:
    """Document status is derived from progress only."""
    return STATUS_COMPLETED if answered == total else STATUS_IN_PROGRESS


def answer_text_for(result: ClassificationResult) -> str | None:
    """Text stored with a version: the justification of a "not applicable"."""
    return result.justification if result.is_applicable is False else None


@dataclass
class DocumentProgress:
    """Document counters after a batch has been applied."""

    total: int
    answered: int
    status: str


class VersionedAnswerStore:
    """Writes answer versions and recomputes document progress."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession] | None = None,
        max_attempts: int | None = None,
    ):
        self.session_maker = session_maker or async_session_maker
        self.max_attempts = max(1, max_attempts or settings.ANSWER_WRITE_RETRIES)

    async def persist(
        self,
        document_id: str,
        question_id: str,
        result: ClassificationResult,
        user_id: str | None = None,
    ) -> SOAAnswer | None:
        """Write a new answer version for one question.

        Unresolved results are skipped and return None. Version conflicts
        with a concurrent writer are retried against the fresh latest row.

        Raises:
            IntegrityError: If conflicts persist past the retry limit
            SQLAlchemyError: On other database failures
        """
        if not result.is_resolved:
            return None

        answer_text = answer_text_for(result)
        answer = None
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_random(min=0.01, max=0.1),
            retry=retry_if_exception_type(IntegrityError),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        f"Retrying answer write for {document_id}/{question_id} "
                        f"(attempt {attempt.retry_state.attempt_number})"
                    )
                answer = await self._write_version(
                    document_id, question_id, answer_text, user_id
                )
        return answer

    async def _write_version(
        self,
        document_id: str,
        question_id: str,
        answer_text: str | None,
        user_id: str | None,
    ) -> SOAAnswer:
        async with self.session_maker() as session:
            async with session.begin():
                stmt = (
                    select(SOAAnswer.version)
                    .where(
                        SOAAnswer.document_id == document_id,
                        SOAAnswer.question_id == question_id,
                        SOAAnswer.is_latest == True,  # noqa: E712
                    )
                    .limit(1)
                )
                previous_version = (await session.execute(stmt)).scalar_one_or_none()

                if previous_version is not None:
                    await session.execute(
                        update(SOAAnswer)
                        .where(
                            SOAAnswer.document_id == document_id,
                            SOAAnswer.question_id == question_id,
                            SOAAnswer.is_latest == True,  # noqa: E712
                        )
                        .values(is_latest=False)
                    )

                answer = SOAAnswer(
                    document_id=document_id,
                    question_id=question_id,
                    answer_text=answer_text,
                    version=(previous_version or 0) + 1,
                    is_latest=True,
                    created_by=user_id,
                )
                session.add(answer)

        logger.debug(
            f"Stored answer {document_id}/{question_id} version {answer.version}"
        )
        return answer

    async def persist_batch(
        self,
        document_id: str,
        results: list[ClassificationResult],
        user_id: str | None = None,
    ) -> int:
        """Persist every resolved result, then recompute the document.

        A failure on one question is logged and the rest continue.

        Returns:
            Number of answered questions on the document afterwards
        """
        written: list[ClassificationResult] = []
        for result in results:
            if not result.is_resolved:
                continue
            try:
                await self.persist(document_id, result.question_id, result, user_id)
                written.append(result)
            except SQLAlchemyError as e:
                logger.error(
                    f"Failed to persist answer {document_id}/{result.question_id}: {e}"
                )

        resolved_count = sum(1 for r in results if r.is_resolved)
        logger.info(
            f"Persisted {len(written)}/{resolved_count} answers for document {document_id}"
        )

        progress = await self.apply_to_document(document_id, written)
        return progress.answered if progress else 0

    async def apply_to_document(
        self, document_id: str, results: list[ClassificationResult]
    ) -> DocumentProgress | None:
        """Copy results into the configuration and recompute document progress.

        Any change to answers invalidates an existing approval.
        """
        by_question = {r.question_id: r for r in results}

        async with self.session_maker() as session:
            async with session.begin():
                document = await session.get(SOADocument, document_id)
                if document is None or document.configuration is None:
                    logger.error(f"Document {document_id} vanished before recompute")
                    return None

                configuration = document.configuration
                questions = load_config_questions(configuration)
                for entry in questions:
                    if not isinstance(entry, dict):
                        continue
                    result = by_question.get(str(entry.get("id")))
                    if result is None:
                        continue
                    mapping = entry.setdefault("columnMapping", {})
                    mapping["isApplicable"] = result.is_applicable
                    mapping["justification"] = result.justification
                configuration.questions = json.dumps(questions)

                answered = sum(
                    1
                    for entry in questions
                    if isinstance(entry, dict)
                    and (entry.get("columnMapping") or {}).get("isApplicable") is not None
                )
                total = len(questions)
                status = document_status(answered, total)
                now = datetime.now(timezone.utc)

                document.total_questions = total
                document.answered_questions = answered
                document.status = status
                document.completed_at = now if status == STATUS_COMPLETED else None
                document.approver_id = None
                document.approved_at = None
                document.updated_at = now

        logger.info(
            f"Document {document_id}: {answered}/{total} answered, status={status}"
        )
        return DocumentProgress(total=total, answered=answered, status=status)
