"""Auto-fill orchestration for SOA documents.

Questions are processed in fixed-size groups. Groups run one after the
other; questions inside a group run concurrently and their answers are
streamed as soon as each one resolves. A failure on one question never
affects the others.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from compliance_engine.answers.classifier import AnswerClassifier
from compliance_engine.answers.events import (
    AnswerEvent,
    AutoFillEvent,
    CompleteEvent,
    ErrorEvent,
    ProcessingEvent,
    ProgressEvent,
)
from compliance_engine.answers.exceptions import DocumentNotFoundError
from compliance_engine.answers.models import (
    ClassificationResult,
    Question,
    QuestionFailure,
    QuestionOutcome,
    settle,
)
from compliance_engine.answers.overrides import fully_remote_override
from compliance_engine.answers.parser import parse_answer
from compliance_engine.answers.prompts import build_question_prompt
from compliance_engine.answers.repository import check_fully_remote, load_autofill_target
from compliance_engine.answers.store import VersionedAnswerStore
from compliance_engine.config import settings
from compliance_engine.db.database import async_session_maker
from compliance_engine.evidence import (
    EmbeddingSync,
    EvidenceChunk,
    SimilaritySearch,
    build_context,
    deduplicate_sources,
    get_embedding_sync,
    get_similarity_search,
)
from compliance_engine.rag.factory import get_llm

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    """Mutable state of one auto-fill run."""

    document_id: str
    organization_id: str
    user_id: str | None = None
    total: int = 0
    completed: int = 0
    results: dict[int, ClassificationResult] = field(default_factory=dict)

    def record(self, index: int, result: ClassificationResult) -> AnswerEvent:
        """Store a settled result and build its stream event."""
        self.results[index] = result
        self.completed += 1
        return AnswerEvent.from_result(index, result)

    @property
    def remaining(self) -> int:
        return self.total - self.completed

    def ordered_results(self) -> list[ClassificationResult]:
        return [self.results[i] for i in sorted(self.results)]


class AutoFillOrchestrator:
    """Answers every question of an SOA document and persists the results."""

    def __init__(
        self,
        classifier: AnswerClassifier,
        search: SimilaritySearch,
        embedding_sync: EmbeddingSync,
        store: VersionedAnswerStore | None = None,
        session_maker: async_sessionmaker[AsyncSession] | None = None,
        group_size: int | None = None,
        physical_group: str | None = None,
    ):
        self.classifier = classifier
        self.search = search
        self.embedding_sync = embedding_sync
        self.session_maker = session_maker or async_session_maker
        self.store = store or VersionedAnswerStore(self.session_maker)
        self.group_size = max(1, group_size or settings.AUTOFILL_GROUP_SIZE)
        self.physical_group = physical_group or settings.PHYSICAL_CONTROL_GROUP

    async def run(
        self,
        document_id: str,
        organization_id: str,
        user_id: str | None = None,
    ) -> AsyncIterator[AutoFillEvent]:
        """Auto-fill a document, yielding events as the run progresses.

        Event order: one ``progress``, one ``processing`` per question, an
        ``answer`` per question in completion order, then ``complete``.
        A missing document yields a single ``error`` event instead.
        """
        async with self.session_maker() as session:
            try:
                target = await load_autofill_target(session, document_id, organization_id)
            except DocumentNotFoundError as e:
                logger.warning(
                    f"Auto-fill requested for unknown document {document_id} "
                    f"(org {organization_id})"
                )
                yield ErrorEvent(message=str(e))
                return
            fully_remote = await check_fully_remote(session, organization_id)

        await self._sync_embeddings(organization_id)

        questions = target.questions
        ctx = RunContext(
            document_id=document_id,
            organization_id=organization_id,
            user_id=user_id,
            total=len(questions),
        )
        logger.info(
            f"Auto-filling document {document_id}: {ctx.total} questions, "
            f"fully_remote={fully_remote}"
        )

        yield ProgressEvent(total=ctx.total, completed=0, remaining=ctx.total)
        for index, question in enumerate(questions):
            yield ProcessingEvent(question_id=question.id, question_index=index)

        async for event in self.stream_answers(
            questions, organization_id, fully_remote, ctx
        ):
            yield event

        results = ctx.ordered_results()
        try:
            answered = await self.store.persist_batch(document_id, results, user_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to update document {document_id}: {e}")
            yield ErrorEvent(message="Failed to save answers")
            return

        yield CompleteEvent(
            total=ctx.total,
            answered=answered,
            results=[r.to_dict() for r in results],
        )

    async def stream_answers(
        self,
        questions: list[Question],
        organization_id: str,
        organization_is_fully_remote: bool,
        ctx: RunContext,
    ) -> AsyncIterator[AnswerEvent]:
        """Classify questions group by group, yielding each answer as it lands."""
        for start in range(0, len(questions), self.group_size):
            group = list(enumerate(questions[start : start + self.group_size], start=start))

            pending: list[tuple[int, Question]] = []
            for index, question in group:
                override = fully_remote_override(
                    question, organization_is_fully_remote, self.physical_group
                )
                if override is not None:
                    logger.debug(f"Question {question.id} answered by fully remote rule")
                    yield ctx.record(index, override)
                else:
                    pending.append((index, question))

            if not pending:
                continue

            prefetched = await self._retrieve_group(
                [question for _, question in pending], organization_id
            )
            tasks = [
                asyncio.ensure_future(
                    self._answer_question(index, question, organization_id, evidence)
                )
                for (index, question), evidence in zip(pending, prefetched)
            ]
            try:
                for next_done in asyncio.as_completed(tasks):
                    index, outcome = await next_done
                    yield ctx.record(index, settle(outcome))
            finally:
                # Stream closed early: let the group finish, drop its results
                await asyncio.gather(*tasks, return_exceptions=True)

    async def _retrieve_group(
        self, questions: list[Question], organization_id: str
    ) -> list[list[EvidenceChunk] | None]:
        """One batched search for the group; None entries fall back to a per-question search."""
        queries = [build_question_prompt(q) for q in questions]
        try:
            batches = await self.search.search_batch(queries, organization_id)
        except Exception as e:
            logger.warning(f"Batched evidence search failed, searching per question: {e}")
            return [None] * len(questions)

        if len(batches) != len(queries):
            logger.warning(
                f"Batched search returned {len(batches)} result sets for "
                f"{len(queries)} queries, searching per question"
            )
            return [None] * len(questions)
        return list(batches)

    async def _answer_question(
        self,
        index: int,
        question: Question,
        organization_id: str,
        evidence: list[EvidenceChunk] | None,
    ) -> tuple[int, QuestionOutcome]:
        try:
            return index, await self._classify(question, organization_id, evidence)
        except Exception as e:
            logger.error(
                f"Auto-fill failed for question {question.id} "
                f"({question.text[:100]!r}): {e}"
            )
            return index, QuestionFailure(question_id=question.id, error=str(e))

    async def _classify(
        self,
        question: Question,
        organization_id: str,
        evidence: list[EvidenceChunk] | None,
    ) -> ClassificationResult:
        if evidence is None:
            evidence = await self.search.search(
                build_question_prompt(question), organization_id
            )

        if not evidence:
            logger.info(f"No evidence found for question {question.id}")
            return ClassificationResult.no_evidence(question.id)

        sources = deduplicate_sources(evidence)
        context = build_context(evidence)
        raw_text = await self.classifier.classify(question, context)
        parsed = parse_answer(raw_text)

        return ClassificationResult(
            question_id=question.id,
            is_applicable=parsed.is_applicable,
            justification=parsed.justification,
            sources_used=sources,
            succeeded=parsed.succeeded,
            insufficient_data=parsed.insufficient_data,
        )

    async def _sync_embeddings(self, organization_id: str) -> None:
        """Refresh the organization's embeddings; failures are not fatal."""
        try:
            await self.embedding_sync.sync(organization_id)
        except Exception as e:
            logger.warning(f"Embedding sync failed for org {organization_id}: {e}")


async def create_orchestrator() -> AutoFillOrchestrator:
    """Build an orchestrator from configured collaborators."""
    llm = await get_llm()
    return AutoFillOrchestrator(
        classifier=AnswerClassifier(llm),
        search=get_similarity_search(),
        embedding_sync=get_embedding_sync(),
    )
