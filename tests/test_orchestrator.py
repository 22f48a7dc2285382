"""Tests for the auto-fill orchestrator."""

import asyncio
import json
import time
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import select

from compliance_engine.answers.models import ClassificationResult, Question
from compliance_engine.answers.orchestrator import AutoFillOrchestrator, RunContext
from compliance_engine.answers.overrides import FULLY_REMOTE_JUSTIFICATION
from compliance_engine.db.models import SOAAnswer
from compliance_engine.evidence.exceptions import EmbeddingSyncError, EvidenceSearchError
from compliance_engine.evidence.models import EvidenceChunk

ORG_ID = "org-1"
NOT_APPLICABLE = '{"isApplicable": "NO", "justification": "We do not develop software in-house."}'


def _chunk(name: str = "Access Control", score: float = 0.8) -> EvidenceChunk:
    return EvidenceChunk(
        source_type="policy",
        source_id=f"{name}-chunk",
        content=f"{name} policy text.",
        relevance_score=score,
        policy_name=name,
    )


@pytest.fixture
def search():
    search = MagicMock()
    search.search_batch = AsyncMock(
        side_effect=lambda queries, organization_id: [[_chunk(), _chunk(score=0.5)] for _ in queries]
    )
    search.search = AsyncMock(return_value=[_chunk()])
    return search


@pytest.fixture
def classifier():
    classifier = MagicMock()
    classifier.classify = AsyncMock(return_value='{"isApplicable": "YES", "justification": null}')
    return classifier


@pytest.fixture
def embedding_sync():
    sync = MagicMock()
    sync.sync = AsyncMock(return_value=None)
    return sync


@pytest.fixture
def orchestrator(session_maker, classifier, search, embedding_sync):
    return AutoFillOrchestrator(
        classifier=classifier,
        search=search,
        embedding_sync=embedding_sync,
        session_maker=session_maker,
        group_size=2,
    )


async def _collect(orchestrator, document_id, organization_id=ORG_ID):
    return [event async for event in orchestrator.run(document_id, organization_id, "user-1")]


async def _latest_answers(session_maker, document_id):
    async with session_maker() as session:
        result = await session.execute(
            select(SOAAnswer).where(
                SOAAnswer.document_id == document_id,
                SOAAnswer.is_latest == True,  # noqa: E712
            )
        )
        return {a.question_id: a for a in result.scalars().all()}


class TestRun:
    """Tests for the full auto-fill run."""

    @pytest.mark.asyncio
    async def test_event_order(self, orchestrator, seed_document, config_questions):
        """Test that progress, processing, answer and complete arrive in order."""
        document_id = await seed_document(config_questions(3))

        events = await _collect(orchestrator, document_id)
        types = [e.type for e in events]

        assert types[0] == "progress"
        assert types[1:4] == ["processing"] * 3
        assert sorted(types[4:7]) == ["answer"] * 3
        assert types[7] == "complete"
        assert len(events) == 8

        progress = events[0]
        assert (progress.total, progress.completed, progress.remaining) == (3, 0, 3)
        assert [e.question_index for e in events[1:4]] == [0, 1, 2]

        complete = events[-1]
        assert complete.total == 3
        assert complete.answered == 3
        assert [r["questionId"] for r in complete.results] == ["q1", "q2", "q3"]

    @pytest.mark.asyncio
    async def test_answers_persisted_before_complete(
        self, orchestrator, session_maker, seed_document, config_questions
    ):
        """Test that answers are stored before complete is emitted."""
        document_id = await seed_document(config_questions(2))

        async for event in orchestrator.run(document_id, ORG_ID, "user-1"):
            if event.type == "complete":
                answers = await _latest_answers(session_maker, document_id)
                assert set(answers) == {"q1", "q2"}
                assert answers["q1"].created_by == "user-1"
                break

    @pytest.mark.asyncio
    async def test_answer_event_carries_deduplicated_sources(
        self, orchestrator, seed_document, config_questions
    ):
        """Test that answer events carry deduplicated wire sources."""
        document_id = await seed_document(config_questions(1))

        events = await _collect(orchestrator, document_id)
        answer = next(e for e in events if e.type == "answer")

        wire = json.loads(answer.to_wire())
        assert wire["questionId"] == "q1"
        assert wire["isApplicable"] is True
        assert wire["justification"] is None
        assert wire["sourcesUsed"] == [
            {
                "sourceType": "policy",
                "sourceName": "Policy: Access Control",
                "sourceId": "Access Control-chunk",
                "relevanceScore": 0.8,
            }
        ]

    @pytest.mark.asyncio
    async def test_document_not_found(self, orchestrator, classifier, search):
        """Test that an unknown document yields a single error event."""
        events = await _collect(orchestrator, "missing-doc")

        assert len(events) == 1
        assert events[0].type == "error"
        assert "not found" in events[0].message
        search.search_batch.assert_not_called()
        classifier.classify.assert_not_called()

    @pytest.mark.asyncio
    async def test_document_of_other_organization(
        self, orchestrator, seed_document, config_questions
    ):
        """Test that another organization's document is not found."""
        document_id = await seed_document(config_questions(1), organization_id="org-2")

        events = await _collect(orchestrator, document_id, organization_id=ORG_ID)

        assert [e.type for e in events] == ["error"]

    @pytest.mark.asyncio
    async def test_embedding_sync_failure_is_not_fatal(
        self, orchestrator, embedding_sync, seed_document, config_questions
    ):
        """Test that a failed embedding sync still completes the run."""
        embedding_sync.sync.side_effect = EmbeddingSyncError("sync down")
        document_id = await seed_document(config_questions(1))

        events = await _collect(orchestrator, document_id)

        embedding_sync.sync.assert_awaited_once_with(ORG_ID)
        assert events[-1].type == "complete"

    @pytest.mark.asyncio
    async def test_fully_remote_override_skips_model(
        self, orchestrator, classifier, search, seed_document, config_questions, fully_remote_org
    ):
        """Test that physical controls of fully remote orgs skip retrieval and the model."""
        questions = config_questions(2, group="7") + config_questions(1, group="5")
        questions[2]["id"] = "q3"
        document_id = await seed_document(questions)

        events = await _collect(orchestrator, document_id)
        answers = {e.question_id: e for e in events if e.type == "answer"}

        for question_id in ("q1", "q2"):
            assert answers[question_id].is_applicable is False
            assert answers[question_id].justification == FULLY_REMOTE_JUSTIFICATION
            assert answers[question_id].sources_used == []
        assert answers["q3"].is_applicable is True

        assert classifier.classify.await_count == 1
        assert classifier.classify.await_args.args[0].id == "q3"
        # Overridden questions never reach retrieval
        queried = [len(call.args[0]) for call in search.search_batch.await_args_list]
        assert queried == [1]


class TestStreamAnswers:
    """Tests for grouped, isolated classification."""

    @pytest.mark.asyncio
    async def test_failure_is_isolated(
        self, orchestrator, classifier, session_maker, seed_document, config_questions
    ):
        """Test that one failing question does not affect the others."""
        async def classify(question, context):
            if question.id == "q2":
                raise RuntimeError("model exploded")
            return NOT_APPLICABLE

        classifier.classify.side_effect = classify
        document_id = await seed_document(config_questions(3))

        events = await _collect(orchestrator, document_id)
        answers = {e.question_id: e for e in events if e.type == "answer"}

        assert answers["q2"].is_applicable is None
        assert answers["q2"].succeeded is False
        assert answers["q2"].insufficient_data is False
        for question_id in ("q1", "q3"):
            assert answers[question_id].is_applicable is False
            assert answers[question_id].justification == "We do not develop software in-house."

        complete = events[-1]
        assert complete.type == "complete"
        assert complete.answered == 2
        stored = await _latest_answers(session_maker, document_id)
        assert set(stored) == {"q1", "q3"}

    @pytest.mark.asyncio
    async def test_no_evidence_skips_model(
        self, orchestrator, classifier, search, seed_document, config_questions
    ):
        """Test that empty evidence yields insufficient data without a model call."""
        search.search_batch.side_effect = lambda queries, organization_id: [[] for _ in queries]
        document_id = await seed_document(config_questions(1))

        events = await _collect(orchestrator, document_id)
        answer = next(e for e in events if e.type == "answer")

        assert answer.is_applicable is None
        assert answer.succeeded is False
        assert answer.insufficient_data is True
        classifier.classify.assert_not_called()
        assert events[-1].answered == 0

    @pytest.mark.asyncio
    async def test_groups_share_one_batched_search(
        self, orchestrator, search, seed_document, config_questions
    ):
        """Test that each group issues one batched search."""
        document_id = await seed_document(config_questions(5))

        await _collect(orchestrator, document_id)

        batch_sizes = [len(call.args[0]) for call in search.search_batch.await_args_list]
        assert batch_sizes == [2, 2, 1]
        search.search.assert_not_called()

    @pytest.mark.asyncio
    async def test_batched_search_failure_falls_back(
        self, orchestrator, classifier, search, seed_document, config_questions
    ):
        """Test that a failed batched search falls back to per-question search."""
        search.search_batch.side_effect = EvidenceSearchError("batch down")
        document_id = await seed_document(config_questions(2))

        events = await _collect(orchestrator, document_id)

        assert search.search.await_count == 2
        assert classifier.classify.await_count == 2
        assert all(e.succeeded for e in events if e.type == "answer")

    @pytest.mark.asyncio
    async def test_unparseable_output_uses_safe_default(
        self, orchestrator, classifier, seed_document, config_questions
    ):
        """Test that unparseable model output resolves to applicable."""
        classifier.classify.return_value = "I'm not sure how to answer that."
        document_id = await seed_document(config_questions(1))

        events = await _collect(orchestrator, document_id)
        answer = next(e for e in events if e.type == "answer")

        assert answer.is_applicable is True
        assert answer.justification is None
        assert answer.succeeded is True

    @pytest.mark.asyncio
    async def test_group_runs_concurrently_in_completion_order(
        self, session_maker, classifier, search, embedding_sync, config_questions
    ):
        """Test that group members overlap and answers stream in completion order."""
        delays = {"q1": 0.3, "q2": 0.1, "q3": 0.2, "q4": 0.0}
        in_flight = {"now": 0, "max": 0}

        async def classify(question, context):
            in_flight["now"] += 1
            in_flight["max"] = max(in_flight["max"], in_flight["now"])
            await asyncio.sleep(delays[question.id])
            in_flight["now"] -= 1
            return NOT_APPLICABLE

        classifier.classify.side_effect = classify
        orchestrator = AutoFillOrchestrator(
            classifier=classifier,
            search=search,
            embedding_sync=embedding_sync,
            session_maker=session_maker,
            group_size=3,
        )
        questions = [Question.from_config(q) for q in config_questions(4)]
        ctx = RunContext(document_id="d", organization_id=ORG_ID, total=4)

        started = time.monotonic()
        events = [e async for e in orchestrator.stream_answers(questions, ORG_ID, False, ctx)]
        elapsed = time.monotonic() - started

        assert [e.question_id for e in events] == ["q2", "q3", "q1", "q4"]
        assert [e.question_index for e in events] == [1, 2, 0, 3]
        assert in_flight["max"] == 3
        # One-at-a-time calls would need 0.6s
        assert elapsed < 0.55
        assert [r.question_id for r in ctx.ordered_results()] == ["q1", "q2", "q3", "q4"]

    @pytest.mark.asyncio
    async def test_early_close_stops_stream(self, orchestrator, classifier, config_questions):
        """Test that closing the stream stops after the current group."""
        questions = [Question.from_config(q) for q in config_questions(4)]
        ctx = RunContext(document_id="d", organization_id=ORG_ID, total=4)

        stream = orchestrator.stream_answers(questions, ORG_ID, False, ctx)
        first = await stream.__anext__()
        await stream.aclose()

        assert first.type == "answer"
        assert ctx.completed == 1
        # Only the first group was started
        assert classifier.classify.await_count == 2


def test_run_context_orders_results():
    """Test that recorded results come back in question order."""
    ctx = RunContext(document_id="d", organization_id=ORG_ID, total=3)
    ctx.record(2, ClassificationResult("q3", True))
    ctx.record(0, ClassificationResult("q1", True))

    assert ctx.completed == 2
    assert ctx.remaining == 1
    assert [r.question_id for r in ctx.ordered_results()] == ["q1", "q3"]
