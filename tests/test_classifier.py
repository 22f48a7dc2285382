"""Tests for the answer classifier and result models."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from compliance_engine.answers.classifier import AnswerClassifier
from compliance_engine.answers.models import (
    ClassificationResult,
    Question,
    QuestionFailure,
    settle,
)
from compliance_engine.answers.prompts import SOA_SYSTEM_PROMPT, build_question_prompt
from compliance_engine.rag.exceptions import LLMConnectionError


@pytest.fixture
def question():
    return Question(id="q1", text="Information security policies", title="Policies", control_code="5.1")


@pytest.fixture
def mock_llm():
    llm = MagicMock()
    llm.provider_name = "mock"
    llm.complete = AsyncMock(return_value='  {"isApplicable": "YES"}\n')
    return llm


class TestAnswerClassifier:
    """Tests for AnswerClassifier."""

    @pytest.mark.asyncio
    async def test_single_call_with_system_prompt(self, question, mock_llm):
        """Test that classification makes one model call with the system prompt."""
        classifier = AnswerClassifier(mock_llm)

        raw = await classifier.classify(question, "[1] Source: Policy \"X\"\ntext")

        assert raw == '{"isApplicable": "YES"}'
        mock_llm.complete.assert_awaited_once()
        system_prompt, user_prompt = mock_llm.complete.await_args.args
        assert system_prompt == SOA_SYSTEM_PROMPT
        assert "Policies" in user_prompt
        assert 'Source: Policy "X"' in user_prompt

    @pytest.mark.asyncio
    async def test_errors_propagate(self, question, mock_llm):
        """Test that model errors propagate without extra calls."""
        mock_llm.complete.side_effect = LLMConnectionError("down", provider="mock")
        classifier = AnswerClassifier(mock_llm)

        with pytest.raises(LLMConnectionError):
            await classifier.classify(question, "context")
        assert mock_llm.complete.await_count == 1

    def test_question_prompt_mentions_title_and_text(self, question):
        """Test that the question prompt includes title and text."""
        prompt = build_question_prompt(question)
        assert '"Policies"' in prompt
        assert "Information security policies" in prompt

    def test_system_prompt_constraints(self):
        """Test that the system prompt states the answer format."""
        assert "isApplicable" in SOA_SYSTEM_PROMPT
        assert "INSUFFICIENT_DATA" in SOA_SYSTEM_PROMPT
        assert "first person plural" in SOA_SYSTEM_PROMPT


class TestClassificationResult:
    """Tests for result invariants."""

    def test_justification_dropped_unless_not_applicable(self):
        """Test that only not-applicable results keep a justification."""
        assert ClassificationResult("q1", True, justification="x").justification is None
        assert ClassificationResult("q1", None, justification="x").justification is None
        assert ClassificationResult("q1", False, justification="x").justification == "x"

    def test_no_evidence(self):
        """Test the shape of a no-evidence result."""
        result = ClassificationResult.no_evidence("q1")
        assert result.is_applicable is None
        assert result.succeeded is False
        assert result.insufficient_data is True
        assert result.is_resolved is False

    def test_settle_failure(self):
        """Test that a failure settles to an unresolved result."""
        result = settle(QuestionFailure(question_id="q2", error="boom"))
        assert result.question_id == "q2"
        assert result.is_applicable is None
        assert result.succeeded is False
        assert result.insufficient_data is False

    def test_settle_passes_results_through(self):
        """Test that results pass through settle unchanged."""
        result = ClassificationResult("q1", True)
        assert settle(result) is result

    def test_to_dict(self):
        """Test the camelCase dict of a result."""
        data = ClassificationResult("q1", False, justification="We have no offices.").to_dict()
        assert data == {
            "questionId": "q1",
            "isApplicable": False,
            "justification": "We have no offices.",
            "succeeded": True,
            "insufficientData": False,
            "sourcesUsed": [],
        }

    def test_question_from_config(self):
        """Test building a question from a configuration entry."""
        question = Question.from_config(
            {
                "id": 12,
                "text": "Physical entry",
                "columnMapping": {"closure": "7.2", "title": "Physical entry", "isApplicable": True},
            }
        )
        assert question.id == "12"
        assert question.control_code == "7.2"
        assert question.is_applicable is True
