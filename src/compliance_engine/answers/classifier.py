"""Single-shot model call that classifies one SOA question."""

import logging

from compliance_engine.answers.models import Question
from compliance_engine.answers.prompts import SOA_SYSTEM_PROMPT, build_user_prompt
from compliance_engine.rag.llm import BaseLLM

logger = logging.getLogger(__name__)


class AnswerClassifier:
    """Ask the model whether a control applies, given assembled evidence."""

    def __init__(self, llm: BaseLLM, system_prompt: str = SOA_SYSTEM_PROMPT):
        self.llm = llm
        self.system_prompt = system_prompt

    async def classify(self, question: Question, context: str) -> str:
        """Return the model's raw text for ``question``.

        Makes exactly one model call. Provider errors propagate.
        """
        user_prompt = build_user_prompt(question, context)
        raw_text = await self.llm.complete(self.system_prompt, user_prompt)
        logger.debug(
            f"Classified question {question.id} via {self.llm.provider_name}: "
            f"{raw_text[:100]!r}"
        )
        return raw_text.strip()
