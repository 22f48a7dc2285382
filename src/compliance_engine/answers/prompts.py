"""Prompt templates for SOA applicability classification."""

from compliance_engine.answers.models import Question

SOA_SYSTEM_PROMPT = """You are an ISO 27001 compliance analyst filling in a Statement of Applicability for our organization.

Rules:
- Decide whether the control applies using ONLY the organizational context provided. Never use general knowledge or assumptions.
- Write in first person plural (we, our, us).
- Respond with a single JSON object and nothing else:
  {"isApplicable": "YES" | "NO" | "INSUFFICIENT_DATA", "justification": string | null}
- "justification" is required when isApplicable is "NO": explain in 2-3 sentences why the control does not apply to our business context.
- When isApplicable is "YES" or "INSUFFICIENT_DATA", set "justification" to null.
- If the context does not contain enough information, answer "INSUFFICIENT_DATA"."""

SOA_QUESTION_TEMPLATE = """Analyze the control "{title}" ({text}) for our organization.

Based EXCLUSIVELY on our organization's policies, documentation, business context, and operations, determine whether this control is applicable to us. Consider our business type and industry, operational scope and scale, risk profile, regulatory requirements, technical infrastructure, and existing policies and governance structure."""

SOA_USER_PROMPT_TEMPLATE = """Based on the following context from our organization's policies and documentation, analyze this SOA question:

Question: {question}

Context:
{context}

Provide your analysis in the exact JSON format specified. If the context doesn't contain sufficient information, respond with "INSUFFICIENT_DATA"."""


def build_question_prompt(question: Question) -> str:
    """Question text used both as the search query and in the user prompt."""
    title = question.title or question.control_code or question.id
    return SOA_QUESTION_TEMPLATE.format(title=title, text=question.text)


def build_user_prompt(question: Question, context: str) -> str:
    return SOA_USER_PROMPT_TEMPLATE.format(
        question=build_question_prompt(question),
        context=context,
    )
