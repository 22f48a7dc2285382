"""Defensive parsing of model output into an applicability verdict.

Model output arrives in one of four shapes, checked in order:

1. A JSON object with a usable ``isApplicable`` (markdown code fences
   tolerated) -> ``StructuredOk``; other JSON is treated as free text
2. Free text with an insufficient-data indicator -> ``InsufficientData``
3. Free text with labelled values recoverable by regex -> ``PatternExtracted``
4. Anything else -> ``Unparseable``

``interpret`` classifies the raw text; ``resolve`` is the only place that
turns a variant into a verdict. "We don't know" always resolves to
applicable with no justification, never to a failure.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

INSUFFICIENT_DATA_INDICATORS = (
    "INSUFFICIENT_DATA",
    "N/A",
    "NO EVIDENCE FOUND",
    "NOT ENOUGH INFORMATION",
    "INSUFFICIENT",
    "NOT FOUND IN THE CONTEXT",
    "NO INFORMATION AVAILABLE",
)

_APPLICABLE_PATTERN = re.compile(
    r"(?:isApplicable|applicable)[:\s]*[\"']?(YES|NO|INSUFFICIENT_DATA)[\"']?",
    re.IGNORECASE,
)
_JUSTIFICATION_PATTERN = re.compile(
    r"justification[:\s]*[\"']?([^\"']{20,})[\"']?",
    re.IGNORECASE,
)
_YES_MARKERS = re.compile(r"\bYES\b|(?<![A-Z])APPLICABLE\b")
_NO_MARKERS = re.compile(r"\b(?:NO|NOT[\s_]APPLICABLE)\b")


@dataclass(frozen=True)
class StructuredOk:
    verdict: str
    justification: str | None = None


@dataclass(frozen=True)
class InsufficientData:
    reason: str


@dataclass(frozen=True)
class PatternExtracted:
    verdict: str
    justification: str | None = None


@dataclass(frozen=True)
class Unparseable:
    reason: str


ParsedOutput = StructuredOk | InsufficientData | PatternExtracted | Unparseable


@dataclass(frozen=True)
class ParsedAnswer:
    """Verdict extracted from model output."""

    is_applicable: bool
    justification: str | None = None
    succeeded: bool = True
    insufficient_data: bool = False


SAFE_DEFAULT = ParsedAnswer(is_applicable=True)


def _strip_code_fences(text: str) -> str:
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def _load_json_object(text: str) -> dict[str, Any] | None:
    """Return the JSON object in ``text``, or None if there isn't one."""
    candidates = [_strip_code_fences(text)]
    start, end = text.find("{"), text.rfind("}")
    if 0 <= start < end:
        candidates.append(text[start : end + 1])

    for candidate in candidates:
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(payload, dict):
            return payload
    return None


def _clean_justification(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _interpret_structured(payload: dict[str, Any]) -> ParsedOutput | None:
    """Interpret a JSON payload, or None if it carries no usable verdict."""
    raw_verdict = payload.get("isApplicable", payload.get("is_applicable"))
    if isinstance(raw_verdict, bool):
        verdict = "YES" if raw_verdict else "NO"
    elif isinstance(raw_verdict, str) and raw_verdict.strip():
        verdict = raw_verdict.strip()
    else:
        return None

    if "INSUFFICIENT" in verdict.upper():
        return InsufficientData(f"structured verdict {verdict!r}")

    return StructuredOk(
        verdict=verdict,
        justification=_clean_justification(payload.get("justification")),
    )


def find_insufficient_indicator(text: str) -> str | None:
    """Return the first insufficient-data indicator present in ``text``."""
    upper = text.upper()
    for indicator in INSUFFICIENT_DATA_INDICATORS:
        if indicator in upper:
            return indicator
    return None


def interpret(raw_text: str | None) -> ParsedOutput:
    """Classify raw model output into one of the four shapes."""
    text = (raw_text or "").strip()
    if not text:
        return Unparseable("empty output")

    # A JSON fragment without isApplicable falls through to the text checks
    payload = _load_json_object(text)
    if payload is not None:
        structured = _interpret_structured(payload)
        if structured is not None:
            return structured

    indicator = find_insufficient_indicator(text)
    if indicator:
        return InsufficientData(f"indicator {indicator!r} in free text")

    verdict_match = _APPLICABLE_PATTERN.search(text)
    if not verdict_match:
        return Unparseable("no applicability label found")

    verdict = verdict_match.group(1).upper()
    if verdict == "INSUFFICIENT_DATA":
        return InsufficientData("labelled INSUFFICIENT_DATA")

    justification_match = _JUSTIFICATION_PATTERN.search(text)
    return PatternExtracted(
        verdict=verdict,
        justification=justification_match.group(1).strip() if justification_match else None,
    )


def classify_verdict(token: str) -> bool | None:
    """Map a verdict token to True/False, or None when ambiguous.

    A token with both affirmative and negative markers (e.g. one containing
    ``NOT APPLICABLE``, which also contains ``APPLICABLE``) is ambiguous.
    """
    upper = token.upper()
    yes_like = bool(_YES_MARKERS.search(upper))
    no_like = bool(_NO_MARKERS.search(upper))
    if yes_like and not no_like:
        return True
    if no_like and not yes_like:
        return False
    return None


def resolve(parsed: ParsedOutput) -> ParsedAnswer:
    """Apply the safe-default policy to an interpreted output."""
    if isinstance(parsed, (InsufficientData, Unparseable)):
        logger.debug(f"Falling back to safe default: {parsed.reason}")
        return SAFE_DEFAULT

    verdict = classify_verdict(parsed.verdict)
    if verdict is None:
        logger.debug(f"Ambiguous verdict {parsed.verdict!r}, using safe default")
        return SAFE_DEFAULT

    if verdict:
        return ParsedAnswer(is_applicable=True)

    if not parsed.justification:
        logger.debug("Not-applicable verdict without justification, using safe default")
        return SAFE_DEFAULT

    return ParsedAnswer(is_applicable=False, justification=parsed.justification)


def parse_answer(raw_text: str | None) -> ParsedAnswer:
    """Parse raw model output into a verdict."""
    return resolve(interpret(raw_text))
