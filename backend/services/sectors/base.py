"""Helpers shared by the sector policies."""
import logging
import re
from typing import Iterable, Pattern

logger = logging.getLogger(__name__)

DOCUMENT_TAG = "[Document:"
NO_INFO_MAX_LENGTH = 100

# Phrases that signal knowledge from outside the supplied documents
HEDGING_PHRASES = (
    "generally", "usually", "typically", "normally",
    "in my experience", "to my knowledge", "as is well known",
    "it is common that", "tends to be", "as a rule",
    "traditionally", "historically", "commonly",
)

NO_INFORMATION = re.compile(
    r"\b(?:i did not find|i didn't find|i could not find|i couldn't find|"
    r"no (?:specific |relevant )?information)\b",
    re.IGNORECASE,
)


def phrase_pattern(phrases: Iterable[str]) -> Pattern:
    """Case-insensitive pattern matching any phrase as whole words."""
    alternatives = "|".join(re.escape(p) for p in sorted(phrases, key=len, reverse=True))
    return re.compile(rf"(?<!\w)(?:{alternatives})(?!\w)", re.IGNORECASE)


HEDGING = phrase_pattern(HEDGING_PHRASES)


def is_blank(answer: str) -> bool:
    return answer is None or not answer.strip()


def is_no_information(answer: str) -> bool:
    return bool(NO_INFORMATION.search(answer or ""))


def is_short_no_information(answer: str) -> bool:
    """A brief "nothing found" answer, accepted by every specialized policy."""
    return is_no_information(answer) and len(answer) < NO_INFO_MAX_LENGTH


def has_document_tag(answer: str) -> bool:
    return DOCUMENT_TAG in answer


def length_within(answer: str, minimum: int, maximum: int) -> bool:
    return minimum <= len(answer) <= maximum


def find_phrase(pattern: Pattern, answer: str):
    """Return the first matching phrase (lower-cased) or None."""
    match = pattern.search(answer)
    return match.group(0).lower() if match else None


def context_term_bonus(answer: str, context: str, terms: Iterable[str], per_term: float, cap: float) -> float:
    """Bonus for sector terms present in both the answer and the context."""
    lower_answer = answer.lower()
    lower_context = context.lower()
    matches = sum(1 for term in terms if term in lower_context and term in lower_answer)
    return min(cap, matches * per_term)


def clamp(score: float) -> float:
    return max(0.0, min(1.0, score))


def fill_prompt(template: str, question: str, context: str, empty_context: str) -> str:
    if context is None or not context.strip():
        logger.warning(f"Empty context for question: {question[:100]}")
        context = empty_context
    return template.format(context=context.strip(), question=question.strip())


def log_rejection(sector: str, **signals: bool) -> None:
    details = ", ".join(f"{name}={value}" for name, value in signals.items())
    logger.warning(f"{sector} answer failed validation: {details}", extra={"sector": sector, **signals})
