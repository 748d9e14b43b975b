"""Education sector: pedagogical answers with a didactic structure."""
import logging
import re

from models.sector import SectorPolicy
from services.sectors.base import (
    HEDGING_PHRASES, clamp, context_term_bonus, fill_prompt, find_phrase, has_document_tag,
    is_blank, is_no_information, is_short_no_information, length_within, log_rejection,
    phrase_pattern,
)

logger = logging.getLogger(__name__)

SECTOR = "education"

PROMPT_TEMPLATE = """INSTRUCTIONS: Analyze the educational material provided and answer the question directly.

As a specialized educational assistant, you must:
- Explain concepts using only the educational material below
- Organize the answer didactically (steps, numbered lists, examples)
- Use appropriate pedagogical terminology
- Cite the material you rely on, e.g. [Document: name]
- State clearly when the information is not available

EDUCATIONAL MATERIAL:
{context}

STUDENT QUESTION: {question}

DIDACTIC ANSWER:
"""

STRUCTURE = re.compile(
    r"\b(?:objective|competenc(?:e|y|ies)|skills?|knowledge|learning|teaching|assessment|"
    r"evaluation|methodology|didactic)\b",
    re.IGNORECASE,
)
PEDAGOGICAL = re.compile(
    r"\b(?:explain|demonstrate|analy[sz]e|synthesi[sz]e|apply|understand|remember|"
    r"evaluate|create|example|exercise)\b",
    re.IGNORECASE,
)
ORGANIZATION = re.compile(
    r"\b(?:first|second|third|steps?|stages?|levels?|modules?|units?|chapters?|sections?)\b",
    re.IGNORECASE,
)
NUMBERED_LIST = re.compile(r"\d+\s*[.)]\s*\S")
BULLET = re.compile(r"^\s*[-*•]\s+\S", re.MULTILINE)
EXAMPLES = re.compile(r"\b(?:for example|example|such as:)", re.IGNORECASE)
HEDGING = phrase_pattern(HEDGING_PHRASES + ("in my teaching experience", "as an educator"))
CONTEXT_TERMS = ("education", "teaching", "learning", "student", "course", "program", "module")


def has_didactic_elements(answer: str) -> bool:
    """Numbered lists, bullets, examples, or colon-introduced multi-line content."""
    return bool(
        NUMBERED_LIST.search(answer)
        or BULLET.search(answer)
        or EXAMPLES.search(answer)
        or (":" in answer and "\n" in answer)
    )


def create_prompt(question: str, context: str) -> str:
    logger.debug(f"Creating education prompt for question: {question[:100]}")
    return fill_prompt(PROMPT_TEMPLATE, question, context, "No educational material available.")


def validate_response(answer: str) -> bool:
    if is_blank(answer):
        logger.warning("Empty education answer detected")
        return False
    if is_short_no_information(answer):
        return True

    has_structure = bool(STRUCTURE.search(answer))
    has_pedagogical = bool(PEDAGOGICAL.search(answer))
    has_organization = bool(ORGANIZATION.search(answer)) or has_document_tag(answer)
    appropriate_length = length_within(answer, 50, 3500)
    has_didactic = has_didactic_elements(answer)
    hedging = find_phrase(HEDGING, answer)

    valid = (
        (has_structure or has_pedagogical or has_organization)
        and appropriate_length
        and hedging is None
        and has_didactic
    )
    if not valid:
        log_rejection(
            SECTOR,
            has_structure=has_structure,
            has_pedagogical=has_pedagogical,
            has_organization=has_organization,
            appropriate_length=appropriate_length,
            has_didactic=has_didactic,
            no_hedging=hedging is None,
        )
    return valid


def create_fallback_response(question: str) -> str:
    return (
        f'I did not find specific educational material about "{question}" in the available resources. '
        "To explore this topic, review the course syllabus and reference materials "
        "or ask your instructor for guidance."
    )


def calculate_confidence_score(answer: str, context: str) -> float:
    if answer is None or context is None:
        return 0.0

    has_structure = bool(STRUCTURE.search(answer))
    score = 0.3
    if has_structure:
        score += 0.25
    if PEDAGOGICAL.search(answer):
        score += 0.25
    if ORGANIZATION.search(answer):
        score += 0.2
    if has_document_tag(answer):
        score += 0.15
    if has_didactic_elements(answer):
        score += 0.15
    if len(answer) < 100 and not is_no_information(answer) and not has_structure:
        score -= 0.3
    score += context_term_bonus(answer, context, CONTEXT_TERMS, per_term=0.05, cap=0.25)
    return clamp(score)


EDUCATION_POLICY = SectorPolicy(
    sector_name=SECTOR,
    description="Didactic answers organized as steps, lists and examples",
    create_prompt=create_prompt,
    validate_response=validate_response,
    create_fallback_response=create_fallback_response,
    calculate_confidence_score=calculate_confidence_score,
)
