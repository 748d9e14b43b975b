"""Legal sector: answers must be grounded in cited legal provisions."""
import logging
import re

from models.sector import SectorPolicy
from services.sectors.base import (
    HEDGING, clamp, context_term_bonus, fill_prompt, find_phrase, has_document_tag,
    is_blank, is_no_information, is_short_no_information, length_within, log_rejection,
)

logger = logging.getLogger(__name__)

SECTOR = "legal"

PROMPT_TEMPLATE = """INSTRUCTIONS: Analyze the legal documentation provided and answer the question directly.

As a specialized legal assistant, you must:
- Base the answer only on the legal documentation below
- Cite the specific articles, laws or sections that apply, e.g. [Document: name]
- Use precise legal terminology
- State clearly when the information is not available

LEGAL DOCUMENTATION:
{context}

LEGAL QUESTION: {question}

GROUNDED LEGAL ANSWER:
"""

CITATION = re.compile(
    r"\b(?:(?:articles?|laws?|decrees?|codes?|regulations?|statutes?|rules?|clauses?|paragraphs?|sections?)\b"
    r"|art\.)",
    re.IGNORECASE,
)
TERMINOLOGY = re.compile(
    r"\b(?:according to|pursuant to|in accordance with|establishes|provides|prescribes|stipulates|regulates)\b",
    re.IGNORECASE,
)
CONTEXT_TERMS = ("legal", "law", "article", "code", "statute", "regulation")


def create_prompt(question: str, context: str) -> str:
    logger.debug(f"Creating legal prompt for question: {question[:100]}")
    return fill_prompt(PROMPT_TEMPLATE, question, context, "No legal documentation available.")


def validate_response(answer: str) -> bool:
    if is_blank(answer):
        logger.warning("Empty legal answer detected")
        return False
    if is_short_no_information(answer):
        return True

    has_legal_elements = bool(
        CITATION.search(answer) or TERMINOLOGY.search(answer) or has_document_tag(answer)
    )
    appropriate_length = length_within(answer, 50, 3000)
    hedging = find_phrase(HEDGING, answer)
    if hedging:
        logger.debug(f"Hedging phrase detected in legal answer: '{hedging}'")

    valid = has_legal_elements and appropriate_length and hedging is None
    if not valid:
        log_rejection(
            SECTOR,
            has_legal_elements=has_legal_elements,
            appropriate_length=appropriate_length,
            no_hedging=hedging is None,
        )
    return valid


def create_fallback_response(question: str) -> str:
    return (
        f'I did not find specific legal information about "{question}" in the documentation provided. '
        "For a precise legal answer, consult the applicable regulations directly "
        "or contact a specialized legal advisor."
    )


def calculate_confidence_score(answer: str, context: str) -> float:
    if answer is None or context is None:
        return 0.0

    score = 0.3
    if CITATION.search(answer):
        score += 0.3
    if TERMINOLOGY.search(answer):
        score += 0.2
    if has_document_tag(answer):
        score += 0.2
    if len(answer) < 100 and not is_no_information(answer):
        score -= 0.3
    score += context_term_bonus(answer, context, CONTEXT_TERMS, per_term=0.05, cap=0.2)
    return clamp(score)


LEGAL_POLICY = SectorPolicy(
    sector_name=SECTOR,
    description="Legal answers citing articles, laws and sections from the documentation",
    create_prompt=create_prompt,
    validate_response=validate_response,
    create_fallback_response=create_fallback_response,
    calculate_confidence_score=calculate_confidence_score,
)
