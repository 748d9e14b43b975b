"""Sales sector: catalogue-grounded answers without unfounded promises."""
import logging
import re

from models.sector import SectorPolicy
from services.sectors.base import (
    HEDGING_PHRASES, clamp, context_term_bonus, fill_prompt, find_phrase, has_document_tag,
    is_blank, is_no_information, is_short_no_information, length_within, log_rejection,
    phrase_pattern,
)

logger = logging.getLogger(__name__)

SECTOR = "sales"

PROMPT_TEMPLATE = """INSTRUCTIONS: Analyze the commercial information provided and answer the question directly.

As a specialized sales assistant, you must:
- Answer only from the catalogues and commercial documentation below
- Give exact prices, conditions and availability when they are documented
- Never promise anything the documentation does not state
- Cite the documents you rely on, e.g. [Document: name]
- State clearly when the information is not available

COMMERCIAL DOCUMENTATION:
{context}

CUSTOMER QUESTION: {question}

COMMERCIAL ANSWER:
"""

COMMERCIAL_TERMS = re.compile(
    r"\b(?:products?|services?|price|cost|rate|offer|promotion|discount|warranty|"
    r"availability|stock|delivery|shipping)\b",
    re.IGNORECASE,
)
SALES_LANGUAGE = re.compile(
    r"\b(?:benefits?|features?|advantages?|quality|solution|proposal|recommendation|includes?|available)\b",
    re.IGNORECASE,
)
PRICING_TERMS = re.compile(
    r"[$€£]|\b(?:price|cost|rate|monthly|annual|yearly|per unit|starting at|from|up to|quote)\b",
    re.IGNORECASE,
)
AVAILABILITY_TERMS = re.compile(
    r"\b(?:available|stock|inventory|delivery|shipping|lead time|deadline|immediate|on request|made to order)\b",
    re.IGNORECASE,
)
COURTESY = re.compile(r"\b(?:you|your|our)\b", re.IGNORECASE)
UNFOUNDED_PROMISES = phrase_pattern((
    "we guarantee", "guaranteed", "we promise", "free forever",
    "best price on the market", "unique in the market", "unbeatable",
    "unlimited", "forever", "for life", "lifetime",
))
HEDGING = phrase_pattern(HEDGING_PHRASES + (
    "we usually sell", "we usually offer", "it typically costs",
    "in my sales experience", "as a salesperson",
))
CONTEXT_TERMS = ("product", "service", "sale", "commercial", "customer", "price", "offer")


def has_professional_structure(answer: str) -> bool:
    structured = ":" in answer or "•" in answer or "-" in answer
    return structured or bool(COURTESY.search(answer))


def create_prompt(question: str, context: str) -> str:
    logger.debug(f"Creating sales prompt for question: {question[:100]}")
    return fill_prompt(PROMPT_TEMPLATE, question, context, "No commercial documentation available.")


def validate_response(answer: str) -> bool:
    if is_blank(answer):
        logger.warning("Empty sales answer detected")
        return False
    if is_short_no_information(answer):
        return True

    has_commercial = bool(COMMERCIAL_TERMS.search(answer))
    has_sales_language = bool(SALES_LANGUAGE.search(answer))
    has_document = has_document_tag(answer)
    appropriate_length = length_within(answer, 50, 3000)
    promise = find_phrase(UNFOUNDED_PROMISES, answer)
    hedging = find_phrase(HEDGING, answer)

    valid = (
        (has_commercial or has_sales_language or has_document)
        and appropriate_length
        and promise is None
        and hedging is None
    )
    if not valid:
        log_rejection(
            SECTOR,
            has_commercial=has_commercial,
            has_sales_language=has_sales_language,
            has_document=has_document,
            appropriate_length=appropriate_length,
            no_promises=promise is None,
            no_hedging=hedging is None,
        )
    return valid


def create_fallback_response(question: str) -> str:
    return (
        f'I did not find specific commercial information about "{question}" in our catalogues and documentation. '
        "For up-to-date details on products, services and prices, please contact our sales team, "
        "who can provide accurate information and offers tailored to your needs."
    )


def calculate_confidence_score(answer: str, context: str) -> float:
    if answer is None or context is None:
        return 0.0

    has_commercial = bool(COMMERCIAL_TERMS.search(answer))
    score = 0.3
    if has_commercial:
        score += 0.25
    if SALES_LANGUAGE.search(answer):
        score += 0.2
    if PRICING_TERMS.search(answer):
        score += 0.15
    if AVAILABILITY_TERMS.search(answer):
        score += 0.1
    if has_document_tag(answer):
        score += 0.2
    if has_professional_structure(answer):
        score += 0.1
    if len(answer) < 100 and not is_no_information(answer) and not has_commercial:
        score -= 0.3
    if UNFOUNDED_PROMISES.search(answer):
        score -= 0.4
    score += context_term_bonus(answer, context, CONTEXT_TERMS, per_term=0.04, cap=0.2)
    return clamp(score)


SALES_POLICY = SectorPolicy(
    sector_name=SECTOR,
    description="Commercial answers grounded in catalogues, free of unfounded promises",
    create_prompt=create_prompt,
    validate_response=validate_response,
    create_fallback_response=create_fallback_response,
    calculate_confidence_score=calculate_confidence_score,
)
