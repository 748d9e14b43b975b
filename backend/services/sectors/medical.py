"""Medical sector: evidence-based answers with a safety disclaimer on sensitive topics."""
import logging
import re

from models.sector import SectorPolicy
from services.sectors.base import (
    HEDGING_PHRASES, clamp, context_term_bonus, fill_prompt, find_phrase, has_document_tag,
    is_blank, is_no_information, is_short_no_information, length_within, log_rejection,
    phrase_pattern,
)

logger = logging.getLogger(__name__)

SECTOR = "medical"

PROMPT_TEMPLATE = """INSTRUCTIONS: Analyze the medical information provided and answer the question directly.

As a specialized medical assistant, you must:
- Answer exclusively from the documented scientific evidence below
- Use precise and appropriate medical terminology
- Cite the specific studies, clinical guidelines or protocols, e.g. [Document: name]
- Remind the reader to consult a healthcare professional when appropriate
- Be clear about the limits of the available information

MEDICAL AND SCIENTIFIC LITERATURE:
{context}

MEDICAL QUESTION: {question}

EVIDENCE-BASED MEDICAL ANSWER:
"""

TERMINOLOGY = re.compile(
    r"\b(?:diagnosis|treatment|symptoms?|pathology|etiology|pathophysiology|therapy|"
    r"medication|drug|dosage|dose|contraindications?|side effects?|prognosis)\b",
    re.IGNORECASE,
)
EVIDENCE = re.compile(
    r"\b(?:study|studies|research|clinical trial|meta-analysis|systematic review|"
    r"clinical guideline|protocol|evidence|according to|demonstrates|indicates)\b",
    re.IGNORECASE,
)
DISCLAIMER = re.compile(
    r"consult\w*.*?\b(?:doctor|physician|professional)|medical attention|medical advice|"
    r"not a substitute|does not replace|healthcare professional",
    re.IGNORECASE | re.DOTALL,
)
SENSITIVE_TOPICS = re.compile(
    r"\b(?:treatment|medication|drug|dosage|dose|diagnosis|symptoms|disease|pain|therapy|surgery)\b",
    re.IGNORECASE,
)
DANGEROUS_PHRASES = (
    "in my medical experience", "as a doctor", "in my practice",
    "i recommend taking", "you should take", "do not take", "stop taking",
    "i diagnose", "you suffer from", "you have the disease",
)
HEDGING = phrase_pattern(HEDGING_PHRASES + DANGEROUS_PHRASES)
CONTEXT_TERMS = ("medical", "health", "clinical", "treatment", "diagnosis", "patient", "disease")


def needs_safety_disclaimer(answer: str) -> bool:
    return bool(SENSITIVE_TOPICS.search(answer))


def create_prompt(question: str, context: str) -> str:
    logger.debug(f"Creating medical prompt for question: {question[:100]}")
    return fill_prompt(PROMPT_TEMPLATE, question, context, "No medical literature available.")


def validate_response(answer: str) -> bool:
    if is_blank(answer):
        logger.warning("Empty medical answer detected")
        return False
    if is_short_no_information(answer):
        return True

    has_terminology = bool(TERMINOLOGY.search(answer))
    has_evidence = bool(EVIDENCE.search(answer)) or has_document_tag(answer)
    appropriate_length = length_within(answer, 50, 4000)
    hedging = find_phrase(HEDGING, answer)
    safety_check = not needs_safety_disclaimer(answer) or bool(DISCLAIMER.search(answer))

    valid = (has_terminology or has_evidence) and appropriate_length and hedging is None and safety_check
    if not valid:
        log_rejection(
            SECTOR,
            has_terminology=has_terminology,
            has_evidence=has_evidence,
            appropriate_length=appropriate_length,
            no_hedging=hedging is None,
            safety_check=safety_check,
        )
    return valid


def create_fallback_response(question: str) -> str:
    return (
        f'I did not find specific medical information about "{question}" in the available literature. '
        "For accurate and up-to-date medical information, consult a qualified healthcare professional "
        "who can evaluate your particular situation. This answer is not a substitute for professional medical advice."
    )


def calculate_confidence_score(answer: str, context: str) -> float:
    if answer is None or context is None:
        return 0.0

    has_terminology = bool(TERMINOLOGY.search(answer))
    score = 0.2
    if has_terminology:
        score += 0.3
    if EVIDENCE.search(answer):
        score += 0.3
    if has_document_tag(answer):
        score += 0.2
    if needs_safety_disclaimer(answer) and DISCLAIMER.search(answer):
        score += 0.2
    if len(answer) < 100 and not is_no_information(answer) and not has_terminology:
        score -= 0.4
    score += context_term_bonus(answer, context, CONTEXT_TERMS, per_term=0.05, cap=0.3)
    return clamp(score)


MEDICAL_POLICY = SectorPolicy(
    sector_name=SECTOR,
    description="Evidence-based medical answers with professional-consultation disclaimers",
    create_prompt=create_prompt,
    validate_response=validate_response,
    create_fallback_response=create_fallback_response,
    calculate_confidence_score=calculate_confidence_score,
)
