"""Default policy: used when no sector is configured or the sector is unknown."""
import logging

from models.sector import SectorPolicy
from services.sectors.base import clamp, fill_prompt, is_blank, is_no_information

logger = logging.getLogger(__name__)

SECTOR = "default"

PROMPT_TEMPLATE = """INSTRUCTIONS: Answer the question using only the information in the context below.

Rules:
- Do not add information that is not in the context
- Cite the source document when possible, e.g. [Document: name]
- If the context does not contain the answer, say that you did not find the information

CONTEXT:
{context}

QUESTION: {question}

ANSWER:
"""


def create_prompt(question: str, context: str) -> str:
    return fill_prompt(PROMPT_TEMPLATE, question, context, "No context available.")


def validate_response(answer: str) -> bool:
    """Reject only empty, too short or too long answers."""
    if is_blank(answer):
        return False
    if not 20 <= len(answer) <= 3000:
        logger.warning(f"Default answer failed length check ({len(answer)} chars)")
        return False
    return not (is_no_information(answer) and len(answer) < 50)


def create_fallback_response(question: str) -> str:
    return (
        f'I did not find enough information about "{question}" in the available documents. '
        "Try rephrasing the question or uploading documents that cover this topic."
    )


def calculate_confidence_score(answer: str, context: str) -> float:
    if answer is None or context is None:
        return 0.0

    score = 0.5
    if 50 < len(answer) < 2000:
        score += 0.2
    if not is_no_information(answer):
        score += 0.3
    return clamp(score)


DEFAULT_POLICY = SectorPolicy(
    sector_name=SECTOR,
    description="Generic grounded answers with basic length checks",
    create_prompt=create_prompt,
    validate_response=validate_response,
    create_fallback_response=create_fallback_response,
    calculate_confidence_score=calculate_confidence_score,
)
