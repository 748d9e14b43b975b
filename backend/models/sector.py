"""Sector policy and configuration models."""
from dataclasses import dataclass, field
from typing import Callable, Optional

from config import SECTOR_SIMILARITY_THRESHOLD, SECTOR_MAX_RESULTS


@dataclass(frozen=True)
class SectorPolicy:
    """
    Prompt and answer-acceptance rules for one sector.

    Attributes:
        sector_name: Lower-cased identifier ("legal", "medical", ...)
        create_prompt: (question, context) -> prompt
        validate_response: (answer) -> whether the answer is acceptable
        create_fallback_response: (question) -> replacement answer
        calculate_confidence_score: (answer, context) -> score in [0, 1]
        description: Human-readable summary
    """
    sector_name: str
    create_prompt: Callable[[str, str], str]
    validate_response: Callable[[str], bool]
    create_fallback_response: Callable[[str], str]
    calculate_confidence_score: Callable[[str, str], float]
    description: str = ""


@dataclass
class SectorSettings:
    """Retrieval and validation knobs attached to a sector configuration."""
    similarity_threshold: float = SECTOR_SIMILARITY_THRESHOLD
    max_results: int = SECTOR_MAX_RESULTS
    strict_validation: bool = True
    custom_prompt_id: Optional[str] = None


@dataclass(frozen=True)
class SectorConfiguration:
    """Sector chosen for a session or organization, with its settings."""
    sector: str
    settings: SectorSettings = field(default_factory=SectorSettings)
    created_at_millis: int = 0


@dataclass(frozen=True)
class ServiceInfo:
    """Describes which policy serves a sector."""
    sector: str
    policy_name: str
    specialized: bool
    description: str
