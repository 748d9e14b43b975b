"""Answer and question-history data models."""
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import List, Optional

from config import CHAT_MODEL, EMBEDDING_MODEL
from models.chunk import RetrievedMatch


@dataclass(frozen=True)
class ModelSettings:
    """Models used to answer a request."""
    chat_model: str = CHAT_MODEL
    embedding_model: str = EMBEDDING_MODEL

    def with_chat_model(self, chat_model: str) -> "ModelSettings":
        return replace(self, chat_model=chat_model)


@dataclass
class Answer:
    """Result of answering one question."""
    question: str
    answer: str
    sources: List[RetrievedMatch]
    response_time_ms: int
    model_used: str
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class QARecord:
    """Append-only audit record written once per answered question."""
    question: str
    answer: str
    context_used: str
    sources_summary: dict
    model_used: str
    response_time_ms: int
    sector_used: str
    confidence_score: Optional[float] = None
    created_at: datetime = field(default_factory=datetime.now)
