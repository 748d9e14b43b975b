"""Chunk data models."""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import uuid

import numpy as np


@dataclass
class Chunk:
    """A bounded contiguous slice of a document's text, embedded and retrieved independently."""
    document_id: str
    index: int  # 0-based, contiguous within a document
    content: str
    char_start: int
    char_end: int
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    embedding: Optional[np.ndarray] = None
    page_number: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    document_name: Optional[str] = None  # resolved from the owning document on load

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None and len(self.embedding) > 0


@dataclass
class RetrievedMatch:
    """Chunk with its cosine similarity to a query; never persisted."""
    chunk: Chunk
    similarity: float  # -1.0 to 1.0
