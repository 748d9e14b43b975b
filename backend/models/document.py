"""Document data models."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid


class DocumentStatus(str, Enum):
    """Lifecycle of an uploaded document."""
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


@dataclass
class Document:
    """Represents an uploaded source document."""
    filename: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    file_path: Optional[str] = None
    file_size: int = 0
    content_hash: Optional[str] = None
    status: DocumentStatus = DocumentStatus.PENDING
    upload_date: datetime = field(default_factory=datetime.now)
    processing_started_at: Optional[datetime] = None
    processing_completed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ExtractedText:
    """Text extracted from a raw file."""
    text: str
    page_count: int
    metadata: Dict[str, Any] = field(default_factory=dict)
    page_offsets: List[int] = field(default_factory=list)  # start offset of each page in `text`
