"""Data models for the sector-aware RAG service."""
from .document import Document, DocumentStatus, ExtractedText
from .chunk import Chunk, RetrievedMatch
from .sector import SectorPolicy, SectorSettings, SectorConfiguration, ServiceInfo
from .answer import Answer, ModelSettings, QARecord

__all__ = [
    "Document",
    "DocumentStatus",
    "ExtractedText",
    "Chunk",
    "RetrievedMatch",
    "SectorPolicy",
    "SectorSettings",
    "SectorConfiguration",
    "ServiceInfo",
    "Answer",
    "ModelSettings",
    "QARecord",
]
