"""Request and response schemas for the HTTP API (camelCase JSON)."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.answer import Answer
from models.chunk import RetrievedMatch
from models.document import Document
from models.sector import SectorConfiguration, SectorSettings


class ApiModel(BaseModel):
    """Accepts both camelCase and snake_case input, emits camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QueryRequest(ApiModel):
    """Question with optional scope ids and per-call retrieval overrides."""
    question: str
    session_id: Optional[str] = None
    organization_id: Optional[str] = None
    similarity_threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    max_results: Optional[int] = Field(default=None, ge=1, le=50)
    chat_model: Optional[str] = None


class SourceResponse(ApiModel):
    chunk_id: str
    document_id: str
    document_name: Optional[str] = None
    chunk_index: int
    content: str
    similarity: float
    page_number: Optional[int] = None
    char_start: int
    char_end: int

    @classmethod
    def from_match(cls, match: RetrievedMatch) -> "SourceResponse":
        chunk = match.chunk
        return cls(
            chunk_id=chunk.id,
            document_id=chunk.document_id,
            document_name=chunk.document_name,
            chunk_index=chunk.index,
            content=chunk.content,
            similarity=match.similarity,
            page_number=chunk.page_number,
            char_start=chunk.char_start,
            char_end=chunk.char_end,
        )


class AnswerResponse(ApiModel):
    question: str
    answer: str
    sources: List[SourceResponse]
    response_time_ms: int
    model_used: str
    timestamp: datetime

    @classmethod
    def from_answer(cls, answer: Answer) -> "AnswerResponse":
        return cls(
            question=answer.question,
            answer=answer.answer,
            sources=[SourceResponse.from_match(m) for m in answer.sources],
            response_time_ms=answer.response_time_ms,
            model_used=answer.model_used,
            timestamp=answer.timestamp,
        )


class DocumentResponse(ApiModel):
    id: str
    filename: str
    file_size: int
    status: str
    upload_date: datetime
    processing_started_at: Optional[datetime] = None
    processing_completed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    chunk_count: Optional[int] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_document(cls, document: Document, chunk_count: Optional[int] = None) -> "DocumentResponse":
        return cls(
            id=document.id,
            filename=document.filename,
            file_size=document.file_size,
            status=document.status.value,
            upload_date=document.upload_date,
            processing_started_at=document.processing_started_at,
            processing_completed_at=document.processing_completed_at,
            error_message=document.error_message,
            chunk_count=chunk_count,
            metadata=document.metadata,
        )


class SectorSettingsModel(ApiModel):
    similarity_threshold: float = Field(default=SectorSettings().similarity_threshold, ge=0.0, le=1.0)
    max_results: int = Field(default=SectorSettings().max_results, ge=1, le=50)
    strict_validation: bool = True
    custom_prompt_id: Optional[str] = None

    def to_settings(self) -> SectorSettings:
        return SectorSettings(
            similarity_threshold=self.similarity_threshold,
            max_results=self.max_results,
            strict_validation=self.strict_validation,
            custom_prompt_id=self.custom_prompt_id,
        )

    @classmethod
    def from_settings(cls, settings: SectorSettings) -> "SectorSettingsModel":
        return cls(
            similarity_threshold=settings.similarity_threshold,
            max_results=settings.max_results,
            strict_validation=settings.strict_validation,
            custom_prompt_id=settings.custom_prompt_id,
        )


class SectorConfigRequest(ApiModel):
    sector: str
    session_id: Optional[str] = None
    organization_id: Optional[str] = None
    settings: Optional[SectorSettingsModel] = None


class SectorConfigResponse(ApiModel):
    sector: str
    session_id: Optional[str] = None
    organization_id: Optional[str] = None
    settings: Optional[SectorSettingsModel] = None
    created_at_millis: Optional[int] = None
    success: bool = True
    message: Optional[str] = None

    @classmethod
    def from_configuration(
        cls,
        configuration: SectorConfiguration,
        session_id: Optional[str] = None,
        organization_id: Optional[str] = None,
        message: Optional[str] = None
    ) -> "SectorConfigResponse":
        return cls(
            sector=configuration.sector,
            session_id=session_id,
            organization_id=organization_id,
            settings=SectorSettingsModel.from_settings(configuration.settings),
            created_at_millis=configuration.created_at_millis,
            message=message,
        )


class AvailableSectorsResponse(ApiModel):
    sectors: List[str]
    default_sector: str


class ServiceInfoResponse(ApiModel):
    sector: str
    policy_name: str
    specialized: bool
    description: str


class CleanupRequest(ApiModel):
    max_age_millis: Optional[int] = Field(default=None, ge=0)


class CleanupResponse(ApiModel):
    removed: int
    max_age_millis: int


class SystemStatsResponse(ApiModel):
    indexed_chunks: int
    pending_embeddings: int
    total_questions: int
    average_response_time_ms: Optional[float] = None
    system_ready: bool
    chat_model: str
    embedding_model: str
    total_documents: int = 0
    completed_documents: int = 0
    failed_documents: int = 0


class BackfillResponse(ApiModel):
    indexed: int
