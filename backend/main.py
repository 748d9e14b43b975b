"""Main entry point for the sector-aware RAG API."""
import logging
from typing import List, Optional

import tiktoken
from fastapi import FastAPI, File, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from config import (
    PORT, LOG_LEVEL, LOG_FORMAT, CORS_ORIGINS, STORAGE_BACKEND, SESSION_MAX_AGE_MS,
)
from logger import setup_logging
from models.answer import ModelSettings
from models.api import (
    QueryRequest, AnswerResponse, DocumentResponse, SectorConfigRequest, SectorConfigResponse,
    AvailableSectorsResponse, ServiceInfoResponse, CleanupRequest, CleanupResponse,
    SystemStatsResponse, BackfillResponse,
)
from models.document import DocumentStatus
from services.chunking_engine import ChunkingEngine
from services.context_builder import ContextBuilder
from services.document_loader import TextExtractor, DocumentProcessingError
from services.document_service import DocumentService, DocumentNotFoundError
from services.embedding_indexer import EmbeddingIndexer
from services.embedding_model import EmbeddingModel
from services.history_store import create_history_store
from services.llm_client import LLMClient
from services.rag_service import RagService
from services.retrieval_engine import RetrievalEngine
from services.sector_configuration import SectorConfigurationService
from services.sector_registry import SectorPolicyRegistry
from services.vector_store import create_vector_store

setup_logging(LOG_LEVEL, LOG_FORMAT)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Sector-aware RAG API",
    description="Question answering over uploaded documents with sector-specific answer policies",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services (will be done on startup)
rag_service: RagService = None
document_service: DocumentService = None
sector_registry: SectorPolicyRegistry = None
sector_configuration: SectorConfigurationService = None
tiktoken_encoder = None


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global rag_service, document_service, sector_registry, sector_configuration, tiktoken_encoder

    logger.info(f"Initializing services (storage backend: {STORAGE_BACKEND})...")

    try:
        # o200k_base approximates Llama 3 token counts
        tiktoken_encoder = tiktoken.get_encoding("o200k_base")

        vector_store = create_vector_store()
        history_store = create_history_store()

        embedding_model = EmbeddingModel()
        indexer = EmbeddingIndexer(embedding_model, vector_store)
        llm_client = LLMClient()

        sector_registry = SectorPolicyRegistry()
        sector_configuration = SectorConfigurationService(sector_registry)

        rag_service = RagService(
            vector_store=vector_store,
            retrieval_engine=RetrievalEngine(vector_store, indexer),
            context_builder=ContextBuilder(),
            llm_client=llm_client,
            sector_registry=sector_registry,
            sector_configuration=sector_configuration,
            history_store=history_store,
            model_settings=ModelSettings(),
            encoder=tiktoken_encoder,
        )
        document_service = DocumentService(
            vector_store=vector_store,
            text_extractor=TextExtractor(),
            chunking_engine=ChunkingEngine(),
            indexer=indexer,
        )

        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


@app.on_event("shutdown")
async def shutdown_event():
    if document_service is not None:
        document_service.shutdown(wait=False)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Sector-aware RAG API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "sector-rag",
        "version": "1.0.0",
        "systemReady": rag_service.is_system_ready() if rag_service else False,
    }


# Questions

@app.post("/query", response_model=AnswerResponse)
def query_endpoint(request: QueryRequest) -> AnswerResponse:
    """
    Answer a question from the indexed documents.

    The sector policy is resolved from the session, then the organization,
    then the global default. Retrieval emptiness, generation failures and
    rejected answers all come back as normal answers.
    """
    if not request.question or not request.question.strip():
        raise HTTPException(status_code=400, detail="Question field is required and cannot be empty")

    model_settings = None
    if request.chat_model:
        model_settings = rag_service.model_settings.with_chat_model(request.chat_model)

    logger.info(f"Processing query: {request.question[:100]}...")
    try:
        answer = rag_service.ask(
            request.question,
            session_id=request.session_id,
            organization_id=request.organization_id,
            similarity_threshold=request.similarity_threshold,
            max_results=request.max_results,
            model_settings=model_settings,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error processing query: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")

    return AnswerResponse.from_answer(answer)


@app.get("/system/stats", response_model=SystemStatsResponse)
def system_stats() -> SystemStatsResponse:
    stats = rag_service.get_system_stats()
    return SystemStatsResponse(
        **stats,
        total_documents=document_service.get_document_count(),
        completed_documents=document_service.get_document_count(DocumentStatus.COMPLETED),
        failed_documents=document_service.get_document_count(DocumentStatus.FAILED),
    )


# Documents

@app.post("/documents", response_model=DocumentResponse, status_code=202)
async def upload_document(file: UploadFile = File(...)) -> DocumentResponse:
    """Upload a PDF, text or markdown file; processing continues in the background."""
    raw_bytes = await file.read()
    try:
        document = document_service.upload_document(file.filename, raw_bytes)
    except DocumentProcessingError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return DocumentResponse.from_document(document)


@app.get("/documents", response_model=List[DocumentResponse])
def list_documents(status: Optional[DocumentStatus] = None) -> List[DocumentResponse]:
    return [DocumentResponse.from_document(d) for d in document_service.list_documents(status)]


@app.post("/documents/embeddings/backfill", response_model=BackfillResponse)
def backfill_embeddings() -> BackfillResponse:
    try:
        indexed = document_service.backfill_embeddings()
    except Exception as e:
        logger.error(f"Embedding backfill failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Embedding backfill failed")
    return BackfillResponse(indexed=indexed)


@app.get("/documents/{document_id}", response_model=DocumentResponse)
def get_document(document_id: str) -> DocumentResponse:
    try:
        document = document_service.get_document(document_id)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return DocumentResponse.from_document(document, document_service.get_chunk_count(document_id))


@app.delete("/documents/{document_id}", status_code=204)
def delete_document(document_id: str) -> None:
    try:
        document_service.delete_document(document_id)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.post("/documents/{document_id}/reprocess", response_model=DocumentResponse, status_code=202)
def reprocess_document(document_id: str) -> DocumentResponse:
    try:
        document = document_service.reprocess_document(document_id)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DocumentProcessingError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return DocumentResponse.from_document(document)


# Sector configuration

@app.get("/config/sector/available", response_model=AvailableSectorsResponse)
def available_sectors() -> AvailableSectorsResponse:
    return AvailableSectorsResponse(
        sectors=sector_registry.get_available_sectors(),
        default_sector=sector_configuration.get_default_sector(),
    )


@app.get("/config/sector/current", response_model=SectorConfigResponse)
def current_sector(
    session_id: Optional[str] = Query(default=None, alias="sessionId"),
    organization_id: Optional[str] = Query(default=None, alias="organizationId"),
) -> SectorConfigResponse:
    configuration = sector_configuration.get_effective_configuration(session_id, organization_id)
    if configuration is None:
        return SectorConfigResponse(
            sector=sector_configuration.get_default_sector(),
            session_id=session_id,
            organization_id=organization_id,
            message="Using global default sector",
        )
    return SectorConfigResponse.from_configuration(configuration, session_id, organization_id)


@app.post("/config/sector/default", response_model=SectorConfigResponse)
def set_default_sector(request: SectorConfigRequest) -> SectorConfigResponse:
    if not sector_configuration.set_default_sector(request.sector):
        raise HTTPException(status_code=400, detail=f"Unknown sector: {request.sector}")
    return SectorConfigResponse(sector=sector_configuration.get_default_sector(), message="Default sector updated")


@app.post("/config/sector/session", response_model=SectorConfigResponse)
def set_session_sector(request: SectorConfigRequest) -> SectorConfigResponse:
    if not request.session_id:
        raise HTTPException(status_code=400, detail="sessionId is required")
    settings = request.settings.to_settings() if request.settings else None
    if not sector_configuration.set_session_sector(request.session_id, request.sector, settings):
        raise HTTPException(status_code=400, detail=f"Unknown sector: {request.sector}")
    configuration = sector_configuration.get_session_configuration(request.session_id)
    return SectorConfigResponse.from_configuration(
        configuration, session_id=request.session_id, message="Session sector updated"
    )


@app.post("/config/sector/organization", response_model=SectorConfigResponse)
def set_organization_sector(request: SectorConfigRequest) -> SectorConfigResponse:
    if not request.organization_id:
        raise HTTPException(status_code=400, detail="organizationId is required")
    settings = request.settings.to_settings() if request.settings else None
    if not sector_configuration.set_organization_sector(request.organization_id, request.sector, settings):
        raise HTTPException(status_code=400, detail=f"Unknown sector: {request.sector}")
    configuration = sector_configuration.get_organization_configuration(request.organization_id)
    return SectorConfigResponse.from_configuration(
        configuration, organization_id=request.organization_id, message="Organization sector updated"
    )


@app.get("/config/sector/service-info/{sector}", response_model=ServiceInfoResponse)
def service_info(sector: str) -> ServiceInfoResponse:
    info = sector_registry.get_service_info(sector)
    return ServiceInfoResponse(
        sector=info.sector,
        policy_name=info.policy_name,
        specialized=info.specialized,
        description=info.description,
    )


@app.post("/config/sector/cleanup", response_model=CleanupResponse)
def cleanup_sessions(request: Optional[CleanupRequest] = None) -> CleanupResponse:
    max_age = request.max_age_millis if request and request.max_age_millis is not None else SESSION_MAX_AGE_MS
    removed = sector_configuration.cleanup_expired_sessions(max_age)
    return CleanupResponse(removed=removed, max_age_millis=max_age)


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting sector-aware RAG API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
