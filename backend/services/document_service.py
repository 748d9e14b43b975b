"""Document ingestion: upload, background processing, reprocessing and deletion."""
import hashlib
import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from models.document import Document, DocumentStatus
from services.document_loader import DocumentProcessingError
from config import UPLOAD_DIR, INGESTION_WORKERS

logger = logging.getLogger(__name__)


class DocumentNotFoundError(Exception):
    """No document exists with the given id."""


class DocumentService:
    """
    Owns the document lifecycle.

    Uploads return immediately with a PENDING document while a bounded pool
    of workers extracts, chunks and indexes in the background. Every
    processing attempt ends in COMPLETED or FAILED.
    """

    def __init__(
        self,
        vector_store,
        text_extractor,
        chunking_engine,
        indexer,
        upload_dir: str = UPLOAD_DIR,
        max_workers: int = INGESTION_WORKERS
    ):
        self.vector_store = vector_store
        self.text_extractor = text_extractor
        self.chunking_engine = chunking_engine
        self.indexer = indexer
        self.upload_dir = Path(upload_dir)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="ingest")
        logger.info(f"DocumentService initialized (upload_dir={upload_dir}, workers={max_workers})")

    def upload_document(self, filename: str, raw_bytes: bytes, background: bool = True) -> Document:
        """
        Store an uploaded file and schedule its processing.

        A file whose content was already uploaded returns the existing
        document unchanged.

        Args:
            filename: Original filename
            raw_bytes: File contents
            background: Process on the worker pool (True) or inline (False)

        Returns:
            The new (PENDING, or final state when inline) or existing document

        Raises:
            DocumentProcessingError: If the file is empty, unsupported or unreadable
        """
        filename = os.path.basename(filename or "")
        if not filename:
            raise DocumentProcessingError("Filename is required")
        if not self.text_extractor.validate(raw_bytes, filename):
            raise DocumentProcessingError(f"Invalid or unsupported file: {filename}")

        content_hash = hashlib.sha256(raw_bytes).hexdigest()
        existing = self.vector_store.find_document_by_hash(content_hash)
        if existing is not None:
            logger.info(f"Duplicate upload of {filename}; returning existing document {existing.id}")
            return existing

        document = Document(filename=filename, file_size=len(raw_bytes), content_hash=content_hash)
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        file_path = self.upload_dir / f"{document.id}{Path(filename).suffix.lower()}"
        file_path.write_bytes(raw_bytes)
        document.file_path = str(file_path)

        self.vector_store.save_document(document)
        logger.info(f"Uploaded {filename} as document {document.id} ({len(raw_bytes)} bytes)")

        return self._schedule(document, background)

    def process_document(self, document_id: str) -> Document:
        """
        Extract, chunk and index a stored document.

        Failures are recorded on the document (FAILED with the message)
        rather than raised. Chunks are only persisted by the indexer, group by
        group, and a failed document has all of its chunks removed.

        Raises:
            DocumentNotFoundError: If the document does not exist
        """
        document = self.get_document(document_id)
        document.status = DocumentStatus.PROCESSING
        document.processing_started_at = datetime.now()
        document.error_message = None
        self.vector_store.save_document(document)

        try:
            raw_bytes = Path(document.file_path).read_bytes()
            extracted = self.text_extractor.extract(raw_bytes, document.filename)
            chunks = self.chunking_engine.chunk_document(document, extracted)
            if not chunks:
                raise DocumentProcessingError("Document contains no extractable text")

            self.indexer.index_chunks(chunks)

            document.status = DocumentStatus.COMPLETED
            document.metadata = {
                **document.metadata,
                **extracted.metadata,
                "page_count": extracted.page_count,
                "chunk_count": len(chunks),
            }
            logger.info(f"Processed document {document.filename}: {len(chunks)} chunks")
        except Exception as e:
            document.status = DocumentStatus.FAILED
            document.error_message = str(e) or type(e).__name__
            logger.error(f"Processing failed for document {document.filename}: {e}", exc_info=True)
            self._discard_chunks(document)

        document.processing_completed_at = datetime.now()
        self.vector_store.save_document(document)
        return document

    def reprocess_document(self, document_id: str, background: bool = True) -> Document:
        """
        Drop a document's chunks and process it again from its stored file.

        Raises:
            DocumentNotFoundError: If the document does not exist
            DocumentProcessingError: If the stored file is missing; nothing is deleted
        """
        document = self.get_document(document_id)
        if not document.file_path or not os.path.exists(document.file_path):
            raise DocumentProcessingError(f"Stored file for document {document_id} no longer exists")

        removed = self.vector_store.delete_chunks_by_document(document_id)
        logger.info(f"Reprocessing document {document.filename}; removed {removed} chunks")

        document.status = DocumentStatus.PENDING
        document.error_message = None
        document.processing_started_at = None
        document.processing_completed_at = None
        self.vector_store.save_document(document)

        return self._schedule(document, background)

    def delete_document(self, document_id: str) -> None:
        """
        Delete a document, its chunks and its stored file.

        Raises:
            DocumentNotFoundError: If the document does not exist
        """
        document = self.get_document(document_id)
        self.vector_store.delete_document(document_id)
        if document.file_path and os.path.exists(document.file_path):
            os.remove(document.file_path)
        logger.info(f"Deleted document {document.filename} ({document_id})")

    def get_document(self, document_id: str) -> Document:
        document = self.vector_store.get_document(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document not found: {document_id}")
        return document

    def list_documents(self, status: Optional[DocumentStatus] = None) -> List[Document]:
        return self.vector_store.list_documents(status)

    def get_document_count(self, status: Optional[DocumentStatus] = None) -> int:
        return self.vector_store.count_documents(status)

    def get_chunk_count(self, document_id: str) -> int:
        return self.vector_store.count_chunks_for_document(document_id)

    def backfill_embeddings(self) -> int:
        """Index chunks left without embeddings by an interrupted run."""
        return self.indexer.backfill_missing_embeddings()

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _schedule(self, document: Document, background: bool) -> Document:
        if not background:
            return self.process_document(document.id)

        future: Future = self._executor.submit(self.process_document, document.id)
        future.add_done_callback(self._log_task_failure)
        return replace(document)

    def _discard_chunks(self, document: Document) -> None:
        # The FAILED status must still be saved if the cleanup itself fails
        try:
            removed = self.vector_store.delete_chunks_by_document(document.id)
        except Exception as e:
            logger.error(f"Could not remove chunks of failed document {document.id}: {e}", exc_info=True)
            return
        if removed:
            logger.info(f"Removed {removed} partially indexed chunks of {document.filename}")

    @staticmethod
    def _log_task_failure(future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            logger.error(f"Background processing task failed: {exc}", exc_info=exc)
