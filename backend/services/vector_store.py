"""Document and chunk persistence: in-memory and Supabase pgvector backends."""
import json
import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional

import numpy as np
from supabase import create_client, Client

from models.chunk import Chunk
from models.document import Document, DocumentStatus
from config import SUPABASE_URL, SUPABASE_KEY, STORAGE_BACKEND

logger = logging.getLogger(__name__)

PAGE_SIZE = 1000


class InMemoryVectorStore:
    """Process-local store for documents and chunks, safe for concurrent use."""

    def __init__(self):
        self._lock = threading.RLock()
        self._documents: Dict[str, Document] = {}
        # dict preserves insertion order, which retrieval uses to break ties
        self._chunks: Dict[str, Chunk] = {}
        logger.info("Initialized InMemoryVectorStore")

    # Documents

    def save_document(self, document: Document) -> Document:
        with self._lock:
            self._documents[document.id] = replace(document, metadata=dict(document.metadata))
        return document

    def get_document(self, document_id: str) -> Optional[Document]:
        with self._lock:
            document = self._documents.get(document_id)
            return replace(document) if document else None

    def find_document_by_hash(self, content_hash: str) -> Optional[Document]:
        with self._lock:
            for document in self._documents.values():
                if document.content_hash == content_hash:
                    return replace(document)
        return None

    def list_documents(self, status: Optional[DocumentStatus] = None) -> List[Document]:
        with self._lock:
            documents = [replace(d) for d in self._documents.values() if status is None or d.status == status]
        return sorted(documents, key=lambda d: d.upload_date, reverse=True)

    def delete_document(self, document_id: str) -> bool:
        """Delete a document together with its chunks."""
        with self._lock:
            if document_id not in self._documents:
                return False
            self.delete_chunks_by_document(document_id)
            del self._documents[document_id]
        return True

    def count_documents(self, status: Optional[DocumentStatus] = None) -> int:
        with self._lock:
            return sum(1 for d in self._documents.values() if status is None or d.status == status)

    # Chunks

    def save_chunks(self, chunks: List[Chunk]) -> None:
        """Upsert a group of chunks in one step."""
        with self._lock:
            for chunk in chunks:
                self._chunks[chunk.id] = replace(chunk, metadata=dict(chunk.metadata))

    def delete_chunks_by_document(self, document_id: str) -> int:
        with self._lock:
            doomed = [cid for cid, c in self._chunks.items() if c.document_id == document_id]
            for chunk_id in doomed:
                del self._chunks[chunk_id]
        return len(doomed)

    def find_chunks_with_embedding(self) -> List[Chunk]:
        return self._select_chunks(lambda c: c.has_embedding)

    def find_chunks_without_embedding(self) -> List[Chunk]:
        return self._select_chunks(lambda c: not c.has_embedding)

    def find_chunks_by_document(self, document_id: str) -> List[Chunk]:
        chunks = self._select_chunks(lambda c: c.document_id == document_id)
        return sorted(chunks, key=lambda c: c.index)

    def count_chunks(self) -> int:
        with self._lock:
            return len(self._chunks)

    def count_chunks_for_document(self, document_id: str) -> int:
        with self._lock:
            return sum(1 for c in self._chunks.values() if c.document_id == document_id)

    def count_chunks_with_embedding(self) -> int:
        with self._lock:
            return sum(1 for c in self._chunks.values() if c.has_embedding)

    def count_chunks_without_embedding(self) -> int:
        with self._lock:
            return sum(1 for c in self._chunks.values() if not c.has_embedding)

    def _select_chunks(self, predicate) -> List[Chunk]:
        with self._lock:
            selected = []
            for chunk in self._chunks.values():
                if predicate(chunk):
                    document = self._documents.get(chunk.document_id)
                    selected.append(replace(
                        chunk,
                        document_name=document.filename if document else chunk.document_name,
                    ))
            return selected


class SupabaseVectorStore:
    """Store documents and chunk embeddings in Supabase (Postgres + pgvector)."""

    def __init__(
        self,
        supabase_url: Optional[str] = SUPABASE_URL,
        supabase_key: Optional[str] = SUPABASE_KEY,
        documents_table: str = "documents",
        chunks_table: str = "document_chunks"
    ):
        """
        Initialize the store with a Supabase client.

        Args:
            supabase_url: Supabase project URL
            supabase_key: Supabase API key
            documents_table: Table holding document rows
            chunks_table: Table holding chunk rows with a vector `embedding` column

        Raises:
            ValueError: If Supabase credentials are missing
        """
        if not supabase_url or not supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY environment variables are required")

        self.documents_table = documents_table
        self.chunks_table = chunks_table
        self.client: Client = create_client(supabase_url, supabase_key)

        logger.info(f"Initialized SupabaseVectorStore with tables: {documents_table}, {chunks_table}")

    # Documents

    def save_document(self, document: Document) -> Document:
        try:
            self.client.table(self.documents_table).upsert(self._document_to_row(document)).execute()
            return document
        except Exception as e:
            error_msg = f"Failed to save document {document.id}: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

    def get_document(self, document_id: str) -> Optional[Document]:
        try:
            response = self.client.table(self.documents_table).select("*").eq("id", document_id).execute()
        except Exception as e:
            error_msg = f"Failed to load document {document_id}: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)
        return self._row_to_document(response.data[0]) if response.data else None

    def find_document_by_hash(self, content_hash: str) -> Optional[Document]:
        try:
            response = (
                self.client.table(self.documents_table)
                .select("*").eq("content_hash", content_hash).limit(1).execute()
            )
        except Exception as e:
            error_msg = f"Failed to look up document by hash: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)
        return self._row_to_document(response.data[0]) if response.data else None

    def list_documents(self, status: Optional[DocumentStatus] = None) -> List[Document]:
        def build(query):
            query = query.select("*")
            if status is not None:
                query = query.eq("status", status.value)
            return query.order("upload_date", desc=True)

        return [self._row_to_document(row) for row in self._fetch_all(self.documents_table, build)]

    def delete_document(self, document_id: str) -> bool:
        """Delete a document together with its chunks."""
        if self.get_document(document_id) is None:
            return False
        self.delete_chunks_by_document(document_id)
        try:
            self.client.table(self.documents_table).delete().eq("id", document_id).execute()
        except Exception as e:
            error_msg = f"Failed to delete document {document_id}: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)
        return True

    def count_documents(self, status: Optional[DocumentStatus] = None) -> int:
        query = self.client.table(self.documents_table).select("id", count="exact")
        if status is not None:
            query = query.eq("status", status.value)
        return self._count(query)

    # Chunks

    def save_chunks(self, chunks: List[Chunk]) -> None:
        """Upsert a group of chunks in a single request."""
        if not chunks:
            return
        try:
            rows = [self._chunk_to_row(chunk) for chunk in chunks]
            self.client.table(self.chunks_table).upsert(rows).execute()
            logger.debug(f"Saved {len(rows)} chunks")
        except Exception as e:
            error_msg = f"Failed to save chunks: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

    def delete_chunks_by_document(self, document_id: str) -> int:
        existing = self.count_chunks_for_document(document_id)
        try:
            self.client.table(self.chunks_table).delete().eq("document_id", document_id).execute()
        except Exception as e:
            error_msg = f"Failed to delete chunks of document {document_id}: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)
        return existing

    def find_chunks_with_embedding(self) -> List[Chunk]:
        return self._load_chunks(lambda q: q.not_.is_("embedding", "null"))

    def find_chunks_without_embedding(self) -> List[Chunk]:
        return self._load_chunks(lambda q: q.is_("embedding", "null"))

    def find_chunks_by_document(self, document_id: str) -> List[Chunk]:
        chunks = self._load_chunks(lambda q: q.eq("document_id", document_id))
        return sorted(chunks, key=lambda c: c.index)

    def count_chunks(self) -> int:
        return self._count(self.client.table(self.chunks_table).select("id", count="exact"))

    def count_chunks_for_document(self, document_id: str) -> int:
        return self._count(
            self.client.table(self.chunks_table).select("id", count="exact").eq("document_id", document_id)
        )

    def count_chunks_with_embedding(self) -> int:
        return self._count(
            self.client.table(self.chunks_table).select("id", count="exact").not_.is_("embedding", "null")
        )

    def count_chunks_without_embedding(self) -> int:
        return self._count(
            self.client.table(self.chunks_table).select("id", count="exact").is_("embedding", "null")
        )

    # Helpers

    def _load_chunks(self, apply_filter) -> List[Chunk]:
        rows = self._fetch_all(
            self.chunks_table,
            lambda query: apply_filter(query.select("*")).order("created_at").order("chunk_index"),
        )
        names = self._document_names()
        return [self._row_to_chunk(row, names.get(row["document_id"])) for row in rows]

    def _document_names(self) -> Dict[str, str]:
        rows = self._fetch_all(self.documents_table, lambda query: query.select("id, filename"))
        return {row["id"]: row["filename"] for row in rows}

    def _fetch_all(self, table: str, build) -> List[Dict[str, Any]]:
        """Read every matching row, PAGE_SIZE rows per request."""
        rows: List[Dict[str, Any]] = []
        start = 0
        try:
            while True:
                response = build(self.client.table(table)).range(start, start + PAGE_SIZE - 1).execute()
                batch = response.data or []
                rows.extend(batch)
                if len(batch) < PAGE_SIZE:
                    break
                start += PAGE_SIZE
        except Exception as e:
            error_msg = f"Failed to read {table}: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)
        return rows

    def _count(self, query) -> int:
        try:
            response = query.execute()
            return response.count if response.count is not None else 0
        except Exception as e:
            error_msg = f"Failed to count rows: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

    @staticmethod
    def _document_to_row(document: Document) -> Dict[str, Any]:
        def iso(value: Optional[datetime]) -> Optional[str]:
            return value.isoformat() if value else None

        return {
            "id": document.id,
            "filename": document.filename,
            "file_path": document.file_path,
            "file_size": document.file_size,
            "content_hash": document.content_hash,
            "status": document.status.value,
            "upload_date": iso(document.upload_date),
            "processing_started_at": iso(document.processing_started_at),
            "processing_completed_at": iso(document.processing_completed_at),
            "error_message": document.error_message,
            "metadata": document.metadata,
        }

    @staticmethod
    def _row_to_document(row: Dict[str, Any]) -> Document:
        return Document(
            id=row["id"],
            filename=row["filename"],
            file_path=row.get("file_path"),
            file_size=row.get("file_size") or 0,
            content_hash=row.get("content_hash"),
            status=DocumentStatus(row.get("status") or DocumentStatus.PENDING.value),
            upload_date=parse_timestamp(row.get("upload_date")) or datetime.now(),
            processing_started_at=parse_timestamp(row.get("processing_started_at")),
            processing_completed_at=parse_timestamp(row.get("processing_completed_at")),
            error_message=row.get("error_message"),
            metadata=row.get("metadata") or {},
        )

    @staticmethod
    def _chunk_to_row(chunk: Chunk) -> Dict[str, Any]:
        return {
            "id": chunk.id,
            "document_id": chunk.document_id,
            "chunk_index": chunk.index,
            "content": chunk.content,
            "char_start": chunk.char_start,
            "char_end": chunk.char_end,
            "page_number": chunk.page_number,
            "metadata": chunk.metadata,
            "embedding": chunk.embedding.tolist() if chunk.embedding is not None else None,
        }

    @staticmethod
    def _row_to_chunk(row: Dict[str, Any], document_name: Optional[str]) -> Chunk:
        return Chunk(
            id=row["id"],
            document_id=row["document_id"],
            index=row["chunk_index"],
            content=row["content"],
            char_start=row["char_start"],
            char_end=row["char_end"],
            page_number=row.get("page_number"),
            metadata=row.get("metadata") or {},
            embedding=parse_embedding(row.get("embedding")),
            document_name=document_name,
        )


def parse_embedding(value: Any) -> Optional[np.ndarray]:
    """
    Convert a stored embedding into a float vector.

    PostgREST returns pgvector columns as bracketed text ("[0.1,0.2]"),
    while some clients hand back plain lists.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = json.loads(value)
    if len(value) == 0:
        return None
    return np.asarray(value, dtype=np.float32)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a Supabase timestamp, normalizing 'Z' and odd microsecond precision."""
    if not value:
        return None
    value = value.replace("Z", "+00:00")
    if "." in value:
        head, tail = value.split(".", 1)
        digits = ""
        while tail and tail[0].isdigit():
            digits, tail = digits + tail[0], tail[1:]
        value = f"{head}.{digits[:6].ljust(6, '0')}{tail}"
    return datetime.fromisoformat(value)


def create_vector_store(backend: str = STORAGE_BACKEND):
    """
    Build the document/chunk store selected by configuration.

    Args:
        backend: "memory" or "supabase"

    Raises:
        ValueError: If the backend name is unknown
    """
    backend = backend.lower()
    if backend == "memory":
        logger.info("Creating in-memory vector store")
        return InMemoryVectorStore()
    if backend == "supabase":
        logger.info("Creating Supabase vector store")
        return SupabaseVectorStore()
    raise ValueError(f"Invalid STORAGE_BACKEND: {backend}. Must be 'memory' or 'supabase'.")
