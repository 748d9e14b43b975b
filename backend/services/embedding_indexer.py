"""Attaches embeddings to chunks in batches and persists them."""
import logging
from typing import List, Optional

import numpy as np

from models.chunk import Chunk
from config import EMBEDDING_BATCH_SIZE, EMBEDDING_DIMENSION

logger = logging.getLogger(__name__)


class EmbeddingIndexError(RuntimeError):
    """An embedding group could not be indexed; nothing from it was persisted."""


class EmbeddingIndexer:
    """Embeds chunk contents group by group and saves each group together."""

    def __init__(
        self,
        embedding_model,
        vector_store,
        batch_size: int = EMBEDDING_BATCH_SIZE,
        dimension: Optional[int] = EMBEDDING_DIMENSION
    ):
        """
        Initialize EmbeddingIndexer.

        Args:
            embedding_model: Provider exposing embed_batch() and embed_text()
            vector_store: Store exposing save_chunks() and find_chunks_without_embedding()
            batch_size: Maximum chunks per provider call
            dimension: Expected vector length, or None to accept any consistent length
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")

        self.embedding_model = embedding_model
        self.vector_store = vector_store
        self.batch_size = batch_size
        self.dimension = dimension

    def index_chunks(self, chunks: List[Chunk]) -> int:
        """
        Embed and persist chunks, preserving their order.

        Each group of at most batch_size chunks is embedded with one provider
        call. Vectors are only attached after the whole group validates, so a
        failing group leaves its chunks untouched and unsaved.

        Args:
            chunks: Chunks to index

        Returns:
            Number of chunks indexed

        Raises:
            EmbeddingIndexError: If any group fails; earlier groups stay saved
        """
        if not chunks:
            return 0

        total_groups = (len(chunks) + self.batch_size - 1) // self.batch_size
        for group_number, start in enumerate(range(0, len(chunks), self.batch_size), start=1):
            group = chunks[start:start + self.batch_size]
            vectors = self._embed_group(group, group_number)

            for chunk, vector in zip(group, vectors):
                chunk.embedding = vector
            self.vector_store.save_chunks(group)

            logger.info(
                f"Indexed batch {group_number}/{total_groups} ({len(group)} chunks)",
                extra={"batch": group_number, "total_batches": total_groups},
            )

        return len(chunks)

    def embed_query(self, text: str) -> np.ndarray:
        """Embed a single query text without batching."""
        vector = np.asarray(self.embedding_model.embed_text(text), dtype=np.float32)
        if self.dimension is not None and vector.shape != (self.dimension,):
            raise EmbeddingIndexError(
                f"Query embedding has shape {vector.shape}, expected ({self.dimension},)"
            )
        return vector

    def backfill_missing_embeddings(self) -> int:
        """
        Index every stored chunk that has no embedding yet.

        Returns:
            Number of chunks indexed
        """
        pending = self.vector_store.find_chunks_without_embedding()
        if not pending:
            logger.info("No chunks pending embedding")
            return 0

        logger.info(f"Backfilling embeddings for {len(pending)} chunks")
        pending.sort(key=lambda c: (c.document_id, c.index))
        return self.index_chunks(pending)

    def _embed_group(self, group: List[Chunk], group_number: int) -> List[np.ndarray]:
        try:
            raw_vectors = self.embedding_model.embed_batch([chunk.content for chunk in group])
        except (RuntimeError, ValueError) as e:
            logger.error(f"Embedding provider failed for batch {group_number}: {e}")
            raise EmbeddingIndexError(f"Embedding batch {group_number} failed: {e}") from e

        if len(raw_vectors) != len(group):
            raise EmbeddingIndexError(
                f"Embedding batch {group_number} returned {len(raw_vectors)} vectors for {len(group)} chunks"
            )

        vectors = [np.asarray(v, dtype=np.float32) for v in raw_vectors]
        expected = self.dimension if self.dimension is not None else len(vectors[0])
        for position, vector in enumerate(vectors):
            if vector.shape != (expected,):
                raise EmbeddingIndexError(
                    f"Embedding batch {group_number} item {position} has shape {vector.shape}, "
                    f"expected ({expected},)"
                )
        return vectors
