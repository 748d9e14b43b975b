"""Retrieval engine: cosine ranking of stored chunk embeddings against a query."""
import logging
from typing import List, Sequence, Union

import numpy as np

from models.chunk import RetrievedMatch
from config import SIMILARITY_THRESHOLD, MAX_RESULTS

logger = logging.getLogger(__name__)

Vector = Union[Sequence[float], np.ndarray]


def cosine_similarity(a: Vector, b: Vector) -> float:
    """
    Cosine similarity of two vectors, clipped to [-1, 1].

    Raises:
        ValueError: If the vectors differ in length
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        raise ValueError(f"Vector dimensions differ: {a.shape} vs {b.shape}")

    norm = np.linalg.norm(a) * np.linalg.norm(b)
    if norm == 0.0:
        return 0.0
    return float(np.clip(np.dot(a, b) / norm, -1.0, 1.0))


class RetrievalEngine:
    """Rank every embedded chunk against a query and keep the best matches."""

    def __init__(self, vector_store, indexer):
        """
        Initialize the retrieval engine.

        Args:
            vector_store: Store exposing find_chunks_with_embedding()
            indexer: EmbeddingIndexer used to embed the query text
        """
        self.vector_store = vector_store
        self.indexer = indexer
        logger.info("Initialized RetrievalEngine")

    def retrieve(
        self,
        query: str,
        similarity_threshold: float = SIMILARITY_THRESHOLD,
        max_results: int = MAX_RESULTS
    ) -> List[RetrievedMatch]:
        """
        Retrieve the chunks most similar to the query.

        1. Embed the query
        2. Load every chunk that has an embedding
        3. Keep chunks whose cosine similarity is strictly above the threshold
        4. Sort descending; ties keep storage order
        5. Return at most max_results matches

        Args:
            query: User question
            similarity_threshold: Exclusive lower bound on similarity
            max_results: Maximum number of matches

        Returns:
            Matches sorted by similarity, empty if nothing qualifies

        Raises:
            RuntimeError: If embedding the query fails
            ValueError: If stored and query vectors differ in dimension
        """
        if not query or not query.strip():
            logger.warning("Empty query string provided, returning empty results")
            return []
        if max_results <= 0:
            return []

        chunks = self.vector_store.find_chunks_with_embedding()
        if not chunks:
            logger.info("No indexed chunks available for retrieval")
            return []

        query_vector = self.indexer.embed_query(query)

        scored = [RetrievedMatch(chunk=c, similarity=cosine_similarity(query_vector, c.embedding)) for c in chunks]
        matches = [m for m in scored if m.similarity > similarity_threshold]
        # sorted() is stable, so equal scores keep storage order
        matches = sorted(matches, key=lambda m: m.similarity, reverse=True)[:max_results]

        if matches:
            logger.info(
                f"Retrieved {len(matches)} of {len(chunks)} chunks "
                f"(top score: {matches[0].similarity:.3f}, threshold: {similarity_threshold})"
            )
        else:
            logger.info(f"No chunks above similarity threshold {similarity_threshold}")
        return matches
