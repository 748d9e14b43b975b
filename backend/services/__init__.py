"""Services for the sector-aware RAG service."""
from .document_loader import TextExtractor, DocumentProcessingError
from .chunking_engine import ChunkingEngine
from .embedding_model import EmbeddingModel
from .vector_store import InMemoryVectorStore, SupabaseVectorStore, create_vector_store
from .history_store import InMemoryHistoryStore, SupabaseHistoryStore, create_history_store
from .embedding_indexer import EmbeddingIndexer, EmbeddingIndexError
from .retrieval_engine import RetrievalEngine, cosine_similarity
from .context_builder import ContextBuilder, ContextMetadata
from .llm_client import LLMClient, LLMResponse, LLMError, LLMClientError
from .sector_registry import SectorPolicyRegistry
from .sector_configuration import SectorConfigurationService
from .rag_service import RagService, RagError
from .document_service import DocumentService, DocumentNotFoundError

__all__ = ['TextExtractor', 'DocumentProcessingError', 'ChunkingEngine', 'EmbeddingModel', 'InMemoryVectorStore', 'SupabaseVectorStore', 'create_vector_store', 'InMemoryHistoryStore', 'SupabaseHistoryStore', 'create_history_store', 'EmbeddingIndexer', 'EmbeddingIndexError', 'RetrievalEngine', 'cosine_similarity', 'ContextBuilder', 'ContextMetadata', 'LLMClient', 'LLMResponse', 'LLMError', 'LLMClientError', 'SectorPolicyRegistry', 'SectorConfigurationService', 'RagService', 'RagError', 'DocumentService', 'DocumentNotFoundError']
