"""Answer orchestration: retrieve, assemble, generate, validate, record."""
import time
import logging
from typing import Any, Dict, List, Optional

from models.answer import Answer, ModelSettings, QARecord
from models.chunk import RetrievedMatch
from models.sector import SectorConfiguration
from config import SIMILARITY_THRESHOLD, MAX_RESULTS

logger = logging.getLogger(__name__)


class RagError(RuntimeError):
    """Generation failed; the caller only ever sees the generic error answer."""


class RagService:
    """Answers questions from the indexed corpus using the effective sector policy."""

    NO_DOCUMENTS_ANSWER = (
        "No documents are loaded in the system yet. Upload documents before asking questions."
    )
    NO_RESULTS_ANSWER = (
        "I did not find relevant information in the loaded documents to answer this question. "
        "Try rephrasing it or check that the relevant documents have been uploaded."
    )
    ERROR_ANSWER = "An error occurred while processing your question. Please try again."

    def __init__(
        self,
        vector_store,
        retrieval_engine,
        context_builder,
        llm_client,
        sector_registry,
        sector_configuration,
        history_store,
        model_settings: Optional[ModelSettings] = None,
        encoder=None,
        similarity_threshold: float = SIMILARITY_THRESHOLD,
        max_results: int = MAX_RESULTS
    ):
        """
        Initialize the orchestrator.

        Args:
            vector_store: Chunk store, used for readiness counts
            retrieval_engine: RetrievalEngine
            context_builder: ContextBuilder
            llm_client: Provider exposing complete(prompt, model)
            sector_registry: SectorPolicyRegistry
            sector_configuration: SectorConfigurationService
            history_store: Store exposing append(record), count(), average_response_time_ms()
            model_settings: Models used unless a request overrides them
            encoder: Optional tiktoken encoding for prompt token logging
            similarity_threshold: Corpus-wide threshold when no scope configuration exists
            max_results: Corpus-wide result cap when no scope configuration exists
        """
        self.vector_store = vector_store
        self.retrieval_engine = retrieval_engine
        self.context_builder = context_builder
        self.llm_client = llm_client
        self.sector_registry = sector_registry
        self.sector_configuration = sector_configuration
        self.history_store = history_store
        self.model_settings = model_settings or ModelSettings()
        self.encoder = encoder
        self.similarity_threshold = similarity_threshold
        self.max_results = max_results

    def ask(
        self,
        question: str,
        session_id: Optional[str] = None,
        organization_id: Optional[str] = None,
        similarity_threshold: Optional[float] = None,
        max_results: Optional[int] = None,
        model_settings: Optional[ModelSettings] = None
    ) -> Answer:
        """
        Answer a question.

        Retrieval emptiness, generation failures and policy rejections all
        produce a normal Answer; only a blank question raises.

        Args:
            question: User question
            session_id: Optional session whose sector configuration applies first
            organization_id: Optional organization whose configuration applies second
            similarity_threshold: Per-call override of the retrieval threshold
            max_results: Per-call override of the result cap
            model_settings: Per-call override of the models

        Returns:
            Answer with sources, timing and model name

        Raises:
            ValueError: If the question is blank
        """
        if not question or not question.strip():
            raise ValueError("Question cannot be empty")

        question = question.strip()
        start_time = time.time()
        settings = model_settings or self.model_settings

        try:
            return self._answer(
                question, session_id, organization_id,
                similarity_threshold, max_results, settings, start_time
            )
        except RagError as e:
            logger.error(f"Generation failed for question '{question[:100]}': {e}", exc_info=True)
        except Exception as e:
            logger.error(f"Unexpected error answering question '{question[:100]}': {e}", exc_info=True)

        return self._canned(question, self.ERROR_ANSWER, settings, start_time)

    def is_system_ready(self) -> bool:
        """True when indexed chunks exist and none are waiting for embeddings."""
        return (
            self.vector_store.count_chunks_with_embedding() > 0
            and self.vector_store.count_chunks_without_embedding() == 0
        )

    def get_system_stats(self) -> Dict[str, Any]:
        indexed = self.vector_store.count_chunks_with_embedding()
        pending = self.vector_store.count_chunks_without_embedding()
        return {
            "indexed_chunks": indexed,
            "pending_embeddings": pending,
            "total_questions": self.history_store.count(),
            "average_response_time_ms": self.history_store.average_response_time_ms(),
            "system_ready": indexed > 0 and pending == 0,
            "chat_model": self.model_settings.chat_model,
            "embedding_model": self.model_settings.embedding_model,
        }

    def _answer(
        self,
        question: str,
        session_id: Optional[str],
        organization_id: Optional[str],
        similarity_threshold: Optional[float],
        max_results: Optional[int],
        settings: ModelSettings,
        start_time: float
    ) -> Answer:
        # One lookup so the policy and the retrieval settings come from the same configuration
        configuration = self.sector_configuration.get_effective_configuration(session_id, organization_id)
        if configuration is not None:
            sector = configuration.sector
        else:
            sector = self.sector_configuration.get_default_sector()
        policy = self.sector_registry.get_service(sector)
        logger.info(f"Answering with sector '{sector}'", extra={"sector": sector})

        if self.vector_store.count_chunks_with_embedding() == 0:
            logger.warning("No indexed chunks; returning no-documents answer")
            return self._canned(question, self.NO_DOCUMENTS_ANSWER, settings, start_time)

        threshold, limit = self._retrieval_limits(configuration, similarity_threshold, max_results)
        matches = self.retrieval_engine.retrieve(question, similarity_threshold=threshold, max_results=limit)
        if not matches:
            return self._canned(question, self.NO_RESULTS_ANSWER, settings, start_time)

        context = self.context_builder.build_context(matches)
        prompt = policy.create_prompt(question, context)
        if self.encoder is not None:
            logger.info(f"Prompt size: {len(self.encoder.encode(prompt))} tokens, {len(context)} context chars")

        try:
            answer_text = self.llm_client.complete(prompt, settings.chat_model)
        except Exception as e:
            raise RagError(f"Language model failed: {e}") from e
        if not answer_text or not answer_text.strip():
            raise RagError("Language model returned an empty answer")

        strict = configuration.settings.strict_validation if configuration else True
        if strict and not policy.validate_response(answer_text):
            logger.warning(f"Answer rejected by '{policy.sector_name}' policy; using fallback")
            answer_text = policy.create_fallback_response(question)

        confidence = policy.calculate_confidence_score(answer_text, context)
        response_time_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Answered in {response_time_ms}ms with {len(matches)} sources (confidence {confidence:.2f})",
            extra={"sector": policy.sector_name, "confidence": confidence, "response_time_ms": response_time_ms}
        )

        self._record(QARecord(
            question=question,
            answer=answer_text,
            context_used=context,
            sources_summary=self._summarize_sources(matches),
            model_used=settings.chat_model,
            response_time_ms=response_time_ms,
            sector_used=policy.sector_name,
            confidence_score=confidence,
        ))

        return Answer(
            question=question,
            answer=answer_text,
            sources=matches,
            response_time_ms=response_time_ms,
            model_used=settings.chat_model,
        )

    def _retrieval_limits(
        self,
        configuration: Optional[SectorConfiguration],
        similarity_threshold: Optional[float],
        max_results: Optional[int]
    ):
        """Per-call overrides win, then the scope configuration, then corpus defaults."""
        if configuration is not None:
            threshold, limit = configuration.settings.similarity_threshold, configuration.settings.max_results
        else:
            threshold, limit = self.similarity_threshold, self.max_results
        if similarity_threshold is not None:
            threshold = similarity_threshold
        if max_results is not None:
            limit = max_results
        return threshold, limit

    def _record(self, record: QARecord) -> None:
        try:
            self.history_store.append(record)
        except Exception as e:
            logger.error(f"Failed to record QA history: {e}", exc_info=True)

    @staticmethod
    def _summarize_sources(matches: List[RetrievedMatch]) -> Dict[str, Any]:
        return {
            "count": len(matches),
            "chunk_ids": [m.chunk.id for m in matches],
            "documents": sorted({m.chunk.document_name or m.chunk.document_id for m in matches}),
            "top_similarity": round(matches[0].similarity, 4) if matches else None,
        }

    @staticmethod
    def _canned(question: str, text: str, settings: ModelSettings, start_time: float) -> Answer:
        return Answer(
            question=question,
            answer=text,
            sources=[],
            response_time_ms=int((time.time() - start_time) * 1000),
            model_used=settings.chat_model,
        )
