"""Embedding provider backed by the Hugging Face Inference API."""
import time
import logging
from typing import Any, Dict, List, Optional
import httpx
from config import HUGGINGFACE_API_KEY, EMBEDDING_MODEL

logger = logging.getLogger(__name__)

MAX_BACKOFF_SECONDS = 60.0


class EmbeddingModel:
    """Turns text into fixed-dimension vectors, returned in input order."""

    def __init__(
        self,
        api_key: Optional[str] = HUGGINGFACE_API_KEY,
        model_name: str = EMBEDDING_MODEL,
        max_retries: int = 5,
        initial_delay: float = 5.0,
        timeout: float = 120.0
    ):
        """
        Initialize the embedding client.

        Args:
            api_key: Hugging Face API key
            model_name: Feature-extraction model identifier
            max_retries: Attempts before giving up on 503s, timeouts and network errors
            initial_delay: First backoff delay in seconds, doubled after every retry
            timeout: Request timeout in seconds

        Raises:
            ValueError: If no API key is configured
        """
        if not api_key:
            raise ValueError("HUGGINGFACE_API_KEY environment variable is required")

        self.api_key = api_key
        self.model_name = model_name
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.timeout = timeout
        self.api_url = f"https://api-inference.huggingface.co/models/{model_name}"

        logger.info(f"Initialized EmbeddingModel with model: {model_name}")

    def embed_text(self, text: str) -> List[float]:
        """
        Embed a single text (used for queries).

        Raises:
            ValueError: If text is empty
            RuntimeError: If the API request fails after all retries
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        return self._embed_with_retry([text])[0]

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Embed several texts in one API call.

        Empty entries are rejected rather than dropped so the i-th vector
        always belongs to the i-th input.

        Args:
            texts: Texts to embed

        Returns:
            One vector per input text, same order

        Raises:
            ValueError: If the list is empty or any entry is blank
            RuntimeError: If the API request fails after all retries
        """
        if not texts:
            raise ValueError("Texts list cannot be empty")

        blank = [i for i, t in enumerate(texts) if not t or not t.strip()]
        if blank:
            raise ValueError(f"Texts at positions {blank} are empty")

        return self._embed_with_retry(list(texts))

    def _embed_with_retry(self, texts: List[str]) -> List[List[float]]:
        """
        Call the API with exponential backoff.

        Free-tier models sleep when idle and answer 503 while loading, so 503,
        timeouts and transport errors are retried; 401, 429 and other statuses
        fail immediately.
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }
        payload: Dict[str, Any] = {
            "inputs": texts,
            "options": {"wait_for_model": True}
        }

        delay = self.initial_delay
        last_error = None

        for attempt in range(1, self.max_retries + 1):
            try:
                start_time = time.time()
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(self.api_url, headers=headers, json=payload)
                elapsed = time.time() - start_time

                if response.status_code == 503:
                    last_error = f"Model loading (503) on attempt {attempt}/{self.max_retries}"
                    logger.warning(f"{last_error}. Retrying in {delay}s...")
                elif response.status_code == 429:
                    logger.error("Rate limit exceeded for Hugging Face API")
                    raise RuntimeError("Rate limit exceeded. Please try again later.")
                elif response.status_code == 401:
                    logger.error("Authentication failed for Hugging Face API")
                    raise RuntimeError("Invalid API key")
                elif response.status_code != 200:
                    error_msg = f"API request failed with status {response.status_code}: {response.text}"
                    logger.error(error_msg)
                    raise RuntimeError(error_msg)
                else:
                    embeddings = response.json()
                    if not isinstance(embeddings, list) or len(embeddings) != len(texts):
                        raise RuntimeError(
                            f"Expected {len(texts)} embeddings, got "
                            f"{len(embeddings) if isinstance(embeddings, list) else type(embeddings).__name__}"
                        )
                    logger.debug(f"Generated embeddings for {len(texts)} texts in {elapsed:.2f}s")
                    return embeddings

            except httpx.TimeoutException:
                last_error = f"Request timeout after {self.timeout}s"
                logger.error(f"{last_error} on attempt {attempt}/{self.max_retries}")
            except httpx.RequestError as e:
                last_error = f"Network error: {str(e)}"
                logger.error(f"{last_error} on attempt {attempt}/{self.max_retries}")

            if attempt < self.max_retries:
                time.sleep(delay)
                delay = min(delay * 2, MAX_BACKOFF_SECONDS)

        error_msg = f"Failed to generate embeddings after {self.max_retries} attempts. Last error: {last_error}"
        logger.error(error_msg)
        raise RuntimeError(error_msg)

    def warmup(self) -> bool:
        """
        Send a dummy query so the hosted model is loaded before real traffic.

        Returns:
            True if warmup succeeded, False otherwise
        """
        try:
            logger.info("Warming up embedding model...")
            start_time = time.time()
            self.embed_text("warmup query")
            logger.info(f"Model warmup completed in {time.time() - start_time:.1f}s")
            return True
        except Exception as e:
            logger.error(f"Model warmup failed: {str(e)}")
            return False
