"""Language-model client for the Groq chat completions API."""
import time
from dataclasses import dataclass
from typing import Optional, Dict, Any
from groq import Groq
from groq import RateLimitError, AuthenticationError, APIError, APITimeoutError
import logging

from config import GROQ_API_KEY, CHAT_MODEL

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Response from LLM generation."""
    text: str
    tokens_input: int
    tokens_output: int
    latency_ms: int
    model_used: str


@dataclass
class LLMError:
    """Structured error response from LLM operations."""
    code: str
    message: str
    details: Dict[str, Any]


class LLMClientError(Exception):
    """Custom exception for LLM client errors with structured error information."""

    def __init__(self, error: LLMError):
        self.error = error
        super().__init__(error.message)


# (exception type, error code, caller-facing message), checked in order
_ERROR_MAP = (
    (RateLimitError, "RATE_LIMIT_ERROR", "Rate limit exceeded. Please try again in a few moments."),
    (AuthenticationError, "AUTHENTICATION_ERROR", "Authentication failed. Please check your API key."),
    (APITimeoutError, "TIMEOUT_ERROR", "Request timed out. Please try again."),
    (APIError, "API_ERROR", None),
)


class LLMClient:
    """Client for generating grounded answers with Groq-hosted models."""

    def __init__(self, api_key: Optional[str] = None, default_model: str = CHAT_MODEL, temperature: float = 0.2):
        """
        Initialize LLM client with Groq API key.

        Args:
            api_key: Groq API key (defaults to GROQ_API_KEY from environment)
            default_model: Model used when complete() is called without one
            temperature: Sampling temperature; kept low so answers stay close to the context
        """
        self.api_key = api_key or GROQ_API_KEY
        if not self.api_key:
            raise ValueError("GROQ_API_KEY must be provided or set in environment")

        self.default_model = default_model
        self.temperature = temperature
        self.client = Groq(api_key=self.api_key)
        logger.info(f"LLMClient initialized with default model {default_model}")

    def generate(self, model: str, prompt: str, max_tokens: int = 1024) -> LLMResponse:
        """
        Generate a response using the Groq API.

        Args:
            model: Groq model name
            prompt: Complete prompt with context and question
            max_tokens: Maximum tokens to generate

        Returns:
            LLMResponse with text, token counts, and latency

        Raises:
            LLMClientError: Structured error with code, message, and details
        """
        start_time = time.time()

        try:
            logger.debug(f"Generating response with model: {model}")
            response = self.client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=max_tokens,
                temperature=self.temperature
            )
        except Exception as e:
            raise self._wrap_error(e, model, int((time.time() - start_time) * 1000))

        latency_ms = int((time.time() - start_time) * 1000)
        text = response.choices[0].message.content or ""
        tokens_input = response.usage.prompt_tokens
        tokens_output = response.usage.completion_tokens

        logger.info(
            f"Generated response: model={model}, "
            f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
            f"latency={latency_ms}ms"
        )

        return LLMResponse(
            text=text,
            tokens_input=tokens_input,
            tokens_output=tokens_output,
            latency_ms=latency_ms,
            model_used=model
        )

    def complete(self, prompt: str, model: Optional[str] = None) -> str:
        """
        Generate and return only the answer text.

        Raises:
            LLMClientError: On any API failure, or EMPTY_RESPONSE when the model returns blank text
        """
        model = model or self.default_model
        response = self.generate(model=model, prompt=prompt)
        if not response.text or not response.text.strip():
            error = LLMError(
                code="EMPTY_RESPONSE",
                message="The language model returned an empty response.",
                details={"model": model, "latency_ms": response.latency_ms}
            )
            logger.error(f"Empty response: model={model}", extra={"error_code": error.code})
            raise LLMClientError(error)
        return response.text.strip()

    @staticmethod
    def _wrap_error(exc: Exception, model: str, latency_ms: int) -> LLMClientError:
        details: Dict[str, Any] = {"model": model, "latency_ms": latency_ms, "original_error": str(exc)}

        for exc_type, code, message in _ERROR_MAP:
            if isinstance(exc, exc_type):
                break
        else:
            code, message = "UNKNOWN_ERROR", f"Unexpected error during generation: {str(exc)}"
            details["error_type"] = type(exc).__name__

        if code == "API_ERROR":
            message = f"Groq API error: {str(exc)}"
        if code == "RATE_LIMIT_ERROR":
            details["retry_after"] = 60

        error = LLMError(code=code, message=message, details=details)
        logger.error(
            f"{code}: model={model}, latency={latency_ms}ms, error={exc}",
            exc_info=exc,
            extra={"error_code": error.code, "error_details": error.details}
        )
        return LLMClientError(error)
