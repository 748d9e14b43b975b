"""Unit tests for LLMClient."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import Mock, patch
from services.llm_client import LLMClient, LLMResponse, LLMError, LLMClientError
from groq import RateLimitError, AuthenticationError, APIError, APITimeoutError


def _groq_returning(mock_groq_class, content, prompt_tokens=100, completion_tokens=10):
    mock_response = Mock()
    mock_response.choices = [Mock(message=Mock(content=content))]
    mock_response.usage = Mock(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens)

    mock_client = Mock()
    mock_client.chat.completions.create.return_value = mock_response
    mock_groq_class.return_value = mock_client
    return mock_client


class TestLLMClient:
    """Test suite for LLMClient class."""
    
    def test_initialization_with_api_key(self):
        """Test LLMClient initializes with provided API key."""
        client = LLMClient(api_key="test_key")
        assert client.api_key == "test_key"
        assert client.temperature == 0.2
    
    def test_initialization_without_api_key_raises_error(self):
        """Test LLMClient raises error when no API key provided."""
        with patch('services.llm_client.GROQ_API_KEY', None):
            with pytest.raises(ValueError, match="GROQ_API_KEY must be provided"):
                LLMClient()
    
    @patch('services.llm_client.Groq')
    def test_complete_returns_stripped_text(self, mock_groq_class):
        """Test complete() returns only the answer text."""
        _groq_returning(mock_groq_class, "  According to [Document: law.pdf], the deadline is 30 days.\n")
        
        client = LLMClient(api_key="test_key")
        text = client.complete("prompt")
        
        assert text == "According to [Document: law.pdf], the deadline is 30 days."
    
    @patch('services.llm_client.Groq')
    def test_complete_uses_default_model(self, mock_groq_class):
        """Test complete() falls back to the configured default model."""
        mock_client = _groq_returning(mock_groq_class, "Answer")
        
        client = LLMClient(api_key="test_key", default_model="llama-3.1-8b-instant")
        client.complete("prompt")
        
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "llama-3.1-8b-instant"
        assert kwargs["temperature"] == 0.2
        assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]
    
    @patch('services.llm_client.Groq')
    def test_complete_with_explicit_model(self, mock_groq_class):
        """Test complete() honours a per-request model."""
        mock_client = _groq_returning(mock_groq_class, "Answer")
        
        client = LLMClient(api_key="test_key")
        client.complete("prompt", model="llama-3.3-70b-versatile")
        
        assert mock_client.chat.completions.create.call_args.kwargs["model"] == "llama-3.3-70b-versatile"
    
    @patch('services.llm_client.Groq')
    def test_complete_empty_response_raises(self, mock_groq_class):
        """Test blank model output is reported as a structured error."""
        _groq_returning(mock_groq_class, "   ")
        
        client = LLMClient(api_key="test_key")
        
        with pytest.raises(LLMClientError) as exc_info:
            client.complete("prompt", model="llama-3.1-8b-instant")
        
        error = exc_info.value.error
        assert error.code == "EMPTY_RESPONSE"
        assert error.details["model"] == "llama-3.1-8b-instant"
    
    @patch('services.llm_client.Groq')
    def test_complete_none_content_raises(self, mock_groq_class):
        """Test a missing message body is treated as empty."""
        _groq_returning(mock_groq_class, None)
        
        client = LLMClient(api_key="test_key")
        
        with pytest.raises(LLMClientError) as exc_info:
            client.complete("prompt")
        assert exc_info.value.error.code == "EMPTY_RESPONSE"
    
    @patch('services.llm_client.Groq')
    def test_generate_success(self, mock_groq_class):
        """Test generate() reports text, token usage and latency."""
        _groq_returning(mock_groq_class, "The notice period is 30 days.", prompt_tokens=150, completion_tokens=12)
        
        client = LLMClient(api_key="test_key")
        response = client.generate(model="llama-3.1-8b-instant", prompt="What is the notice period?")
        
        assert isinstance(response, LLMResponse)
        assert response.text == "The notice period is 30 days."
        assert response.tokens_input == 150
        assert response.tokens_output == 12
        assert response.model_used == "llama-3.1-8b-instant"
        assert isinstance(response.latency_ms, int)
        assert response.latency_ms >= 0
    
    @patch('services.llm_client.Groq')
    def test_generate_passes_max_tokens(self, mock_groq_class):
        mock_client = _groq_returning(mock_groq_class, "Answer")
        
        client = LLMClient(api_key="test_key")
        client.generate(model="llama-3.1-8b-instant", prompt="p", max_tokens=256)
        
        assert mock_client.chat.completions.create.call_args.kwargs["max_tokens"] == 256
    
    @pytest.mark.parametrize("side_effect, code, message_part", [
        (Exception("API Error"), "UNKNOWN_ERROR", "Unexpected error"),
        (RateLimitError(message="Rate limit exceeded", response=Mock(status_code=429), body=None),
         "RATE_LIMIT_ERROR", "Rate limit exceeded"),
        (AuthenticationError(message="Invalid API key", response=Mock(status_code=401), body=None),
         "AUTHENTICATION_ERROR", "Authentication failed"),
        (APITimeoutError(request=Mock()), "TIMEOUT_ERROR", "timed out"),
        (APIError(message="Service unavailable", request=Mock(), body=None), "API_ERROR", "Groq API error"),
    ])
    @patch('services.llm_client.Groq')
    def test_generate_maps_errors(self, mock_groq_class, side_effect, code, message_part):
        """Test provider failures surface as structured LLMClientError."""
        mock_client = Mock()
        mock_client.chat.completions.create.side_effect = side_effect
        mock_groq_class.return_value = mock_client
        
        client = LLMClient(api_key="test_key")
        
        with pytest.raises(LLMClientError) as exc_info:
            client.generate(model="llama-3.1-8b-instant", prompt="Test prompt")
        
        error = exc_info.value.error
        assert isinstance(error, LLMError)
        assert error.code == code
        assert message_part in error.message
        assert error.details["model"] == "llama-3.1-8b-instant"
        assert isinstance(error.details["latency_ms"], int)
    
    @patch('services.llm_client.Groq')
    def test_rate_limit_error_suggests_retry(self, mock_groq_class):
        mock_client = Mock()
        mock_client.chat.completions.create.side_effect = RateLimitError(
            message="Rate limit exceeded",
            response=Mock(status_code=429),
            body=None
        )
        mock_groq_class.return_value = mock_client
        
        client = LLMClient(api_key="test_key")
        
        with pytest.raises(LLMClientError) as exc_info:
            client.complete("Test prompt")
        assert exc_info.value.error.details["retry_after"] == 60
    
    @patch('services.llm_client.Groq')
    def test_unknown_error_records_type(self, mock_groq_class):
        mock_client = Mock()
        mock_client.chat.completions.create.side_effect = KeyError("choices")
        mock_groq_class.return_value = mock_client
        
        client = LLMClient(api_key="test_key")
        
        with pytest.raises(LLMClientError) as exc_info:
            client.complete("Test prompt")
        assert exc_info.value.error.details["error_type"] == "KeyError"
