"""Unit tests for LLMClient."""
import sys
from pathlib import Path
from unittest.mock import MagicMock, Mock, patch

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import httpx
import pytest
from openai import APIError, APITimeoutError, AuthenticationError, RateLimitError

from services.llm_client import EMPTY_ANSWER, LLMClient, LLMClientError, LLMResponse

MESSAGES = [
    {"role": "system", "content": "You are a portfolio assistant."},
    {"role": "user", "content": "Tell me about EchoLens"},
]

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def completion(text="Hello", prompt_tokens=10, completion_tokens=5):
    response = Mock()
    response.choices = [Mock(message=Mock(content=text))]
    response.usage = Mock(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens)
    return response


def delta(content):
    return Mock(choices=[Mock(delta=Mock(content=content))])


class FakeStream:
    """Iterable provider stream that records whether it was closed."""

    def __init__(self, events, error=None):
        self.events = events
        self.error = error
        self.close = Mock()

    def __iter__(self):
        for event in self.events:
            yield event
        if self.error:
            raise self.error


@pytest.fixture
def openai_client():
    return MagicMock()


@pytest.fixture
def llm(openai_client):
    return LLMClient(api_key="test-key", client=openai_client)


class TestLLMClient:
    """Test suite for LLMClient."""

    def test_generate_success(self, llm, openai_client):
        openai_client.chat.completions.create.return_value = completion("EchoLens narrates images.")

        response = llm.generate(MESSAGES)

        assert isinstance(response, LLMResponse)
        assert response.text == "EchoLens narrates images."
        assert response.tokens_input == 10
        assert response.tokens_output == 5
        assert response.model_used == "gpt-4-turbo-preview"
        assert response.latency_ms >= 0
        openai_client.chat.completions.create.assert_called_once_with(
            model="gpt-4-turbo-preview",
            messages=MESSAGES,
            temperature=0.7,
            max_tokens=1000,
        )

    def test_generate_empty_content_uses_apology(self, llm, openai_client):
        openai_client.chat.completions.create.return_value = completion(text=None)

        assert llm.generate(MESSAGES).text == EMPTY_ANSWER

    def test_generate_without_usage(self, llm, openai_client):
        response = completion()
        response.usage = None
        openai_client.chat.completions.create.return_value = response

        result = llm.generate(MESSAGES)

        assert result.tokens_input == 0
        assert result.tokens_output == 0

    def test_missing_api_key(self):
        llm = LLMClient(api_key=None)

        assert llm.is_configured is False
        with pytest.raises(LLMClientError) as exc_info:
            llm.generate(MESSAGES)
        assert exc_info.value.error.code == "CONFIGURATION_ERROR"

    @patch("services.llm_client.OpenAI")
    def test_client_created_on_first_use(self, mock_openai):
        mock_openai.return_value.chat.completions.create.return_value = completion()
        llm = LLMClient(api_key="test-key", timeout=30.0)

        mock_openai.assert_not_called()
        llm.generate(MESSAGES)
        llm.generate(MESSAGES)

        mock_openai.assert_called_once_with(api_key="test-key", timeout=30.0)

    def test_rate_limit_error(self, llm, openai_client):
        openai_client.chat.completions.create.side_effect = RateLimitError(
            message="Rate limit exceeded",
            response=httpx.Response(429, request=REQUEST),
            body=None,
        )

        with pytest.raises(LLMClientError) as exc_info:
            llm.generate(MESSAGES)

        error = exc_info.value.error
        assert error.code == "RATE_LIMIT_ERROR"
        assert error.details["retry_after"] == 60
        assert error.details["model"] == "gpt-4-turbo-preview"

    def test_authentication_error(self, llm, openai_client):
        openai_client.chat.completions.create.side_effect = AuthenticationError(
            message="Invalid API key",
            response=httpx.Response(401, request=REQUEST),
            body=None,
        )

        with pytest.raises(LLMClientError) as exc_info:
            llm.generate(MESSAGES)

        assert exc_info.value.error.code == "AUTHENTICATION_ERROR"
        assert "API key" in exc_info.value.error.message

    def test_timeout_error(self, llm, openai_client):
        openai_client.chat.completions.create.side_effect = APITimeoutError(request=REQUEST)

        with pytest.raises(LLMClientError) as exc_info:
            llm.generate(MESSAGES)

        assert exc_info.value.error.code == "TIMEOUT_ERROR"

    def test_api_error(self, llm, openai_client):
        openai_client.chat.completions.create.side_effect = APIError(
            message="Internal server error", request=REQUEST, body=None
        )

        with pytest.raises(LLMClientError) as exc_info:
            llm.generate(MESSAGES)

        assert exc_info.value.error.code == "API_ERROR"
        assert "Internal server error" in exc_info.value.error.details["original_error"]

    def test_unknown_error(self, llm, openai_client):
        openai_client.chat.completions.create.side_effect = ValueError("Unexpected")

        with pytest.raises(LLMClientError) as exc_info:
            llm.generate(MESSAGES)

        assert exc_info.value.error.code == "UNKNOWN_ERROR"
        assert exc_info.value.error.details["error_type"] == "ValueError"


class TestLLMClientStreaming:
    """Test suite for LLMClient.generate_stream."""

    def test_stream_yields_non_empty_fragments(self, llm, openai_client):
        stream = FakeStream([delta("Echo"), delta(None), delta(""), delta("Lens"), Mock(choices=[])])
        openai_client.chat.completions.create.return_value = stream

        fragments = list(llm.generate_stream(MESSAGES))

        assert fragments == ["Echo", "Lens"]
        assert openai_client.chat.completions.create.call_args.kwargs["stream"] is True
        stream.close.assert_called_once()

    def test_stream_closed_when_consumer_stops(self, llm, openai_client):
        stream = FakeStream([delta("a"), delta("b"), delta("c")])
        openai_client.chat.completions.create.return_value = stream

        fragments = llm.generate_stream(MESSAGES)
        assert next(fragments) == "a"
        fragments.close()

        stream.close.assert_called_once()

    def test_stream_open_failure_is_mapped(self, llm, openai_client):
        openai_client.chat.completions.create.side_effect = APITimeoutError(request=REQUEST)

        with pytest.raises(LLMClientError) as exc_info:
            list(llm.generate_stream(MESSAGES))

        assert exc_info.value.error.code == "TIMEOUT_ERROR"

    def test_stream_failure_mid_way_is_mapped(self, llm, openai_client):
        stream = FakeStream([delta("partial")], error=APIError(message="reset", request=REQUEST, body=None))
        openai_client.chat.completions.create.return_value = stream

        fragments = llm.generate_stream(MESSAGES)
        assert next(fragments) == "partial"
        with pytest.raises(LLMClientError) as exc_info:
            next(fragments)

        assert exc_info.value.error.code == "API_ERROR"
        stream.close.assert_called_once()

    def test_stream_without_api_key(self):
        with pytest.raises(LLMClientError) as exc_info:
            next(LLMClient(api_key=None).generate_stream(MESSAGES))

        assert exc_info.value.error.code == "CONFIGURATION_ERROR"
