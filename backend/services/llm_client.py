"""LLM Client for OpenAI chat completions."""
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional
from openai import OpenAI
from openai import RateLimitError, AuthenticationError, APIError, APITimeoutError
import logging

from config import (
    OPENAI_API_KEY, OPENAI_TIMEOUT, CHAT_MODEL, CHAT_TEMPERATURE, CHAT_MAX_TOKENS,
)

logger = logging.getLogger(__name__)

EMPTY_ANSWER = "I apologize, but I could not generate a response."


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


class LLMClient:
    """Client for interfacing with the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: Optional[str] = OPENAI_API_KEY,
        model: str = CHAT_MODEL,
        temperature: float = CHAT_TEMPERATURE,
        max_tokens: int = CHAT_MAX_TOKENS,
        timeout: float = OPENAI_TIMEOUT,
        client: Optional[OpenAI] = None,
    ):
        """
        Initialize LLM client.

        The OpenAI client is created on first use, so a missing key only
        fails the calls that need it.

        Args:
            api_key: OpenAI API key (defaults to OPENAI_API_KEY from environment)
            model: Chat model name
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            timeout: Request timeout in seconds
            client: Pre-built OpenAI client (mainly for tests)
        """
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._client = client
        logger.info(f"LLMClient initialized with model: {model}")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) or self._client is not None

    def _get_client(self) -> OpenAI:
        if not self.is_configured:
            raise LLMClientError(LLMError(
                code="CONFIGURATION_ERROR",
                message="OPENAI_API_KEY is not set in environment variables",
                details={"model": self.model}
            ))
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key, timeout=self.timeout)
        return self._client

    def generate(self, messages: List[Dict[str, str]]) -> LLMResponse:
        """
        Generate a complete response.

        Args:
            messages: Chat messages (system + user)

        Returns:
            LLMResponse with text, token counts, and latency

        Raises:
            LLMClientError: Structured error with code, message, and details
        """
        client = self._get_client()
        start_time = time.time()

        try:
            logger.debug(f"Generating response with model: {self.model}")

            response = client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens
            )
        except Exception as e:
            raise self._map_error(e, start_time)

        latency_ms = int((time.time() - start_time) * 1000)

        text = None
        if response.choices:
            text = response.choices[0].message.content
        usage = getattr(response, "usage", None)
        tokens_input = getattr(usage, "prompt_tokens", 0) or 0
        tokens_output = getattr(usage, "completion_tokens", 0) or 0

        logger.info(
            f"Generated response: model={self.model}, "
            f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
            f"latency={latency_ms}ms"
        )

        return LLMResponse(
            text=text or EMPTY_ANSWER,
            tokens_input=tokens_input,
            tokens_output=tokens_output,
            latency_ms=latency_ms,
            model_used=self.model
        )

    def generate_stream(self, messages: List[Dict[str, str]]) -> Iterator[str]:
        """
        Stream response text fragments as the model produces them.

        Empty deltas are skipped. The provider stream is closed when the
        iterator finishes or is closed early by the consumer.

        Args:
            messages: Chat messages (system + user)

        Yields:
            Non-empty text fragments

        Raises:
            LLMClientError: On failure opening or reading the stream
        """
        client = self._get_client()
        start_time = time.time()

        try:
            stream = client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                stream=True
            )
        except Exception as e:
            raise self._map_error(e, start_time)

        fragments = 0
        try:
            for event in stream:
                if not event.choices:
                    continue
                content = event.choices[0].delta.content
                if content:
                    fragments += 1
                    yield content
        except GeneratorExit:
            logger.info(f"Stream closed by consumer after {fragments} fragments")
            raise
        except Exception as e:
            raise self._map_error(e, start_time)
        finally:
            stream.close()

        latency_ms = int((time.time() - start_time) * 1000)
        logger.info(f"Streamed response: model={self.model}, fragments={fragments}, latency={latency_ms}ms")

    def _map_error(self, e: Exception, start_time: float) -> LLMClientError:
        """Translate an OpenAI SDK exception into an LLMClientError and log it."""
        latency_ms = int((time.time() - start_time) * 1000)
        details: Dict[str, Any] = {
            "model": self.model,
            "latency_ms": latency_ms,
            "original_error": str(e)
        }

        if isinstance(e, RateLimitError):
            details["retry_after"] = 60
            error = LLMError(
                code="RATE_LIMIT_ERROR",
                message="Rate limit exceeded. Please try again in a few moments.",
                details=details
            )
        elif isinstance(e, AuthenticationError):
            error = LLMError(
                code="AUTHENTICATION_ERROR",
                message="Authentication failed. Please check your API key.",
                details=details
            )
        elif isinstance(e, APITimeoutError):
            error = LLMError(
                code="TIMEOUT_ERROR",
                message="Request timed out. Please try again.",
                details=details
            )
        elif isinstance(e, APIError):
            error = LLMError(
                code="API_ERROR",
                message=f"OpenAI API error: {str(e)}",
                details=details
            )
        else:
            details["error_type"] = type(e).__name__
            error = LLMError(
                code="UNKNOWN_ERROR",
                message=f"Unexpected error during generation: {str(e)}",
                details=details
            )

        logger.error(
            f"{error.code}: model={self.model}, latency={latency_ms}ms, error={e}",
            exc_info=e,
            extra={"error_code": error.code, "error_details": error.details}
        )
        return LLMClientError(error)
