"""Embedding model integration with the OpenAI embeddings API."""
import time
import logging
from typing import List, Optional

from openai import OpenAI

from models.chunk import ContentChunk, EmbeddingRecord
from services.cache import TTLCache, embedding_cache_key
from config import (
    OPENAI_API_KEY, OPENAI_TIMEOUT, EMBEDDING_MODEL, EMBEDDING_DIMENSIONS,
    EMBEDDING_BATCH_SIZE, EMBEDDING_BATCH_DELAY, EMBEDDING_CACHE_TTL,
)

logger = logging.getLogger(__name__)


class EmbeddingConfigError(ValueError):
    """Raised when embeddings are requested without an OpenAI API key."""


class EmbeddingModel:
    """Wrapper for the OpenAI embedding model with caching and batching."""

    def __init__(
        self,
        api_key: Optional[str] = OPENAI_API_KEY,
        model_name: str = EMBEDDING_MODEL,
        dimensions: int = EMBEDDING_DIMENSIONS,
        batch_size: int = EMBEDDING_BATCH_SIZE,
        batch_delay: float = EMBEDDING_BATCH_DELAY,
        cache: Optional[TTLCache] = None,
        timeout: float = OPENAI_TIMEOUT,
        client: Optional[OpenAI] = None,
    ):
        """
        Initialize the embedding model client.

        A missing API key is not an error here: the app still starts and
        answers from the local responder. Embedding calls raise
        EmbeddingConfigError instead.

        Args:
            api_key: OpenAI API key
            model_name: Embedding model identifier (default: text-embedding-3-small)
            dimensions: Output vector dimensionality
            batch_size: Maximum texts per API request
            batch_delay: Seconds to wait between batches
            cache: Cache for single-text embeddings (a 24h cache is created if omitted)
            timeout: Request timeout in seconds
            client: Pre-built OpenAI client (mainly for tests)
        """
        self.api_key = api_key
        self.model_name = model_name
        self.dimensions = dimensions
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.timeout = timeout
        self.cache = cache if cache is not None else TTLCache(EMBEDDING_CACHE_TTL, name="embedding cache")
        self._client = client

        logger.info(f"Initialized EmbeddingModel with model: {model_name}")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) or self._client is not None

    def _get_client(self) -> OpenAI:
        if not self.is_configured:
            raise EmbeddingConfigError(
                "OpenAI is not configured. Set OPENAI_API_KEY to generate embeddings."
            )
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key, timeout=self.timeout)
        return self._client

    def embed_text(self, text: str) -> List[float]:
        """
        Generate embedding for a single text string, consulting the cache first.

        Args:
            text: Text to embed

        Returns:
            Embedding vector as list of floats

        Raises:
            ValueError: If text is empty
            EmbeddingConfigError: If no API key is configured
            RuntimeError: If the API request fails
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        client = self._get_client()

        key = embedding_cache_key(text)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Embedding cache hit")
            return cached

        try:
            start_time = time.time()
            response = client.embeddings.create(
                model=self.model_name,
                input=text,
                dimensions=self.dimensions,
            )
            embedding = response.data[0].embedding
            logger.debug(f"Generated embedding in {time.time() - start_time:.2f}s")
        except Exception as e:
            error_msg = f"Failed to generate embedding: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

        self.cache.set(key, embedding)
        return embedding

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for many texts, in API batches of `batch_size`.

        The batch path bypasses the cache. Output order matches input order,
        and a failure in any batch fails the whole call.

        Args:
            texts: List of texts to embed

        Returns:
            List of embedding vectors

        Raises:
            ValueError: If texts list is empty
            EmbeddingConfigError: If no API key is configured
            RuntimeError: If any batch request fails
        """
        if not texts:
            raise ValueError("Texts list cannot be empty")

        client = self._get_client()
        embeddings: List[List[float]] = []

        for start in range(0, len(texts), self.batch_size):
            batch = texts[start:start + self.batch_size]
            try:
                response = client.embeddings.create(
                    model=self.model_name,
                    input=batch,
                    dimensions=self.dimensions,
                )
            except Exception as e:
                error_msg = (
                    f"Failed to generate embeddings for batch "
                    f"{start}-{start + len(batch)}: {str(e)}"
                )
                logger.error(error_msg)
                raise RuntimeError(error_msg)

            embeddings.extend(item.embedding for item in response.data)
            logger.debug(f"Embedded batch {start}-{start + len(batch)} of {len(texts)}")

            if start + self.batch_size < len(texts):
                time.sleep(self.batch_delay)

        return embeddings

    def embed_with_retry(
        self,
        text: str,
        max_retries: int = 3,
        initial_delay: float = 1.0
    ) -> List[float]:
        """
        Embed a single text, retrying provider failures with exponential backoff.

        The delay before retry n (0-based) is initial_delay * 2**n. Configuration
        errors are raised immediately without retrying.

        Args:
            text: Text to embed
            max_retries: Total number of attempts
            initial_delay: Delay in seconds before the first retry

        Returns:
            Embedding vector

        Raises:
            EmbeddingConfigError: If no API key is configured
            RuntimeError: The last provider error once all attempts are exhausted
        """
        last_error: Optional[Exception] = None

        for attempt in range(max_retries):
            try:
                return self.embed_text(text)
            except EmbeddingConfigError:
                raise
            except RuntimeError as e:
                last_error = e
                if attempt < max_retries - 1:
                    delay = initial_delay * (2 ** attempt)
                    logger.warning(
                        f"Embedding generation failed, retrying in {delay}s... "
                        f"(attempt {attempt + 1}/{max_retries})"
                    )
                    time.sleep(delay)

        if last_error is None:
            raise RuntimeError("Failed to generate embedding after retries")
        raise last_error

    def embed_chunks(self, chunks: List[ContentChunk]) -> List[EmbeddingRecord]:
        """
        Embed chunk contents and pair each chunk with its vector.

        Args:
            chunks: Chunks to embed

        Returns:
            EmbeddingRecords in the same order as the chunks
        """
        if not chunks:
            return []

        embeddings = self.embed_batch([chunk.content for chunk in chunks])
        return [
            EmbeddingRecord(
                id=chunk.id,
                content=chunk.content,
                metadata=chunk.metadata,
                embedding=embedding,
            )
            for chunk, embedding in zip(chunks, embeddings)
        ]
