"""Services for the Portfolio Assistant."""
from .content_loader import ContentLoader
from .chunking_engine import ChunkingEngine
from .cache import TTLCache
from .embedding_model import EmbeddingModel, EmbeddingConfigError
from .vector_store import VectorStore
from .retrieval_engine import RetrievalEngine, extract_citations, format_chunks_for_context
from .prompt_builder import PromptBuilder
from .llm_client import LLMClient, LLMResponse, LLMError, LLMClientError
from .responder import Responder, ChatTurn, RAGResponse
from .fallback_responder import LocalFallbackResponder
from .rag_pipeline import ProviderBackedResponder, RAGPipeline
from .rate_limiter import RateLimiter, RateLimitStatus
from .content_indexer import ContentIndexer, IndexResult

__all__ = [
    'ContentLoader', 'ChunkingEngine', 'TTLCache', 'EmbeddingModel', 'EmbeddingConfigError',
    'VectorStore', 'RetrievalEngine', 'extract_citations', 'format_chunks_for_context',
    'PromptBuilder', 'LLMClient', 'LLMResponse', 'LLMError', 'LLMClientError',
    'Responder', 'ChatTurn', 'RAGResponse', 'LocalFallbackResponder',
    'ProviderBackedResponder', 'RAGPipeline', 'RateLimiter', 'RateLimitStatus',
    'ContentIndexer', 'IndexResult',
]
