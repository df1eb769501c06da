"""RAG pipeline: retrieval, prompt assembly and generation with a local fallback."""
import logging
from typing import Iterator, List, Optional

from models.api import ChatContext
from models.chunk import MetadataFilter, RetrievedChunk
from services.cache import TTLCache, query_cache_key
from services.fallback_responder import LocalFallbackResponder
from services.llm_client import LLMClient, LLMClientError
from services.prompt_builder import PromptBuilder
from services.responder import ChatTurn, RAGResponse, Responder
from services.retrieval_engine import RetrievalEngine, extract_citations
from services.vector_store import VectorStore
from config import TOP_K, MIN_SCORE, FALLBACK_MIN_SCORE, MAX_CONFIDENCE, QUERY_CACHE_TTL

logger = logging.getLogger(__name__)


def compute_confidence(chunks: List[RetrievedChunk], cap: float = MAX_CONFIDENCE) -> float:
    """Mean similarity of the retrieved chunks (0.5 when there are none), capped."""
    if not chunks:
        return min(0.5, cap)
    return min(sum(chunk.similarity for chunk in chunks) / len(chunks), cap)


class ProviderBackedResponder(Responder):
    """Answers from retrieved portfolio passages using the chat model."""

    def __init__(
        self,
        retrieval_engine: RetrievalEngine,
        llm_client: LLMClient,
        prompt_builder: Optional[PromptBuilder] = None,
        top_k: int = TOP_K,
        min_score: float = MIN_SCORE,
        fallback_min_score: float = FALLBACK_MIN_SCORE
    ):
        self.retrieval_engine = retrieval_engine
        self.llm_client = llm_client
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.top_k = top_k
        self.min_score = min_score
        self.fallback_min_score = fallback_min_score

    def prepare(self, query: str, context: Optional[ChatContext] = None) -> ChatTurn:
        """
        Retrieve passages, extract citations and build the chat messages.

        When the visitor is viewing an item, retrieval is restricted to that
        item and its chunks are boosted. If nothing is found, the same search is
        repeated at a lower similarity threshold, keeping any item scope.

        Raises:
            EmbeddingConfigError: If embeddings are not configured
            RuntimeError: If retrieval fails
        """
        metadata_filter = None
        boost_item_id = None
        if context and context.enabled:
            boost_item_id = context.scoped_item_id
            if context.item_id:
                metadata_filter = MetadataFilter(type=context.item_type, item_id=context.item_id)

        chunks = self.retrieval_engine.retrieve(
            query,
            limit=self.top_k,
            min_score=self.min_score,
            metadata_filter=metadata_filter,
            boost_item_id=boost_item_id,
        )

        if not chunks:
            logger.warning(f"No chunks retrieved, retrying with min_score={self.fallback_min_score}")
            chunks = self.retrieval_engine.retrieve(
                query,
                limit=self.top_k,
                min_score=self.fallback_min_score,
                metadata_filter=metadata_filter,
                boost_item_id=boost_item_id,
            )
            if chunks:
                logger.info(f"Found {len(chunks)} chunks with lower threshold")

        messages = self.prompt_builder.build_messages(query, chunks, context)
        logger.debug(f"User prompt preview: {messages[1]['content'][:500]}")

        return ChatTurn(
            query=query,
            context=context,
            citations=extract_citations(chunks),
            chunks=chunks,
            messages=messages,
            responder=self,
        )

    def respond(self, turn: ChatTurn) -> RAGResponse:
        """
        Raises:
            LLMClientError: If the chat completion fails
        """
        response = self.llm_client.generate(turn.messages)
        return RAGResponse(
            answer=response.text,
            citations=turn.citations,
            confidence=compute_confidence(turn.chunks),
        )

    def stream(self, turn: ChatTurn) -> Iterator[str]:
        """
        Raises:
            LLMClientError: If the chat completion stream fails
        """
        return self.llm_client.generate_stream(turn.messages)


class RAGPipeline:
    """
    Chooses a responder for each request and runs it.

    The provider-backed responder is used only when the vector store is
    available and the chat provider is configured. Otherwise, and whenever
    the provider path fails before producing any text, the local rule-based
    responder answers instead.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        llm_client: LLMClient,
        provider_responder: ProviderBackedResponder,
        local_responder: LocalFallbackResponder,
        query_cache: Optional[TTLCache] = None
    ):
        """
        Initialize the pipeline.

        Args:
            vector_store: Used for the availability check
            llm_client: Used for the availability check
            provider_responder: Retrieval + chat model strategy
            local_responder: Keyword-rule strategy over raw content
            query_cache: Cache for provider-backed batch answers
        """
        self.vector_store = vector_store
        self.llm_client = llm_client
        self.provider_responder = provider_responder
        self.local_responder = local_responder
        self.query_cache = query_cache if query_cache is not None else TTLCache(QUERY_CACHE_TTL, name="query cache")
        logger.info("Initialized RAGPipeline")

    def provider_available(self) -> bool:
        return self.vector_store.is_available() and self.llm_client.is_configured

    def select_responder(self) -> Responder:
        if self.provider_available():
            return self.provider_responder
        logger.warning("Vector store or OpenAI client not available, using local responses")
        return self.local_responder

    def start_turn(self, query: str, context: Optional[ChatContext] = None) -> ChatTurn:
        """
        Prepare a turn with the selected responder.

        Any failure while preparing the provider-backed turn degrades to the
        local responder, so this only raises if the local responder does.
        """
        responder = self.select_responder()
        if responder is self.local_responder:
            return self.local_responder.prepare(query, context)

        try:
            return responder.prepare(query, context)
        except Exception as e:
            logger.error(f"Provider preparation failed, using local responses: {str(e)}", exc_info=True)
            return self.local_responder.prepare(query, context)

    def get_response(self, query: str, context: Optional[ChatContext] = None) -> RAGResponse:
        """
        Answer a query in one piece.

        Provider-backed answers are cached for a few minutes per query and context.

        Args:
            query: Visitor question
            context: Optional item the visitor is viewing

        Returns:
            RAGResponse with answer, citations and confidence
        """
        cache_key = query_cache_key(query, context.model_dump(by_alias=True) if context else None)
        cached = self.query_cache.get(cache_key)
        if cached is not None:
            logger.debug("Query cache hit")
            return cached

        turn = self.start_turn(query, context)
        if turn.responder is not self.provider_responder:
            return turn.responder.respond(turn)

        try:
            response = self.provider_responder.respond(turn)
        except LLMClientError as e:
            logger.warning(f"Generation failed ({e.error.code}), using local responses")
            return self.local_responder.answer(query, context)

        self.query_cache.set(cache_key, response)
        return response

    def stream_turn(self, turn: ChatTurn) -> Iterator[str]:
        """
        Stream the answer text for a prepared turn.

        If the provider fails before the first fragment, the local answer is
        streamed instead. A failure after text has been sent is raised to the
        caller. Closing this iterator closes the provider stream.
        """
        if turn.responder is not self.provider_responder:
            yield from turn.responder.stream(turn)
            return

        fragments = self.provider_responder.stream(turn)
        started = False
        try:
            for fragment in fragments:
                started = True
                yield fragment
        except LLMClientError as e:
            if started:
                raise
            logger.warning(f"Streaming failed before any output ({e.error.code}), using local responses")
            local = self.local_responder.answer(turn.query, turn.context)
            yield from self.local_responder.stream_answer(local.answer)
        finally:
            fragments.close()
