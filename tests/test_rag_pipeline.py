"""Unit tests for RAGPipeline and ProviderBackedResponder."""
import sys
from pathlib import Path
from unittest.mock import MagicMock, Mock

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from models.api import ChatContext
from models.chunk import ChunkMetadata, MetadataFilter, RetrievedChunk
from services.cache import TTLCache
from services.content_loader import ContentLoader
from services.embedding_model import EmbeddingConfigError
from services.fallback_responder import LocalFallbackResponder
from services.llm_client import LLMClientError, LLMError, LLMResponse
from services.rag_pipeline import ProviderBackedResponder, RAGPipeline, compute_confidence
from services.retrieval_engine import RetrievalEngine
from services.vector_store import VectorStore


def chunk(chunk_id, item_id, similarity, chunk_type="project", title=None):
    return RetrievedChunk(
        id=chunk_id,
        content=f"text of {chunk_id}",
        metadata=ChunkMetadata(type=chunk_type, item_id=item_id, title=title or item_id),
        similarity=similarity,
    )


def llm_error(code="API_ERROR"):
    return LLMClientError(LLMError(code=code, message="failed", details={}))


def stream_of(fragments, error=None, closed=None):
    """Generator standing in for a provider stream."""
    try:
        for fragment in fragments:
            yield fragment
        if error:
            raise error
    finally:
        if closed is not None:
            closed.append(True)


@pytest.fixture(scope="module")
def content():
    return ContentLoader().load()


@pytest.fixture
def vector_store():
    store = Mock()
    store.is_available.return_value = True
    return store


@pytest.fixture
def llm_client():
    client = Mock()
    client.is_configured = True
    client.generate.return_value = LLMResponse(
        text="Generated answer", tokens_input=10, tokens_output=5, latency_ms=20, model_used="gpt"
    )
    return client


@pytest.fixture
def retrieval_engine():
    engine = Mock()
    engine.retrieve.return_value = [
        chunk("project-project-3-summary", "project-3", 0.82, title="EchoLens"),
        chunk("project-project-2-summary", "project-2", 0.76, title="GlobaLens"),
    ]
    return engine


@pytest.fixture
def local_responder(content):
    return LocalFallbackResponder(content, stream_delay=0.0, current_year=lambda: 2025, sleep=Mock())


@pytest.fixture
def pipeline(vector_store, llm_client, retrieval_engine, local_responder):
    return RAGPipeline(
        vector_store=vector_store,
        llm_client=llm_client,
        provider_responder=ProviderBackedResponder(retrieval_engine, llm_client),
        local_responder=local_responder,
        query_cache=TTLCache(ttl=300),
    )


class TestComputeConfidence:
    def test_mean_similarity(self):
        chunks = [chunk("a", "x", 0.8), chunk("b", "y", 0.6)]
        assert compute_confidence(chunks) == pytest.approx(0.7)

    def test_capped(self):
        assert compute_confidence([chunk("a", "x", 1.0)]) == 0.95

    def test_no_chunks(self):
        assert compute_confidence([]) == 0.5


class TestProviderBackedResponder:
    """Test suite for retrieval and prompt preparation."""

    def test_prepare_without_context(self, retrieval_engine, llm_client):
        responder = ProviderBackedResponder(retrieval_engine, llm_client)

        turn = responder.prepare("Tell me about EchoLens")

        retrieval_engine.retrieve.assert_called_once_with(
            "Tell me about EchoLens", limit=5, min_score=0.7, metadata_filter=None, boost_item_id=None
        )
        assert [c.id for c in turn.citations] == ["project-3", "project-2"]
        assert turn.messages[0]["role"] == "system"
        assert "EchoLens" in turn.messages[1]["content"]
        assert turn.responder is responder

    def test_prepare_with_context_filters_and_boosts(self, retrieval_engine, llm_client):
        responder = ProviderBackedResponder(retrieval_engine, llm_client)
        context = ChatContext(enabled=True, itemType="project", itemId="project-1")

        responder.prepare("What challenges did you face?", context)

        kwargs = retrieval_engine.retrieve.call_args.kwargs
        assert kwargs["metadata_filter"] == MetadataFilter(type="project", item_id="project-1")
        assert kwargs["boost_item_id"] == "project-1"

    def test_prepare_retries_at_lower_threshold_keeping_scope(self, retrieval_engine, llm_client):
        fallback = [chunk("project-project-1-tech", "project-1", 0.45, title="AI-Powered Resume Builder")]
        retrieval_engine.retrieve.side_effect = [[], fallback]
        responder = ProviderBackedResponder(retrieval_engine, llm_client)
        context = ChatContext(enabled=True, itemType="project", itemId="project-1")

        turn = responder.prepare("obscure question", context)

        second = retrieval_engine.retrieve.call_args_list[1]
        assert second.kwargs == {
            "limit": 5,
            "min_score": 0.4,
            "metadata_filter": MetadataFilter(type="project", item_id="project-1"),
            "boost_item_id": "project-1",
        }
        assert turn.chunks == fallback
        assert [c.id for c in turn.citations] == ["project-1"]

    def test_prepare_retries_at_lower_threshold_without_context(self, retrieval_engine, llm_client):
        fallback = [chunk("faq-0", "faqs", 0.45, chunk_type="faq")]
        retrieval_engine.retrieve.side_effect = [[], fallback]
        responder = ProviderBackedResponder(retrieval_engine, llm_client)

        turn = responder.prepare("obscure question")

        second = retrieval_engine.retrieve.call_args_list[1]
        assert second.kwargs == {"limit": 5, "min_score": 0.4, "metadata_filter": None, "boost_item_id": None}
        assert turn.chunks == fallback
        assert turn.citations == []

    def test_prepare_with_nothing_found_uses_degraded_prompt(self, retrieval_engine, llm_client):
        retrieval_engine.retrieve.return_value = []
        responder = ProviderBackedResponder(retrieval_engine, llm_client)

        turn = responder.prepare("What is Rust?")

        assert "No specific portfolio content was retrieved" in turn.messages[1]["content"]

    def test_respond_uses_chunk_confidence(self, retrieval_engine, llm_client):
        responder = ProviderBackedResponder(retrieval_engine, llm_client)
        turn = responder.prepare("Tell me about EchoLens")

        response = responder.respond(turn)

        assert response.answer == "Generated answer"
        assert response.confidence == pytest.approx(0.79)
        llm_client.generate.assert_called_once_with(turn.messages)


class TestResponderSelection:
    """Test suite for choosing between the provider and local responders."""

    def test_provider_when_available(self, pipeline):
        assert pipeline.select_responder() is pipeline.provider_responder

    def test_local_when_vector_store_unavailable(self, pipeline, vector_store):
        vector_store.is_available.return_value = False
        assert pipeline.select_responder() is pipeline.local_responder

    def test_local_when_llm_not_configured(self, pipeline, llm_client):
        llm_client.is_configured = False
        assert pipeline.select_responder() is pipeline.local_responder

    def test_start_turn_degrades_on_config_error(self, pipeline, retrieval_engine):
        retrieval_engine.retrieve.side_effect = EmbeddingConfigError("no key")

        turn = pipeline.start_turn("Tell me about your AI projects")

        assert turn.responder is pipeline.local_responder
        assert turn.local_answer is not None
        assert turn.citations[0].id == "project-1"

    def test_start_turn_degrades_on_retrieval_error(self, pipeline, retrieval_engine):
        retrieval_engine.retrieve.side_effect = RuntimeError("search failed")

        turn = pipeline.start_turn("hello")

        assert turn.responder is pipeline.local_responder


class TestGetResponse:
    """Test suite for non-streaming answers."""

    def test_provider_answer(self, pipeline):
        response = pipeline.get_response("Tell me about EchoLens")

        assert response.answer == "Generated answer"
        assert [c.title for c in response.citations] == ["EchoLens", "GlobaLens"]

    def test_provider_answer_is_cached(self, pipeline, llm_client, retrieval_engine):
        pipeline.get_response("Tell me about EchoLens")
        pipeline.get_response("tell me about echolens ")

        assert llm_client.generate.call_count == 1
        assert retrieval_engine.retrieve.call_count == 1

    def test_cache_key_includes_context(self, pipeline, llm_client):
        pipeline.get_response("What challenges?")
        pipeline.get_response("What challenges?", ChatContext(enabled=True, itemType="project", itemId="project-1"))

        assert llm_client.generate.call_count == 2

    def test_generation_failure_uses_local_answer(self, pipeline, llm_client):
        llm_client.generate.side_effect = llm_error("RATE_LIMIT_ERROR")

        response = pipeline.get_response("What is your tech stack?")

        assert response.citations[0].id == "skills"
        assert len(pipeline.query_cache) == 0

    def test_local_answer_when_unavailable(self, pipeline, vector_store, llm_client):
        vector_store.is_available.return_value = False

        response = pipeline.get_response("How can I reach you?")

        assert response.citations[0].type == "resume"
        llm_client.generate.assert_not_called()
        assert len(pipeline.query_cache) == 0


class TestStreamTurn:
    """Test suite for streaming answers."""

    def test_provider_fragments_pass_through(self, pipeline, llm_client):
        closed = []
        llm_client.generate_stream.return_value = stream_of(["Echo", "Lens"], closed=closed)

        turn = pipeline.start_turn("Tell me about EchoLens")
        fragments = list(pipeline.stream_turn(turn))

        assert fragments == ["Echo", "Lens"]
        assert closed == [True]

    def test_failure_before_first_fragment_streams_local_answer(self, pipeline, llm_client, local_responder):
        llm_client.generate_stream.return_value = stream_of([], error=llm_error("TIMEOUT_ERROR"))

        turn = pipeline.start_turn("How can I reach you?")
        text = "".join(pipeline.stream_turn(turn))

        expected = local_responder.answer("How can I reach you?").answer
        assert text.strip() == expected.strip()

    def test_failure_after_first_fragment_is_raised(self, pipeline, llm_client):
        llm_client.generate_stream.return_value = stream_of(["partial"], error=llm_error())

        turn = pipeline.start_turn("Tell me about EchoLens")
        fragments = pipeline.stream_turn(turn)

        assert next(fragments) == "partial"
        with pytest.raises(LLMClientError):
            next(fragments)

    def test_closing_stops_provider_stream(self, pipeline, llm_client):
        closed = []
        llm_client.generate_stream.return_value = stream_of(["a", "b", "c"], closed=closed)

        turn = pipeline.start_turn("Tell me about EchoLens")
        fragments = pipeline.stream_turn(turn)
        next(fragments)
        fragments.close()

        assert closed == [True]

    def test_local_turn_streams_words(self, pipeline, vector_store):
        vector_store.is_available.return_value = False

        turn = pipeline.start_turn("Show me your projects")
        text = "".join(pipeline.stream_turn(turn))

        assert text.startswith("I've worked on 7 significant projects.")


class TestRetrievalScenarios:
    """End-to-end retrieval through a real engine and store with a mocked Supabase client."""

    @pytest.fixture
    def supabase(self):
        return MagicMock()

    @pytest.fixture
    def scenario_pipeline(self, supabase, llm_client, local_responder):
        store = VectorStore(supabase_url="https://example.supabase.co", supabase_key="key", client=supabase)
        embedding_model = Mock()
        embedding_model.embed_text.return_value = [0.1, 0.2]
        engine = RetrievalEngine(store, embedding_model)
        return RAGPipeline(
            vector_store=store,
            llm_client=llm_client,
            provider_responder=ProviderBackedResponder(engine, llm_client),
            local_responder=local_responder,
        )

    def rows(self, *specs):
        return Mock(data=[
            {
                "id": chunk_id,
                "content": f"text of {chunk_id}",
                "metadata": {"type": "project", "itemId": item_id, "title": title},
                "similarity": similarity,
            }
            for chunk_id, item_id, title, similarity in specs
        ])

    def test_echolens_question_cites_echolens_first(self, scenario_pipeline, supabase, llm_client):
        echolens = "EchoLens: Brought Images to Life for the Visually Impaired"
        supabase.rpc.return_value.execute.return_value = self.rows(
            ("project-project-3-summary", "project-3", echolens, 0.82),
            ("project-project-2-summary", "project-2", "GlobaLens: See Beyond the Headlines", 0.75),
            ("project-project-3-tech", "project-3", echolens, 0.74),
        )

        response = scenario_pipeline.get_response("Tell me about EchoLens")

        assert response.citations[0].type == "project"
        assert response.citations[0].id == "project-3"
        assert response.citations[0].title == echolens
        assert len(response.citations) == 2
        prompt = llm_client.generate.call_args.args[0][1]["content"]
        assert "[1] " + echolens in prompt

    def test_context_restricts_citations_to_viewed_item(self, scenario_pipeline, supabase):
        supabase.rpc.return_value.execute.return_value = self.rows(
            ("project-project-2-summary", "project-2", "GlobaLens", 0.9),
            ("project-project-1-details", "project-1", "AI-Powered Resume Builder", 0.72),
            ("project-project-1-tech", "project-1", "AI-Powered Resume Builder", 0.71),
        )
        context = ChatContext(enabled=True, itemType="project", itemId="project-1")

        response = scenario_pipeline.get_response("What challenges did you face?", context)

        assert [c.id for c in response.citations] == ["project-1"]
        assert supabase.rpc.call_args.args[1]["match_count"] == 10

    def test_context_retry_never_cites_other_items(self, scenario_pipeline, supabase, llm_client):
        supabase.rpc.return_value.execute.return_value = self.rows(
            ("project-project-2-summary", "project-2", "GlobaLens", 0.9),
            ("project-project-3-summary", "project-3", "EchoLens", 0.8),
        )
        context = ChatContext(enabled=True, itemType="project", itemId="project-1")

        response = scenario_pipeline.get_response("what technologies did you use", context)

        assert response.citations == []
        assert supabase.rpc.call_count == 2
        assert supabase.rpc.call_args_list[1].args[1]["match_threshold"] == 0.4
        prompt = llm_client.generate.call_args.args[0][1]["content"]
        assert "GlobaLens" not in prompt
        assert "EchoLens" not in prompt
