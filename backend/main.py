"""Main entry point for the Portfolio Assistant API."""
import asyncio
import json
import logging
import math
from typing import Any, Callable, Dict, Iterator, List, Optional

from fastapi import FastAPI, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError

from config import (
    PORT, LOG_LEVEL, LOG_FORMAT, CORS_ORIGINS, EMBEDDING_CACHE_TTL, QUERY_CACHE_TTL,
    CACHE_SWEEP_INTERVAL, RATE_LIMIT_SWEEP_INTERVAL,
)
from logger import setup_logging
from models.api import ChatRequest, ChatResponse, CitationModel, ReindexRequest
from models.content import PortfolioContent
from services.cache import TTLCache
from services.content_indexer import ContentIndexer
from services.content_loader import ContentLoader
from services.embedding_model import EmbeddingModel
from services.fallback_responder import LocalFallbackResponder
from services.llm_client import LLMClient
from services.rag_pipeline import ProviderBackedResponder, RAGPipeline
from services.rate_limiter import RateLimiter, RateLimitStatus
from services.responder import ChatTurn
from services.retrieval_engine import RetrievalEngine
from services.vector_store import VectorStore

# Initialize logging
logger = logging.getLogger(__name__)

STREAM_ERROR_MESSAGE = "An error occurred while generating the response"
PREVIEW_LENGTH = 150

# Initialize FastAPI app
app = FastAPI(
    title="Portfolio Assistant",
    description="Answers visitor questions about a personal portfolio using retrieval-augmented generation",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services (will be done on startup)
content: PortfolioContent = None
embedding_cache: TTLCache = None
query_cache: TTLCache = None
embedding_model: EmbeddingModel = None
vector_store: VectorStore = None
llm_client: LLMClient = None
rag_pipeline: RAGPipeline = None
rate_limiter: RateLimiter = None
content_indexer: ContentIndexer = None
sweep_tasks: List[asyncio.Task] = []


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global content, embedding_cache, query_cache, embedding_model, vector_store
    global llm_client, rag_pipeline, rate_limiter, content_indexer

    if LOG_FORMAT == "json":
        setup_logging(LOG_LEVEL)

    logger.info("Initializing Portfolio Assistant services...")

    try:
        content = ContentLoader().load()

        embedding_cache = TTLCache(EMBEDDING_CACHE_TTL, name="embedding cache")
        query_cache = TTLCache(QUERY_CACHE_TTL, name="query cache")

        embedding_model = EmbeddingModel(cache=embedding_cache)
        vector_store = VectorStore()
        llm_client = LLMClient()
        logger.info(
            f"Providers: vector_store={vector_store.is_available()}, "
            f"chat={llm_client.is_configured}"
        )

        retrieval_engine = RetrievalEngine(vector_store, embedding_model)
        rag_pipeline = RAGPipeline(
            vector_store=vector_store,
            llm_client=llm_client,
            provider_responder=ProviderBackedResponder(retrieval_engine, llm_client),
            local_responder=LocalFallbackResponder(content),
            query_cache=query_cache,
        )

        rate_limiter = RateLimiter()
        content_indexer = ContentIndexer(content, vector_store, embedding_model)

        sweep_tasks.append(asyncio.create_task(
            _sweep_periodically(CACHE_SWEEP_INTERVAL, _sweep_caches, "cache")
        ))
        sweep_tasks.append(asyncio.create_task(
            _sweep_periodically(RATE_LIMIT_SWEEP_INTERVAL, rate_limiter.cleanup, "rate limit")
        ))

        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


@app.on_event("shutdown")
async def shutdown_event():
    """Cancel background sweeps."""
    for task in sweep_tasks:
        task.cancel()
    sweep_tasks.clear()


def _sweep_caches() -> None:
    embedding_cache.cleanup()
    query_cache.cleanup()


async def _sweep_periodically(interval: float, sweep: Callable[[], Any], name: str) -> None:
    """Run `sweep` every `interval` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        try:
            sweep()
        except Exception as e:
            logger.error(f"{name} sweep failed: {e}", exc_info=True)


def get_client_identifier(request: Request) -> str:
    """First x-forwarded-for entry, else x-real-ip, else "unknown"."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return "unknown"


def _rate_limited_response(status: RateLimitStatus) -> JSONResponse:
    retry_after = math.ceil(status.retry_after)
    return JSONResponse(
        status_code=429,
        content={"error": "Too many requests. Please try again later."},
        headers={
            "Retry-After": str(retry_after),
            "X-RateLimit-Limit": str(status.limit),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(math.ceil(status.reset_time)),
        }
    )


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _event(payload: Dict[str, Any]) -> str:
    return json.dumps(payload) + "\n"


def _stream_events(turn: ChatTurn) -> Iterator[str]:
    """
    Emit the chat stream: one metadata event, chunk events, then done or error.

    Any exception after the metadata event becomes a single error event with
    a generic message; details go to the log only.
    """
    yield _event({
        "type": "metadata",
        "citations": [citation.to_dict() for citation in turn.citations],
    })

    fragments = rag_pipeline.stream_turn(turn)
    try:
        for fragment in fragments:
            yield _event({"type": "chunk", "content": fragment})
        yield _event({"type": "done"})
    except Exception as e:
        logger.error(f"Error while streaming chat response: {e}", exc_info=True)
        yield _event({"type": "error", "error": STREAM_ERROR_MESSAGE})
    finally:
        fragments.close()


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Portfolio Assistant API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "portfolio-assistant",
        "version": "1.0.0",
        "vectorStore": vector_store.is_available() if vector_store else False,
        "chatProvider": llm_client.is_configured if llm_client else False,
    }


@app.post("/api/chat")
async def chat_endpoint(request: Request):
    """
    Answer a visitor question about the portfolio.

    Body: {query: str, context?: {enabled, itemType, itemId}, stream?: bool = true}

    Streaming responses are newline-delimited JSON events sent as
    text/event-stream: metadata (citations) first, then chunk events, then
    exactly one done or error event. Non-streaming responses are a single
    {answer, citations, confidence} object.

    Returns:
        StreamingResponse or JSONResponse; 400 for an invalid body, 429 when
        rate limited, 500 on unexpected errors
    """
    status = rate_limiter.check(get_client_identifier(request))
    if not status.allowed:
        return _rate_limited_response(status)

    try:
        body = await request.json()
    except ValueError:
        return _error("Invalid JSON body", 400)

    query = body.get("query") if isinstance(body, dict) else None
    if not query or not isinstance(query, str):
        return _error("Query is required", 400)

    try:
        chat_request = ChatRequest.model_validate(body)
    except ValidationError as e:
        logger.info(f"Rejected chat request: {e.errors()[0].get('msg')}")
        return _error("Invalid request context", 400)

    logger.info(f"Processing chat query: {query[:100]}...")
    rate_headers = {
        "X-RateLimit-Limit": str(status.limit),
        "X-RateLimit-Remaining": str(status.remaining),
    }

    try:
        if not chat_request.stream:
            response = await run_in_threadpool(
                rag_pipeline.get_response, chat_request.query, chat_request.context
            )
            payload = ChatResponse(
                answer=response.answer,
                citations=[CitationModel(**c.to_dict()) for c in response.citations],
                confidence=response.confidence,
            )
            return JSONResponse(content=payload.model_dump(exclude_none=True), headers=rate_headers)

        turn = await run_in_threadpool(rag_pipeline.start_turn, chat_request.query, chat_request.context)
    except Exception as e:
        logger.error(f"Unexpected error processing chat query: {e}", exc_info=True)
        return _error("Internal server error", 500)

    return StreamingResponse(
        _stream_events(turn),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable buffering in nginx
            **rate_headers,
        }
    )


@app.get("/api/admin/reindex")
async def reindex_status():
    """Report whether content is indexed."""
    try:
        return await run_in_threadpool(content_indexer.status)
    except Exception as e:
        logger.error(f"Error checking index status: {e}", exc_info=True)
        return _error(str(e) or "Failed to check index status", 500)


@app.post("/api/admin/reindex")
async def reindex(request: Request):
    """
    Re-chunk, re-embed and re-upsert all content.

    Body: {force?: bool}. Without force, a populated store is left untouched.
    """
    try:
        raw = await request.json()
    except ValueError:
        raw = {}

    try:
        reindex_request = ReindexRequest.model_validate(raw if isinstance(raw, dict) else {})
    except ValidationError:
        return _error("Invalid request body", 400)

    if not vector_store.is_available():
        return _error(
            "Vector store is not configured. Please set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY.",
            500,
        )

    try:
        result = await run_in_threadpool(content_indexer.reindex, reindex_request.force)
        return result.to_dict()
    except Exception as e:
        logger.error(f"Re-indexing error: {e}", exc_info=True)
        return _error(str(e) or "Failed to re-index content", 500)


@app.get("/api/admin/embeddings")
async def list_embeddings(
    type: Optional[str] = None,
    item_id: Optional[str] = Query(default=None, alias="itemId"),
    limit: int = 20,
):
    """
    Inspect stored embeddings.

    Query params: type, itemId, limit (default 20).
    """
    if not vector_store.is_available():
        return _error("Vector store is not configured", 500)

    def collect() -> Dict[str, Any]:
        rows = vector_store.list_records(chunk_type=type, item_id=item_id, limit=limit)
        return {
            "total": vector_store.count(),
            "countsByType": vector_store.counts_by_type(),
            "results": [
                {
                    "id": row["id"],
                    "contentPreview": row["content"][:PREVIEW_LENGTH]
                    + ("..." if len(row["content"]) > PREVIEW_LENGTH else ""),
                    "contentLength": len(row["content"]),
                    "metadata": row.get("metadata"),
                    "createdAt": row.get("created_at"),
                }
                for row in rows
            ],
            "filters": {"type": type or None, "itemId": item_id or None, "limit": limit},
        }

    try:
        return await run_in_threadpool(collect)
    except Exception as e:
        logger.error(f"Error in embeddings API: {e}", exc_info=True)
        return _error(str(e) or "Internal server error", 500)


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting Portfolio Assistant API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
