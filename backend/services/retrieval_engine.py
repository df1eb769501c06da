"""Retrieval engine for orchestrating query embedding and chunk retrieval."""
import logging
from dataclasses import replace
from typing import List, Optional

from models.chunk import CLICKABLE_TYPES, Citation, MetadataFilter, RetrievedChunk
from services.vector_store import VectorStore
from services.embedding_model import EmbeddingConfigError, EmbeddingModel
from config import TOP_K, MIN_SCORE, BOOST_AMOUNT

logger = logging.getLogger(__name__)


class RetrievalEngine:
    """Embed a query, search the vector store and re-rank the results."""

    def __init__(
        self,
        vector_store: VectorStore,
        embedding_model: EmbeddingModel,
        boost_amount: float = BOOST_AMOUNT
    ):
        """
        Initialize the retrieval engine.

        Args:
            vector_store: VectorStore instance for similarity search
            embedding_model: EmbeddingModel instance for query embedding
            boost_amount: Similarity bonus for chunks of the boosted item
        """
        self.vector_store = vector_store
        self.embedding_model = embedding_model
        self.boost_amount = boost_amount
        logger.info("Initialized RetrievalEngine")

    def retrieve(
        self,
        query: str,
        limit: int = TOP_K,
        min_score: float = MIN_SCORE,
        metadata_filter: Optional[MetadataFilter] = None,
        boost_item_id: Optional[str] = None
    ) -> List[RetrievedChunk]:
        """
        Retrieve relevant chunks for a query.

        1. Embed the query (cached)
        2. Search the vector store with the same filter
        3. If boost_item_id is set, add boost_amount (capped at 1.0) to every
           chunk of that item
        4. Sort by similarity, descending; equal scores keep their search order

        Args:
            query: Visitor question
            limit: Maximum number of chunks
            min_score: Minimum similarity passed to the search
            metadata_filter: Optional predicate over chunk metadata
            boost_item_id: Item whose chunks get the similarity bonus

        Returns:
            List of retrieved chunks, empty for an empty query

        Raises:
            EmbeddingConfigError: If embeddings are not configured
            RuntimeError: If embedding or search operations fail
        """
        if not query or not query.strip():
            logger.warning("Empty query string provided, returning empty results")
            return []

        try:
            query_embedding = self.embedding_model.embed_text(query)
            chunks = self.vector_store.search(
                query_embedding,
                limit=limit,
                min_score=min_score,
                metadata_filter=metadata_filter,
            )
        except EmbeddingConfigError:
            raise
        except Exception as e:
            error_msg = f"Failed to retrieve chunks for query: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

        if boost_item_id:
            chunks = [
                replace(chunk, similarity=min(chunk.similarity + self.boost_amount, 1.0))
                if chunk.metadata.item_id == boost_item_id else chunk
                for chunk in chunks
            ]

        # sorted() is stable, so ties keep their original rank
        chunks = sorted(chunks, key=lambda chunk: chunk.similarity, reverse=True)

        if chunks:
            logger.info(
                f"Retrieved {len(chunks)} chunks",
                extra={
                    "query": query[:100],
                    "chunk_count": len(chunks),
                    "top_similarity": round(chunks[0].similarity, 3),
                    "top_title": chunks[0].metadata.title,
                }
            )
        else:
            logger.info("No chunks found for query", extra={"query": query[:100]})

        return chunks


def extract_citations(chunks: List[RetrievedChunk]) -> List[Citation]:
    """
    Build citations from retrieved chunks.

    Only types with a detail view are cited. The first chunk seen for an item
    wins, and input order is preserved.
    """
    citations: List[Citation] = []
    seen_ids = set()

    for chunk in chunks:
        metadata = chunk.metadata
        if metadata.type not in CLICKABLE_TYPES:
            continue
        if metadata.item_id in seen_ids:
            continue
        seen_ids.add(metadata.item_id)
        citations.append(Citation(type=metadata.type, id=metadata.item_id, title=metadata.title))

    return citations


def format_chunks_for_context(chunks: List[RetrievedChunk]) -> str:
    """Number chunks as "[n] title (category) - year" headers followed by their text."""
    sections = []
    for index, chunk in enumerate(chunks, start=1):
        metadata = chunk.metadata
        header = f"[{index}] {metadata.title}"
        if metadata.type == "project" and metadata.category:
            header += f" ({metadata.category})"
        if metadata.year:
            header += f" - {metadata.year}"
        sections.append(f"{header}\n{chunk.content}")

    return "\n\n---\n\n".join(sections)
