"""Re-index portfolio content: chunk, embed and upsert into the vector store."""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from models.content import PortfolioContent
from services.chunking_engine import ChunkingEngine
from services.embedding_model import EmbeddingModel
from services.vector_store import NOT_CONFIGURED_MESSAGE, VectorStore

logger = logging.getLogger(__name__)


@dataclass
class IndexResult:
    """Outcome of an indexing run."""
    success: bool
    message: str
    chunks_indexed: int = 0
    embeddings_created: int = 0
    current_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {
                "success": True,
                "message": self.message,
                "chunksIndexed": self.chunks_indexed,
                "embeddingsCreated": self.embeddings_created,
            }
        return {
            "success": False,
            "message": self.message,
            "currentCount": self.current_count,
        }


class ContentIndexer:
    """Rebuilds the vector store from portfolio content."""

    def __init__(
        self,
        content: PortfolioContent,
        vector_store: VectorStore,
        embedding_model: EmbeddingModel,
        chunking_engine: Optional[ChunkingEngine] = None
    ):
        self.content = content
        self.vector_store = vector_store
        self.embedding_model = embedding_model
        self.chunking_engine = chunking_engine or ChunkingEngine()

    def status(self) -> Dict[str, Any]:
        """Report whether the store is available and how many embeddings it holds."""
        if not self.vector_store.is_available():
            return {"available": False, "count": 0, "message": "Vector store is not configured"}

        count = self.vector_store.count()
        return {
            "available": True,
            "count": count,
            "message": "Content is indexed" if count > 0 else "No content indexed yet",
        }

    def reindex(self, force: bool = False) -> IndexResult:
        """
        Chunk, embed and upsert all content.

        Existing embeddings are only replaced when `force` is set; an empty
        store is always indexed.

        Args:
            force: Delete and rebuild even if embeddings already exist

        Returns:
            IndexResult describing what happened

        Raises:
            RuntimeError: If the store is unavailable or any step fails
            EmbeddingConfigError: If embeddings are not configured
        """
        if not self.vector_store.is_available():
            raise RuntimeError(NOT_CONFIGURED_MESSAGE)

        current_count = self.vector_store.count()
        if current_count > 0 and not force:
            logger.info(f"Skipping re-index: {current_count} embeddings already exist")
            return IndexResult(
                success=False,
                message="Embeddings already exist. Set force=true to re-index.",
                current_count=current_count,
            )

        if current_count > 0:
            logger.info(f"Deleting {current_count} existing embeddings")
            self.vector_store.delete_all()

        chunks = self.chunking_engine.chunk_all(self.content)
        logger.info(f"Generating embeddings for {len(chunks)} chunks")
        records = self.embedding_model.embed_chunks(chunks)
        self.vector_store.upsert(records)

        new_count = self.vector_store.count()
        logger.info(f"Content re-indexed: {len(chunks)} chunks, {new_count} embeddings stored")
        return IndexResult(
            success=True,
            message="Content re-indexed successfully",
            chunks_indexed=len(chunks),
            embeddings_created=new_count,
        )
