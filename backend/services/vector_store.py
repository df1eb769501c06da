"""Vector store implementation using Supabase pgvector."""
import logging
import threading
from collections import Counter
from typing import Any, Dict, List, Optional

from supabase import create_client, Client

from models.chunk import ChunkMetadata, EmbeddingRecord, MetadataFilter, RetrievedChunk
from config import (
    SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY, VECTOR_TABLE, MATCH_FUNCTION,
    UPSERT_BATCH_SIZE, OVERFETCH_MULTIPLIER,
)

logger = logging.getLogger(__name__)

NOT_CONFIGURED_MESSAGE = (
    "Supabase client not initialized. Please set SUPABASE_URL and "
    "SUPABASE_SERVICE_ROLE_KEY environment variables."
)

# Schema expected in Supabase:
#
# CREATE EXTENSION IF NOT EXISTS vector;
#
# CREATE TABLE portfolio_embeddings (
#   id text PRIMARY KEY,
#   content text NOT NULL,
#   embedding vector(1536),
#   metadata jsonb,
#   created_at timestamptz DEFAULT now()
# );
#
# CREATE OR REPLACE FUNCTION match_portfolio_embeddings(
#   query_embedding vector(1536),
#   match_threshold float,
#   match_count int
# )
# RETURNS TABLE (id text, content text, metadata jsonb, similarity float)
# LANGUAGE sql STABLE
# AS $$
#   SELECT
#     portfolio_embeddings.id,
#     portfolio_embeddings.content,
#     portfolio_embeddings.metadata,
#     1 - (portfolio_embeddings.embedding <=> query_embedding) AS similarity
#   FROM portfolio_embeddings
#   WHERE 1 - (portfolio_embeddings.embedding <=> query_embedding) > match_threshold
#   ORDER BY portfolio_embeddings.embedding <=> query_embedding
#   LIMIT match_count;
# $$;


class VectorStore:
    """Store chunk embeddings and run similarity search using Supabase pgvector."""

    def __init__(
        self,
        supabase_url: Optional[str] = SUPABASE_URL,
        supabase_key: Optional[str] = SUPABASE_SERVICE_ROLE_KEY,
        table_name: str = VECTOR_TABLE,
        match_function: str = MATCH_FUNCTION,
        client: Optional[Client] = None,
    ):
        """
        Initialize the vector store.

        The Supabase client is created on first use. Whether the store is
        available is decided once, from the credentials present at that
        moment, and never re-checked for the lifetime of the instance.

        Args:
            supabase_url: Supabase project URL
            supabase_key: Supabase service role key
            table_name: Name of the embeddings table
            match_function: Name of the similarity search RPC function
            client: Pre-built Supabase client (mainly for tests)
        """
        self.supabase_url = supabase_url
        self.supabase_key = supabase_key
        self.table_name = table_name
        self.match_function = match_function
        self._client: Optional[Client] = client
        self._initialized = client is not None
        self._init_lock = threading.Lock()

    def _get_client(self) -> Optional[Client]:
        if not self._initialized:
            with self._init_lock:
                if not self._initialized:
                    if self.supabase_url and self.supabase_key:
                        self._client = create_client(self.supabase_url, self.supabase_key)
                        logger.info(f"Initialized VectorStore with table: {self.table_name}")
                    else:
                        logger.warning("Supabase credentials not found. Vector store operations will fail.")
                    self._initialized = True
        return self._client

    def _require_client(self) -> Client:
        client = self._get_client()
        if client is None:
            raise RuntimeError(NOT_CONFIGURED_MESSAGE)
        return client

    def is_available(self) -> bool:
        """Return True if Supabase credentials were present on first use."""
        return self._get_client() is not None

    def upsert(self, records: List[EmbeddingRecord], batch_size: int = UPSERT_BATCH_SIZE) -> None:
        """
        Insert or replace records by chunk ID.

        Args:
            records: Records to store
            batch_size: Maximum rows per request

        Raises:
            RuntimeError: If the store is unavailable or a batch fails
        """
        client = self._require_client()
        rows = [record.to_row() for record in records]

        for start in range(0, len(rows), batch_size):
            batch = rows[start:start + batch_size]
            try:
                client.table(self.table_name).upsert(batch, on_conflict="id").execute()
            except Exception as e:
                error_msg = f"Failed to upsert embeddings batch {start}-{start + len(batch)}: {str(e)}"
                logger.error(error_msg)
                raise RuntimeError(error_msg)

        logger.info(f"Upserted {len(rows)} embeddings into {self.table_name}")

    def search(
        self,
        query_embedding: List[float],
        limit: int = 10,
        min_score: float = 0.5,
        metadata_filter: Optional[MetadataFilter] = None
    ) -> List[RetrievedChunk]:
        """
        Find the chunks most similar to a query embedding.

        The RPC is asked for more rows than needed and the metadata filter is
        applied here, so filtering never depends on the database function.

        Args:
            query_embedding: Embedding vector for the query
            limit: Maximum number of chunks to return
            min_score: Minimum cosine similarity
            metadata_filter: Optional predicate over chunk metadata

        Returns:
            RetrievedChunks in the order returned by the database

        Raises:
            ValueError: If query_embedding is empty or limit is invalid
            RuntimeError: If the store is unavailable or the query fails
        """
        if not query_embedding:
            raise ValueError("Query embedding cannot be empty")

        if limit <= 0:
            raise ValueError("limit must be positive")

        client = self._require_client()

        try:
            response = client.rpc(
                self.match_function,
                {
                    "query_embedding": query_embedding,
                    "match_threshold": min_score,
                    "match_count": limit * OVERFETCH_MULTIPLIER,
                }
            ).execute()
        except Exception as e:
            error_msg = f"Failed to search embeddings: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

        results = []
        for row in response.data or []:
            metadata = ChunkMetadata.from_dict(row.get("metadata"))
            if metadata_filter and not metadata_filter.matches(metadata):
                continue
            results.append(RetrievedChunk(
                id=row["id"],
                content=row["content"],
                metadata=metadata,
                similarity=max(0.0, min(1.0, row.get("similarity") or 0.0)),
            ))

        logger.debug(f"Found {len(results)} chunks after filtering")
        return results[:limit]

    def delete_all(self) -> None:
        """
        Delete every stored embedding.

        Raises:
            RuntimeError: If the store is unavailable or the delete fails
        """
        client = self._require_client()
        try:
            client.table(self.table_name).delete().neq("id", "").execute()
            logger.info("Deleted all embeddings from vector store")
        except Exception as e:
            error_msg = f"Failed to delete embeddings: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

    def count(self) -> int:
        """
        Get the number of stored embeddings.

        Returns:
            Row count, or 0 when the store is unavailable

        Raises:
            RuntimeError: If the count query fails
        """
        client = self._get_client()
        if client is None:
            return 0

        try:
            response = client.table(self.table_name).select("id", count="exact").execute()
            return response.count if response.count is not None else 0
        except Exception as e:
            error_msg = f"Failed to count embeddings: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

    def list_records(
        self,
        chunk_type: Optional[str] = None,
        item_id: Optional[str] = None,
        limit: int = 20
    ) -> List[Dict[str, Any]]:
        """
        List stored rows (without embeddings), newest first.

        Args:
            chunk_type: Only rows whose metadata type matches
            item_id: Only rows whose metadata itemId matches
            limit: Maximum rows to return

        Returns:
            Raw rows with id, content, metadata and created_at
        """
        client = self._require_client()
        try:
            query = (
                client.table(self.table_name)
                .select("id, content, metadata, created_at")
                .order("created_at", desc=True)
                .limit(limit)
            )
            if chunk_type:
                query = query.eq("metadata->>type", chunk_type)
            if item_id:
                query = query.eq("metadata->>itemId", item_id)
            response = query.execute()
            return response.data or []
        except Exception as e:
            error_msg = f"Failed to list embeddings: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

    def counts_by_type(self) -> Dict[str, int]:
        """Count stored rows per metadata type."""
        client = self._require_client()
        try:
            response = client.table(self.table_name).select("metadata").execute()
        except Exception as e:
            error_msg = f"Failed to count embeddings by type: {str(e)}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

        counts = Counter(
            (row.get("metadata") or {}).get("type", "unknown")
            for row in response.data or []
        )
        return dict(counts)
