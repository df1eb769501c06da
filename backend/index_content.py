"""
Content Indexing Script for the Portfolio Assistant.

This script:
1. Loads the portfolio content JSON
2. Chunks projects, experiences, education and personal info
3. Generates embeddings with the OpenAI API
4. Upserts everything into Supabase pgvector

Existing embeddings are only replaced with --force (or FORCE_REINDEX=true).

Usage:
    python index_content.py [--force]
"""
import argparse
import os
import sys
import logging
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from services.content_loader import ContentLoader
from services.content_indexer import ContentIndexer
from services.embedding_model import EmbeddingModel
from services.vector_store import VectorStore
from config import OPENAI_API_KEY, SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Index portfolio content into the vector store")
    parser.add_argument(
        "--force",
        action="store_true",
        default=os.getenv("FORCE_REINDEX", "").lower() == "true",
        help="Delete and rebuild existing embeddings",
    )
    parser.add_argument("--content", default=None, help="Path to the portfolio JSON file")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main indexing process. Returns the process exit code."""
    args = parse_args(argv)

    try:
        logger.info("=" * 60)
        logger.info("Starting portfolio content indexing")
        logger.info("=" * 60)

        if not OPENAI_API_KEY:
            logger.error("OPENAI_API_KEY is not set")
            return 1
        if not SUPABASE_URL or not SUPABASE_SERVICE_ROLE_KEY:
            logger.error("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
            return 1

        logger.info("[1/3] Loading content...")
        loader = ContentLoader(args.content) if args.content else ContentLoader()
        content = loader.load()

        logger.info("[2/3] Initializing services...")
        indexer = ContentIndexer(content, VectorStore(), EmbeddingModel())

        logger.info(f"[3/3] Indexing (force={args.force})...")
        result = indexer.reindex(force=args.force)

        if not result.success:
            logger.warning(result.message)
            logger.info(f"Current embeddings: {result.current_count}")
            return 0

        logger.info("=" * 60)
        logger.info("INDEXING COMPLETE!")
        logger.info("=" * 60)
        logger.info(f"Chunks indexed: {result.chunks_indexed}")
        logger.info(f"Embeddings in database: {result.embeddings_created}")
        return 0

    except KeyboardInterrupt:
        logger.warning("Indexing interrupted by user")
        return 1
    except Exception as e:
        logger.error(f"Indexing failed: {str(e)}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
