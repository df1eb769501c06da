"""Data models for the Portfolio Assistant."""
from .content import (
    PortfolioContent, PersonalInfo, Project, Experience, Education,
)
from .chunk import (
    ChunkMetadata, ContentChunk, EmbeddingRecord, RetrievedChunk,
    MetadataFilter, Citation,
)
from .api import ChatContext, ChatRequest, ChatResponse, CitationModel, ReindexRequest

__all__ = [
    "PortfolioContent",
    "PersonalInfo",
    "Project",
    "Experience",
    "Education",
    "ChunkMetadata",
    "ContentChunk",
    "EmbeddingRecord",
    "RetrievedChunk",
    "MetadataFilter",
    "Citation",
    "ChatContext",
    "ChatRequest",
    "ChatResponse",
    "CitationModel",
    "ReindexRequest",
]
