"""Chunk data models."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

CHUNK_TYPES = (
    "project", "experience", "education", "skill", "bio",
    "faq", "story", "philosophy", "interests", "workstyle",
)

# Types that have a detail view, and so can be cited
CLICKABLE_TYPES = ("project", "experience", "education")


@dataclass
class ChunkMetadata:
    """Metadata stored alongside a chunk."""
    type: str
    item_id: str
    title: str
    year: Optional[int] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the stored JSON shape (camelCase, unset fields dropped)."""
        data: Dict[str, Any] = {
            "type": self.type,
            "itemId": self.item_id,
            "title": self.title,
        }
        if self.year is not None:
            data["year"] = self.year
        if self.category is not None:
            data["category"] = self.category
        if self.tags is not None:
            data["tags"] = list(self.tags)
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ChunkMetadata":
        data = data or {}
        return cls(
            type=data.get("type", "unknown"),
            item_id=data.get("itemId", ""),
            title=data.get("title", ""),
            year=data.get("year"),
            category=data.get("category"),
            tags=data.get("tags"),
        )


@dataclass
class ContentChunk:
    """A short, independently retrievable passage."""
    id: str  # Format: "{source}-{role}", e.g. "project-project-1-summary"
    content: str
    metadata: ChunkMetadata


@dataclass
class EmbeddingRecord:
    """Chunk with its embedding vector, ready to upsert."""
    id: str
    content: str
    metadata: ChunkMetadata
    embedding: List[float] = field(default_factory=list)

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "embedding": self.embedding,
            "metadata": self.metadata.to_dict(),
        }


@dataclass
class RetrievedChunk:
    """Chunk returned from similarity search."""
    id: str
    content: str
    metadata: ChunkMetadata
    similarity: float  # 0.0 to 1.0


@dataclass
class MetadataFilter:
    """Typed predicate over chunk metadata, applied after every remote search."""
    type: Optional[str] = None
    item_id: Optional[str] = None
    category: Optional[str] = None

    def matches(self, metadata: ChunkMetadata) -> bool:
        if self.type and metadata.type != self.type:
            return False
        if self.item_id and metadata.item_id != self.item_id:
            return False
        if self.category and metadata.category != self.category:
            return False
        return True


@dataclass
class Citation:
    """User-facing reference back to a content record."""
    type: str
    id: str
    title: str
    url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"type": self.type, "id": self.id, "title": self.title}
        if self.url:
            data["url"] = self.url
        return data
