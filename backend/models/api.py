"""API request/response models."""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChatContext(BaseModel):
    """Client-supplied hint that the visitor is viewing a specific item."""
    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = False
    item_type: Optional[Literal["project", "experience", "education"]] = Field(default=None, alias="itemType")
    item_id: Optional[str] = Field(default=None, alias="itemId")

    @property
    def scoped_item_id(self) -> Optional[str]:
        """Item ID to scope retrieval to, or None when scoping is off."""
        return self.item_id if self.enabled and self.item_id else None


class ChatRequest(BaseModel):
    """Body of POST /api/chat (after the query has been validated)."""
    query: str
    context: Optional[ChatContext] = None
    stream: bool = True


class CitationModel(BaseModel):
    type: str
    id: str
    title: str
    url: Optional[str] = None


class ChatResponse(BaseModel):
    """Non-streaming chat response."""
    answer: str
    citations: List[CitationModel]
    confidence: float


class ReindexRequest(BaseModel):
    force: bool = False
