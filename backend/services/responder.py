"""Responder interface shared by the provider-backed and local answer strategies."""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from models.api import ChatContext
from models.chunk import Citation, RetrievedChunk


@dataclass
class RAGResponse:
    """A complete answer with its citations and confidence."""
    answer: str
    citations: List[Citation]
    confidence: float


@dataclass
class ChatTurn:
    """
    Everything prepared for one chat request before any text is generated.

    `citations` are known as soon as the turn is prepared, so the transport
    can send them ahead of the answer text.
    """
    query: str
    context: Optional[ChatContext]
    citations: List[Citation]
    chunks: List[RetrievedChunk] = field(default_factory=list)
    messages: List[Dict[str, str]] = field(default_factory=list)
    local_answer: Optional[RAGResponse] = None
    responder: Optional["Responder"] = None


class Responder(ABC):
    """Strategy that turns a visitor question into an answer."""

    @abstractmethod
    def prepare(self, query: str, context: Optional[ChatContext] = None) -> ChatTurn:
        """Do everything needed before generation and return the prepared turn."""

    @abstractmethod
    def respond(self, turn: ChatTurn) -> RAGResponse:
        """Produce the whole answer at once."""

    @abstractmethod
    def stream(self, turn: ChatTurn) -> Iterator[str]:
        """Produce the answer as ordered text fragments."""
