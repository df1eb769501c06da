"""Prompt assembly for grounded chat completions."""
from typing import Dict, List, Optional

from models.api import ChatContext
from models.chunk import RetrievedChunk
from services.retrieval_engine import format_chunks_for_context
from config import SYSTEM_PROMPT, OWNER_NAME

RESPONSE_GUIDELINES = [
    "Keep it SHORT (2-4 paragraphs max) - get to the point quickly",
    "Lead with key facts: metrics, technologies, impact",
    "Tell stories briefly (1-2 sentences per story)",
    "Use 3-4 bullet points max when listing",
    "If salary/availability comes up, suggest booking a call",
    "Skip lengthy intros - be conversational but concise",
]


class PromptBuilder:
    """Builds the [system, user] message pair sent to the chat model."""

    def __init__(self, system_prompt: str = SYSTEM_PROMPT, owner_name: str = OWNER_NAME):
        self.system_prompt = system_prompt
        self.owner_name = owner_name

    def build_user_prompt(
        self,
        query: str,
        chunks: List[RetrievedChunk],
        context: Optional[ChatContext] = None
    ) -> str:
        """
        Build the user message.

        Sections, in order: a note about the item being viewed (if any), the
        retrieved passages or a degraded-mode instruction when nothing was
        retrieved, the visitor's question, and the response guidelines.
        """
        owner = self.owner_name
        prompt = ""

        if context and context.enabled and context.item_id:
            prompt += (
                f"[Note: The visitor is currently viewing this {context.item_type} on "
                f"{owner}'s portfolio, so they're particularly interested in learning more about it.]\n\n"
            )

        if chunks:
            prompt += f"Here's relevant information from {owner}'s portfolio:\n\n"
            prompt += "---\n\n"
            prompt += format_chunks_for_context(chunks)
            prompt += "\n---\n\n"
        else:
            prompt += (
                "[No specific portfolio content was retrieved for this query, but you can still "
                f"provide a helpful response based on what you know about {owner} from the system "
                f"prompt. If it's a general question, answer it briefly and connect to {owner}'s work. "
                "If it's about something specific that's not in the portfolio, suggest booking a call.]\n\n"
            )

        prompt += f'Visitor\'s Question: "{query}"\n\n'

        prompt += "Response Guidelines:\n"
        prompt += "".join(f"• {line}\n" for line in RESPONSE_GUIDELINES)

        return prompt

    def build_messages(
        self,
        query: str,
        chunks: List[RetrievedChunk],
        context: Optional[ChatContext] = None
    ) -> List[Dict[str, str]]:
        """Return the chat messages: the static system prompt, then the user prompt."""
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": self.build_user_prompt(query, chunks, context)},
        ]
