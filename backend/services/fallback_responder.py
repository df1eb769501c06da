"""Rule-based responder used when the vector store or chat provider is unavailable."""
import logging
import re
import time
from datetime import date
from typing import Callable, Iterator, List, Optional

from models.api import ChatContext
from models.chunk import Citation
from models.content import PortfolioContent
from services.responder import ChatTurn, RAGResponse, Responder
from config import FALLBACK_STREAM_DELAY

logger = logging.getLogger(__name__)


def _mentions(text: str, *keywords: str) -> bool:
    """True if any keyword appears in text as a whole word or phrase."""
    return any(re.search(rf"\b{re.escape(keyword)}\b", text) for keyword in keywords)


class LocalFallbackResponder(Responder):
    """
    Answers from the raw content model with keyword rules, no embeddings.

    Rules are checked in priority order and the first match wins. Answers are
    deterministic for a given query, context and content.
    """

    def __init__(
        self,
        content: PortfolioContent,
        stream_delay: float = FALLBACK_STREAM_DELAY,
        current_year: Callable[[], int] = lambda: date.today().year,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the responder.

        Args:
            content: Portfolio content to answer from
            stream_delay: Seconds between streamed words
            current_year: Returns the current year (injectable for tests)
            sleep: Sleep function used between streamed words
        """
        self.content = content
        self.stream_delay = stream_delay
        self._current_year = current_year
        self._sleep = sleep

    def prepare(self, query: str, context: Optional[ChatContext] = None) -> ChatTurn:
        answer = self.answer(query, context)
        logger.info(f"Answering from local content rules with {len(answer.citations)} citations")
        return ChatTurn(
            query=query,
            context=context,
            citations=answer.citations,
            local_answer=answer,
            responder=self,
        )

    def respond(self, turn: ChatTurn) -> RAGResponse:
        if turn.local_answer is None:
            turn.local_answer = self.answer(turn.query, turn.context)
        return turn.local_answer

    def stream(self, turn: ChatTurn) -> Iterator[str]:
        """Stream the local answer word by word with a fixed delay."""
        return self.stream_answer(self.respond(turn).answer)

    def stream_answer(self, answer: str) -> Iterator[str]:
        for word in answer.split(" "):
            yield word + " "
            self._sleep(self.stream_delay)

    def answer(self, query: str, context: Optional[ChatContext] = None) -> RAGResponse:
        """
        Pick the first matching rule and build its answer.

        Args:
            query: Visitor question
            context: Optional item the visitor is viewing

        Returns:
            RAGResponse from the matching rule
        """
        text = query.lower()
        info = self.content.personal_info

        if _mentions(text, "ai", "ml", "machine learning"):
            response = self._ai_projects()
            if response:
                return response

        if _mentions(text, "current", "now", "present"):
            response = self._current_role()
            if response:
                return response

        if info and _mentions(text, "contact", "email", "reach"):
            return self._contact()

        if info and _mentions(text, "tech", "stack", "skill", "skills"):
            return self._skills()

        if _mentions(text, "project", "projects"):
            return self._featured_projects()

        if self.content.education and _mentions(text, "education", "degree", "university"):
            return self._education()

        if context and context.enabled and context.item_id and context.item_type == "project":
            response = self._project_detail(context.item_id)
            if response:
                return response

        return self._introduction()

    def _ai_projects(self) -> Optional[RAGResponse]:
        projects = [p for p in self.content.projects if p.category == "AI/ML"][:3]
        if not projects:
            return None

        listing = "\n\n".join(
            f"{i}. **{p.title}** - {p.summary}" for i, p in enumerate(projects, start=1)
        )
        return RAGResponse(
            answer=(
                "I have extensive experience with AI/ML technologies. "
                f"Here are my top AI/ML projects:\n\n{listing}\n\n"
                "I've worked with technologies like the OpenAI API, Vertex AI and Llama Vision, "
                "building vector search, summarization and accessibility tools."
            ),
            citations=[Citation(type="project", id=p.id, title=p.title) for p in projects],
            confidence=0.95,
        )

    def _current_role(self) -> Optional[RAGResponse]:
        role = next((e for e in self.content.experiences if e.current), None)
        if role is None:
            return None

        highlights = "\n".join(f"• {h.text}" for h in role.highlights[:3])
        return RAGResponse(
            answer=(
                f"I'm currently working as a {role.role} at {role.company}. {role.summary}\n\n"
                f"Some of my key achievements in this role include:\n{highlights}"
            ),
            citations=[Citation(type="experience", id=role.id, title=role.title)],
            confidence=0.95,
        )

    def _contact(self) -> RAGResponse:
        info = self.content.personal_info
        links = info.links
        calendar = links.get("calendar")
        return RAGResponse(
            answer=(
                "You can reach me through the following channels:\n\n"
                f"• Email: {links.get('email', '')}\n"
                f"• LinkedIn: {links.get('linkedin', '')}\n"
                f"• GitHub: {links.get('github', '')}\n"
                f"• Schedule a call: {calendar or 'Available through the Book Call button'}\n\n"
                f"I'm {info.availability.status.lower()} and typically respond within 24 hours."
            ),
            citations=[Citation(type="resume", id="contact", title="Contact Information", url=calendar)],
            confidence=0.95,
        )

    def _skills(self) -> RAGResponse:
        skills = "\n\n".join(
            f"**{s.category}**: {', '.join(s.items)}" for s in self.content.personal_info.skills
        )
        return RAGResponse(
            answer=(
                f"I have expertise across the full stack with proficiency in:\n\n{skills}\n\n"
                "I'm particularly strong in TypeScript, React, Java and Python, "
                "with recent focus on AI/ML integration."
            ),
            citations=[Citation(type="skill", id="skills", title="Technical Skills")],
            confidence=0.9,
        )

    def _featured_projects(self) -> RAGResponse:
        featured = [p for p in self.content.projects if p.featured][:3]
        listing = "\n\n".join(
            f"{i}. **{p.title}** ({p.category})\n   {p.summary}"
            for i, p in enumerate(featured, start=1)
        )
        return RAGResponse(
            answer=(
                f"I've worked on {len(self.content.projects)} significant projects. "
                f"Here are some highlights:\n\n{listing}\n\n"
                "Each project demonstrates my ability to deliver measurable impact through technical innovation."
            ),
            citations=[Citation(type="project", id=p.id, title=p.title) for p in featured],
            confidence=0.9,
        )

    def _education(self) -> RAGResponse:
        graduate = self.content.education[0]
        undergrad = self.content.education[1] if len(self.content.education) > 1 else None

        coursework = ", ".join(graduate.relevant_coursework[:5])
        parts: List[str] = []
        if graduate.end_year > self._current_year():
            gpa = f" Current GPA: {graduate.gpa}." if graduate.gpa else ""
            parts.append(
                f"I'm currently pursuing my {graduate.degree} in {graduate.field} at "
                f"{graduate.institution} (expected {graduate.end_year}).{gpa}"
            )
        else:
            gpa = f" GPA: {graduate.gpa}." if graduate.gpa else ""
            parts.append(
                f"I have a {graduate.degree} in {graduate.field} from "
                f"{graduate.institution} ({graduate.end_year}).{gpa}"
            )
        if coursework:
            parts.append(f"Relevant coursework: {coursework}.")
        if graduate.achievements:
            parts.append(f"Achievements: {', '.join(graduate.achievements)}.")
        if undergrad:
            parts.append(
                f"I completed my {undergrad.degree} in {undergrad.field} from "
                f"{undergrad.institution} in {undergrad.end_year}."
            )

        return RAGResponse(
            answer="\n\n".join(parts),
            citations=[Citation(type="education", id=graduate.id, title=graduate.title)],
            confidence=0.95,
        )

    def _project_detail(self, project_id: str) -> Optional[RAGResponse]:
        project = next((p for p in self.content.projects if p.id == project_id), None)
        if project is None:
            return None

        return RAGResponse(
            answer=(
                f"Regarding the {project.title} project:\n\n"
                f"**Problem**: {project.problem}\n\n"
                f"**Approach**: {project.approach}\n\n"
                f"**Impact**: {project.impact}\n\n"
                f"**My Role**: {project.my_role}"
            ),
            citations=[Citation(type="project", id=project.id, title=project.title)],
            confidence=0.95,
        )

    def _introduction(self) -> RAGResponse:
        info = self.content.personal_info
        if info:
            first_paragraph = info.bio.split("\n")[0]
            intro = f"I'm {info.first_name}, a {info.title}. {first_paragraph}"
        else:
            intro = "I'm the owner of this portfolio."

        return RAGResponse(
            answer=(
                f"{intro}\n\n"
                f"I have {len(self.content.experiences)} professional experiences and have worked on "
                f"{len(self.content.projects)} significant projects. Feel free to ask me about:\n\n"
                "• My projects and their impact\n"
                "• Technical skills and expertise\n"
                "• Work experience and achievements\n"
                "• How to get in touch\n\n"
                "What would you like to know more about?"
            ),
            citations=[],
            confidence=0.8,
        )
