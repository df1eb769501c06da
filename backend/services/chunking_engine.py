"""Chunking engine that splits portfolio content into retrievable passages."""
import logging
import re
from typing import List, Optional

from models.chunk import ChunkMetadata, ContentChunk
from models.content import (
    Education, Experience, PersonalInfo, PortfolioContent, Project,
)

logger = logging.getLogger(__name__)


def _slugify(text: str) -> str:
    return re.sub(r"\s+", "-", text.lower())


def _bullets(items: List[str]) -> str:
    return "\n".join(f"• {item}" for item in items)


class ChunkingEngine:
    """
    Splits structured portfolio content into short, self-describing chunks.

    Every chunk repeats the title of the item it came from, so a passage read
    on its own still says what it is about. Chunk IDs are derived only from
    item IDs and positions, so re-chunking the same content yields the same IDs
    and an upsert replaces rows instead of duplicating them.
    """

    def chunk_all(self, content: PortfolioContent) -> List[ContentChunk]:
        """
        Chunk the whole corpus.

        Personal info comes first, then projects, experiences and education.

        Args:
            content: Loaded portfolio content

        Returns:
            List of ContentChunk objects
        """
        chunks: List[ContentChunk] = []

        if content.personal_info:
            chunks.extend(self.chunk_personal_info(content.personal_info))

        for project in content.projects:
            chunks.extend(self.chunk_project(project))

        for experience in content.experiences:
            chunks.extend(self.chunk_experience(experience))

        for education in content.education:
            chunks.extend(self.chunk_education(education))

        logger.info(f"Created {len(chunks)} chunks from portfolio content")
        return chunks

    def chunk_project(self, project: Project) -> List[ContentChunk]:
        """Summary, details, metrics (if any) and tech chunks for one project."""
        base_id = f"project-{project.id}"
        header = f"Project: {project.title}"

        def metadata() -> ChunkMetadata:
            return ChunkMetadata(
                type="project",
                item_id=project.id,
                title=project.title,
                year=project.year,
                category=project.category,
                tags=list(project.tags),
            )

        chunks = [
            ContentChunk(
                id=f"{base_id}-summary",
                content=f"{header}\n\nSummary: {project.summary}",
                metadata=metadata(),
            ),
            ContentChunk(
                id=f"{base_id}-details",
                content=(
                    f"{header}\n\nProblem: {project.problem}\n\n"
                    f"Approach: {project.approach}\n\nImpact: {project.impact}"
                ),
                metadata=metadata(),
            ),
        ]

        if project.metrics:
            metrics_text = "\n".join(f"{m.label}: {m.value}" for m in project.metrics)
            chunks.append(ContentChunk(
                id=f"{base_id}-metrics",
                content=f"{header}\n\nKey Metrics:\n{metrics_text}",
                metadata=metadata(),
            ))

        chunks.append(ContentChunk(
            id=f"{base_id}-tech",
            content=(
                f"{header}\n\nTechnologies: {', '.join(project.technologies)}\n\n"
                f"My Role: {project.my_role}"
            ),
            metadata=metadata(),
        ))

        return chunks

    def chunk_experience(self, experience: Experience) -> List[ContentChunk]:
        """Summary, one chunk per highlight, and technologies for one role."""
        base_id = f"experience-{experience.id}"
        header = f"Role: {experience.title}"

        def metadata() -> ChunkMetadata:
            return ChunkMetadata(
                type="experience",
                item_id=experience.id,
                title=experience.title,
                year=experience.start_year,
                tags=list(experience.technologies),
            )

        chunks = [ContentChunk(
            id=f"{base_id}-summary",
            content=f"{header}\n\n{experience.summary}",
            metadata=metadata(),
        )]

        for index, highlight in enumerate(experience.highlights):
            text = f"{highlight.text} ({highlight.metric})" if highlight.metric else highlight.text
            chunks.append(ContentChunk(
                id=f"{base_id}-highlight-{index}",
                content=f"{header}\n\nAchievement: {text}",
                metadata=metadata(),
            ))

        if experience.technologies:
            chunks.append(ContentChunk(
                id=f"{base_id}-technologies",
                content=f"{header}\n\nTechnologies Used: {', '.join(experience.technologies)}",
                metadata=metadata(),
            ))

        return chunks

    def chunk_education(self, education: Education) -> List[ContentChunk]:
        """Degree, coursework, achievements and academic project chunks."""
        base_id = f"education-{education.id}"
        header = f"Education: {education.title}"

        def metadata() -> ChunkMetadata:
            return ChunkMetadata(
                type="education",
                item_id=education.id,
                title=education.title,
                year=education.end_year,
            )

        degree_text = (
            f"{header}\n\nLocation: {education.location}\n\n"
            f"Years: {education.start_year} - {education.end_year}"
        )
        if education.gpa:
            degree_text += f"\n\nGPA: {education.gpa}"

        chunks = [ContentChunk(id=f"{base_id}-degree", content=degree_text, metadata=metadata())]

        if education.relevant_coursework:
            chunks.append(ContentChunk(
                id=f"{base_id}-coursework",
                content=f"{header}\n\nRelevant Coursework: {', '.join(education.relevant_coursework)}",
                metadata=metadata(),
            ))

        if education.achievements:
            chunks.append(ContentChunk(
                id=f"{base_id}-achievements",
                content=f"{header}\n\nAchievements:\n{_bullets(education.achievements)}",
                metadata=metadata(),
            ))

        for index, project in enumerate(education.projects):
            chunks.append(ContentChunk(
                id=f"{base_id}-project-{index}",
                content=f"{header}\n\nAcademic Project: {project.name}\n\n{project.description}",
                metadata=metadata(),
            ))

        return chunks

    def chunk_personal_info(self, info: PersonalInfo) -> List[ContentChunk]:
        """
        Chunk the owner profile: bio, skills, career story, philosophy,
        interests, FAQs, work style and job search details.

        Sections that are absent produce no chunks.
        """
        name = info.first_name
        chunks: List[ContentChunk] = []

        def add(chunk_id: str, content: str, chunk_type: str, item_id: str, title: str,
                tags: Optional[List[str]] = None, category: Optional[str] = None) -> None:
            chunks.append(ContentChunk(
                id=chunk_id,
                content=content,
                metadata=ChunkMetadata(
                    type=chunk_type, item_id=item_id, title=title,
                    category=category, tags=tags,
                ),
            ))

        availability = info.availability.message or info.availability.status
        add(
            "personal-bio",
            f"About {name}: {info.bio}\n\nTitle: {info.title}\n\nTagline: {info.tagline}\n\n"
            f"Location: {info.location}\n\nAvailability: {availability}",
            "bio", "personal-info", f"About {info.name}",
        )

        for skill in info.skills:
            add(
                f"skills-{_slugify(skill.category)}",
                f"Technical Skills - {skill.category}:\n\n{', '.join(skill.items)}",
                "skill", "skills", skill.category, tags=list(skill.items),
            )

        if info.skills:
            all_skills = [item for skill in info.skills for item in skill.items]
            add(
                "skills-all",
                "Technical Skills:\n\n" + "\n\n".join(
                    f"{skill.category}: {', '.join(skill.items)}" for skill in info.skills
                ),
                "skill", "skills", "All Technical Skills", tags=all_skills,
            )

        story = info.career_story
        if story:
            add("story-background", f"{name}'s Background:\n\n{story.background}",
                "story", "career-story", f"{name}'s Background",
                tags=["background", "origin"])
            add("story-inspiration", f"How {name} Got Into Computer Science:\n\n{story.inspiration}",
                "story", "career-story", "Inspiration for CS",
                tags=["inspiration", "motivation", "origin story"])
            for index, moment in enumerate(story.key_moments):
                add(f"story-moment-{index}", f"{name}'s Key Career Moment:\n\n{moment.text}",
                    "story", "career-story", moment.title or f"Key Moment {index + 1}",
                    tags=["milestone", "achievement", "journey"])
            add("story-usc", f"Why {name} Chose USC:\n\n{story.why_usc}",
                "story", "career-story", "Why USC",
                tags=["education", "usc", "graduate school", "alumni network"])
            add("story-drive", f"What Drives {name} in Tech:\n\n{story.what_drives_you}",
                "story", "career-story", f"What Drives {name}",
                tags=["motivation", "passion", "accessibility", "impact"])

        philosophy = info.technical_philosophy
        if philosophy:
            add("philosophy-approach",
                f"{name}'s Approach to Building Software:\n\n{philosophy.approach}",
                "philosophy", "technical-philosophy", "Software Development Approach",
                tags=["methodology", "process", "system design", "architecture"])
            add("philosophy-excitement",
                f"What Excites {name} Most About Development:\n\n{philosophy.what_excites_you}",
                "philosophy", "technical-philosophy", f"What Excites {name} in Development",
                tags=["passion", "system design", "architecture"])
            tools_text = "\n".join(f"• {t.name}: {t.reason}" for t in philosophy.favorite_tools)
            add("philosophy-tools",
                f"{name}'s Favorite Technologies and Tools:\n\n{tools_text}",
                "philosophy", "technical-philosophy", "Favorite Tools & Technologies",
                tags=[t.name.lower() for t in philosophy.favorite_tools])
            add("philosophy-good-project",
                f"What Makes a Good Project According to {name}:\n\n{philosophy.good_project}",
                "philosophy", "technical-philosophy", "What Makes a Good Project",
                tags=["quality", "impact", "methodology"])
            add("philosophy-ai",
                f"{name}'s Thoughts on AI/ML in Software Development:\n\n{philosophy.ai_thoughts}",
                "philosophy", "technical-philosophy", "Views on AI in Development",
                tags=["ai", "ml", "automation", "guardrails"])

        interests = info.interests
        if interests:
            if interests.hobbies:
                add("interests-hobbies",
                    f"{name}'s Hobbies and Interests Outside of Coding:\n\n{_bullets(interests.hobbies)}",
                    "interests", "personal-interests", "Hobbies & Interests",
                    tags=["hobbies", "personal", "interests"])
            if interests.books:
                add("interests-books", f"{name}'s Favorite Books:\n\n" + "\n\n".join(interests.books),
                    "interests", "personal-interests", "Favorite Books",
                    tags=["reading", "books", "learning"])
            if interests.podcasts:
                add("interests-podcasts", f"{name}'s Favorite Podcasts:\n\n" + "\n\n".join(interests.podcasts),
                    "interests", "personal-interests", "Favorite Podcasts",
                    tags=["podcasts", "learning", "tech"])
            if interests.youtube:
                add("interests-youtube",
                    f"{name}'s Favorite YouTube Channels:\n\n" + "\n\n".join(interests.youtube),
                    "interests", "personal-interests", "Favorite YouTube Channels",
                    tags=["youtube", "learning", "tech"])
            if interests.free_time:
                add("interests-freetime", f"How {name} Spends Free Time:\n\n{interests.free_time}",
                    "interests", "personal-interests", f"How {name} Unwinds",
                    tags=["personal", "hobbies", "wellness"])

        for index, faq in enumerate(info.faqs):
            add(f"faq-{index}", f"Question: {faq.question}\n\nAnswer: {faq.answer}",
                "faq", "faqs", faq.question, category=faq.category,
                tags=[faq.category, "faq", "common questions"])

        work_style = info.work_style
        if work_style:
            add("workstyle-preferences",
                f"{name}'s Work Style and Preferences:\n\n{work_style.preferences}",
                "workstyle", "work-style", "Work Style & Preferences",
                tags=["work style", "collaboration", "methodology"])
            add("workstyle-values",
                f"Important Workplace Values for {name}:\n\n{_bullets(work_style.values)}",
                "workstyle", "work-style", "Workplace Values",
                tags=["values", "culture", "teamwork"])
            add("workstyle-challenges",
                f"How {name} Handles Challenges and Setbacks:\n\n{work_style.handling_challenges}",
                "workstyle", "work-style", "Handling Challenges",
                tags=["problem solving", "incidents", "resilience"])

        # Job search details are answered like FAQs
        job_search = info.job_search
        if job_search:
            add("jobsearch-visa",
                f"{name}'s Visa Status and Work Authorization:\n\n{job_search.visa}",
                "faq", "job-search", "Visa Status & Work Authorization", category="hiring",
                tags=["visa", "work authorization", "opt", "stem opt", "h1b"])
            add("jobsearch-location",
                f"{name}'s Location and Relocation Preferences:\n\n{job_search.location_preference}",
                "faq", "job-search", "Location Preferences", category="career",
                tags=["location", "relocation", "remote", "onsite"])
            add("jobsearch-company",
                f"{name}'s Company Size and Type Preferences:\n\n{job_search.company_size_preference}",
                "faq", "job-search", "Company Preferences", category="career",
                tags=["company", "startup", "culture"])

        return chunks
