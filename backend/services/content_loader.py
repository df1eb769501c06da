"""Content loading service for the portfolio corpus."""
import json
import logging
import os
from typing import Any, Dict, Optional

from models.content import (
    AcademicProject, Availability, CareerStory, Education, Experience, FAQ,
    FavoriteTool, Highlight, Interests, JobSearch, KeyMoment, Metric,
    PersonalInfo, PortfolioContent, Project, SkillCategory, TechnicalPhilosophy,
    WorkStyle,
)
from config import CONTENT_PATH

logger = logging.getLogger(__name__)


class ContentLoader:
    """Loads portfolio content from a JSON file into the content model."""

    def __init__(self, content_path: str = CONTENT_PATH):
        """
        Initialize ContentLoader.

        Args:
            content_path: Path to the portfolio JSON file
        """
        self.content_path = content_path

    def load(self) -> PortfolioContent:
        """
        Load and parse the portfolio corpus.

        Returns:
            PortfolioContent with personal info, projects, experiences and education

        Raises:
            FileNotFoundError: If the content file does not exist
            ValueError: If the file is not valid JSON or misses required fields
        """
        if not os.path.exists(self.content_path):
            logger.error(f"Content file not found: {self.content_path}")
            raise FileNotFoundError(f"Content file not found: {self.content_path}")

        with open(self.content_path, "r", encoding="utf-8") as f:
            try:
                raw = json.load(f)
            except json.JSONDecodeError as e:
                error_msg = f"Invalid JSON in {self.content_path}: {str(e)}"
                logger.error(error_msg)
                raise ValueError(error_msg)

        content = self.parse(raw)
        logger.info(
            f"Loaded content: {len(content.projects)} projects, "
            f"{len(content.experiences)} experiences, {len(content.education)} education entries"
        )
        return content

    def parse(self, raw: Dict[str, Any]) -> PortfolioContent:
        """
        Build the content model from a decoded JSON document.

        Args:
            raw: Decoded JSON object with camelCase keys

        Returns:
            PortfolioContent

        Raises:
            ValueError: If a required field is missing
        """
        try:
            personal = raw.get("personalInfo")
            return PortfolioContent(
                personal_info=self._parse_personal_info(personal) if personal else None,
                projects=[self._parse_project(p) for p in raw.get("projects", [])],
                experiences=[self._parse_experience(e) for e in raw.get("experiences", [])],
                education=[self._parse_education(e) for e in raw.get("education", [])],
            )
        except KeyError as e:
            error_msg = f"Missing required content field: {e}"
            logger.error(error_msg)
            raise ValueError(error_msg)

    def _parse_project(self, data: Dict[str, Any]) -> Project:
        return Project(
            id=data["id"],
            title=data["title"],
            slug=data.get("slug", ""),
            year=data["year"],
            category=data["category"],
            summary=data["summary"],
            problem=data.get("problem", ""),
            approach=data.get("approach", ""),
            impact=data.get("impact", ""),
            my_role=data.get("myRole", ""),
            duration=data.get("duration", ""),
            metrics=[Metric(label=m["label"], value=m["value"]) for m in data.get("metrics", [])],
            team_size=data.get("teamSize"),
            technologies=data.get("technologies", []),
            tags=data.get("tags", []),
            links=data.get("links", {}),
            featured=data.get("featured", False),
            sort_order=data.get("sortOrder", 0),
        )

    def _parse_experience(self, data: Dict[str, Any]) -> Experience:
        return Experience(
            id=data["id"],
            company=data["company"],
            role=data["role"],
            type=data.get("type", ""),
            location=data.get("location", ""),
            start_date=data["startDate"],
            end_date=data.get("endDate"),
            current=data.get("current", False),
            summary=data["summary"],
            highlights=[
                Highlight(text=h["text"], metric=h.get("metric"))
                for h in data.get("highlights", [])
            ],
            technologies=data.get("technologies", []),
            company_info=data.get("companyInfo", {}),
            links=data.get("links", {}),
        )

    def _parse_education(self, data: Dict[str, Any]) -> Education:
        return Education(
            id=data["id"],
            institution=data["institution"],
            degree=data["degree"],
            field=data["field"],
            location=data.get("location", ""),
            start_year=data["startYear"],
            end_year=data["endYear"],
            gpa=data.get("gpa"),
            relevant_coursework=data.get("relevantCoursework", []),
            achievements=data.get("achievements", []),
            projects=[
                AcademicProject(name=p["name"], description=p["description"])
                for p in data.get("projects", [])
            ],
        )

    def _parse_personal_info(self, data: Dict[str, Any]) -> PersonalInfo:
        availability = data.get("availability", {})
        return PersonalInfo(
            name=data["name"],
            title=data.get("title", ""),
            tagline=data.get("tagline", ""),
            bio=data.get("bio", ""),
            location=data.get("location", ""),
            availability=Availability(
                status=availability.get("status", ""),
                message=availability.get("message"),
            ),
            links=data.get("links", {}),
            skills=[
                SkillCategory(category=s["category"], items=s["items"])
                for s in data.get("skills", [])
            ],
            career_story=self._parse_career_story(data.get("careerStory")),
            technical_philosophy=self._parse_philosophy(data.get("technicalPhilosophy")),
            interests=self._parse_interests(data.get("interests")),
            faqs=[
                FAQ(question=f["question"], answer=f["answer"], category=f.get("category", ""))
                for f in data.get("faqs", [])
            ],
            work_style=self._parse_work_style(data.get("workStyle")),
            job_search=self._parse_job_search(data.get("jobSearch")),
        )

    def _parse_career_story(self, data: Optional[Dict[str, Any]]) -> Optional[CareerStory]:
        if not data:
            return None
        return CareerStory(
            background=data.get("background", ""),
            inspiration=data.get("inspiration", ""),
            key_moments=[
                KeyMoment(title=m.get("title", ""), text=m["text"])
                for m in data.get("keyMoments", [])
            ],
            why_usc=data.get("whyUSC", ""),
            what_drives_you=data.get("whatDrivesYou", ""),
        )

    def _parse_philosophy(self, data: Optional[Dict[str, Any]]) -> Optional[TechnicalPhilosophy]:
        if not data:
            return None
        return TechnicalPhilosophy(
            approach=data.get("approach", ""),
            what_excites_you=data.get("whatExcitesYou", ""),
            favorite_tools=[
                FavoriteTool(name=t["name"], reason=t["reason"])
                for t in data.get("favoriteTools", [])
            ],
            good_project=data.get("goodProject", ""),
            ai_thoughts=data.get("aiThoughts", ""),
        )

    def _parse_interests(self, data: Optional[Dict[str, Any]]) -> Optional[Interests]:
        if not data:
            return None
        return Interests(
            hobbies=data.get("hobbies", []),
            books=data.get("books", []),
            podcasts=data.get("podcasts", []),
            youtube=data.get("youtube", []),
            free_time=data.get("freeTime", ""),
        )

    def _parse_work_style(self, data: Optional[Dict[str, Any]]) -> Optional[WorkStyle]:
        if not data:
            return None
        return WorkStyle(
            preferences=data.get("preferences", ""),
            values=data.get("values", []),
            handling_challenges=data.get("handlingChallenges", ""),
        )

    def _parse_job_search(self, data: Optional[Dict[str, Any]]) -> Optional[JobSearch]:
        if not data:
            return None
        return JobSearch(
            visa=data.get("visa", ""),
            location_preference=data.get("locationPreference", ""),
            company_size_preference=data.get("companySizePreference", ""),
            redirect_to_call=data.get("redirectToCall", []),
        )
