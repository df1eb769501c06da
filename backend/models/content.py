"""Portfolio content data models."""
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class Metric:
    """A labelled project metric, e.g. "Interview Callbacks: +30%"."""
    label: str
    value: str


@dataclass
class Project:
    """A portfolio project."""
    id: str  # e.g. "project-1"
    title: str
    slug: str
    year: int
    category: str
    summary: str
    problem: str
    approach: str
    impact: str
    my_role: str
    duration: str = ""
    metrics: List[Metric] = field(default_factory=list)
    team_size: Optional[int] = None
    technologies: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    links: Dict[str, str] = field(default_factory=dict)
    featured: bool = False
    sort_order: int = 0


@dataclass
class Highlight:
    """A single achievement within an experience."""
    text: str
    metric: Optional[str] = None


@dataclass
class Experience:
    """A work experience entry."""
    id: str
    company: str
    role: str
    type: str
    location: str
    start_date: str  # "YYYY-MM"
    end_date: Optional[str]  # None for the current role
    current: bool
    summary: str
    highlights: List[Highlight] = field(default_factory=list)
    technologies: List[str] = field(default_factory=list)
    company_info: Dict[str, str] = field(default_factory=dict)
    links: Dict[str, str] = field(default_factory=dict)

    @property
    def start_year(self) -> int:
        return int(self.start_date.split("-")[0])

    @property
    def title(self) -> str:
        return f"{self.role} at {self.company}"


@dataclass
class AcademicProject:
    name: str
    description: str


@dataclass
class Education:
    """An education entry."""
    id: str
    institution: str
    degree: str
    field: str
    location: str
    start_year: int
    end_year: int
    gpa: Optional[str] = None
    relevant_coursework: List[str] = field(default_factory=list)
    achievements: List[str] = field(default_factory=list)
    projects: List[AcademicProject] = field(default_factory=list)

    @property
    def title(self) -> str:
        return f"{self.degree} in {self.field} from {self.institution}"


@dataclass
class Availability:
    status: str
    message: Optional[str] = None


@dataclass
class SkillCategory:
    category: str
    items: List[str]


@dataclass
class KeyMoment:
    title: str
    text: str


@dataclass
class CareerStory:
    background: str
    inspiration: str
    key_moments: List[KeyMoment]
    why_usc: str
    what_drives_you: str


@dataclass
class FavoriteTool:
    name: str
    reason: str


@dataclass
class TechnicalPhilosophy:
    approach: str
    what_excites_you: str
    favorite_tools: List[FavoriteTool]
    good_project: str
    ai_thoughts: str


@dataclass
class Interests:
    hobbies: List[str] = field(default_factory=list)
    books: List[str] = field(default_factory=list)
    podcasts: List[str] = field(default_factory=list)
    youtube: List[str] = field(default_factory=list)
    free_time: str = ""


@dataclass
class FAQ:
    question: str
    answer: str
    category: str  # career | technical | personal | hiring


@dataclass
class WorkStyle:
    preferences: str
    values: List[str]
    handling_challenges: str


@dataclass
class JobSearch:
    visa: str
    location_preference: str
    company_size_preference: str
    redirect_to_call: List[str] = field(default_factory=list)


@dataclass
class PersonalInfo:
    """Owner profile plus the extended content used by the chat assistant."""
    name: str
    title: str
    tagline: str
    bio: str
    location: str
    availability: Availability
    links: Dict[str, str] = field(default_factory=dict)
    skills: List[SkillCategory] = field(default_factory=list)
    career_story: Optional[CareerStory] = None
    technical_philosophy: Optional[TechnicalPhilosophy] = None
    interests: Optional[Interests] = None
    faqs: List[FAQ] = field(default_factory=list)
    work_style: Optional[WorkStyle] = None
    job_search: Optional[JobSearch] = None

    @property
    def first_name(self) -> str:
        return self.name.split()[0]


@dataclass
class PortfolioContent:
    """The full content corpus."""
    personal_info: Optional[PersonalInfo]
    projects: List[Project]
    experiences: List[Experience]
    education: List[Education]
