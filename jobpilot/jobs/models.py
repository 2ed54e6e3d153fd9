"""Data models for jobs, scores and the user profile.

Stored and exchanged with the model as camelCase JSON; Python attributes are
snake_case. Construct with either spelling.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

JobSource = Literal["scraped", "api", "manual"]
ApplicationStatus = Literal["saved", "applied", "interviewing", "offer", "rejected"]
Priority = Literal["high", "medium", "low"]

SCORE_CATEGORIES: tuple[str, ...] = (
    "salary_match",
    "location_fit",
    "company_appeal",
    "role_match",
    "requirements_fit",
)


def utc_now() -> str:
    """Current time as an ISO 8601 string."""
    return datetime.now(UTC).isoformat()


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        """Dump with camelCase keys, omitting unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ScoringWeights(CamelModel):
    """Maximum points each category may contribute. Must sum to 100."""

    salary_match: int = Field(default=30, ge=0)
    location_fit: int = Field(default=20, ge=0)
    company_appeal: int = Field(default=25, ge=0)
    role_match: int = Field(default=15, ge=0)
    requirements_fit: int = Field(default=10, ge=0)

    @property
    def total(self) -> int:
        return sum(getattr(self, name) for name in SCORE_CATEGORIES)


class ScoreBreakdown(CamelModel):
    """Points awarded per category."""

    salary_match: float
    location_fit: float
    company_appeal: float
    role_match: float
    requirements_fit: float

    @property
    def total(self) -> float:
        return sum(getattr(self, name) for name in SCORE_CATEGORIES)


class JobScore(CamelModel):
    """A validated score ready to be applied to a saved job."""

    score: float
    score_breakdown: ScoreBreakdown
    reasoning: str = ""
    gaps: list[str] = Field(default_factory=list)
    priority: Priority


class ResumeChange(CamelModel):
    type: Literal["reorder", "keyword", "emphasis", "summary", "trim", "section_move"]
    description: str


class TailoredResume(CamelModel):
    """A resume generated for one specific job."""

    resume_id: str
    content: str
    changes: list[ResumeChange] = Field(default_factory=list)
    generated_at: str = Field(default_factory=utc_now)


class Job(CamelModel):
    """A discovered or saved job posting.

    Attributes:
        id: Unique job identifier.
        source: ``"scraped"``, ``"api"`` or ``"manual"``.
        discovered_at: ISO 8601 timestamp of discovery.
        application_status: Set once the user saves the job.
        score: Overall fit score (0-100), present once scored.
        tailored_resume: Present once a resume was generated for this job.
    """

    id: str
    title: str
    company: str
    location: str
    salary: str | None = None
    description: str
    requirements: list[str] = Field(default_factory=list)
    url: str
    source: JobSource
    discovered_at: str = Field(default_factory=utc_now)

    application_status: ApplicationStatus | None = None
    status_updated_at: str | None = None
    notes: str | None = None

    score: float | None = None
    score_breakdown: ScoreBreakdown | None = None
    reasoning: str | None = None
    gaps: list[str] | None = None
    priority: Priority | None = None

    tailored_resume: TailoredResume | None = None

    @property
    def is_saved(self) -> bool:
        return self.application_status is not None

    @property
    def is_scored(self) -> bool:
        return self.score is not None and self.score_breakdown is not None

    def mark_saved(self, timestamp: str | None = None) -> Job:
        """Return a copy marked as saved by the user."""
        return self.model_copy(
            update={
                "application_status": "saved",
                "status_updated_at": timestamp or utc_now(),
            }
        )

    def with_score(self, job_score: JobScore) -> Job:
        """Return a copy enriched with scoring fields."""
        return self.model_copy(
            update={
                "score": job_score.score,
                "score_breakdown": job_score.score_breakdown,
                "reasoning": job_score.reasoning,
                "gaps": list(job_score.gaps),
                "priority": job_score.priority,
            }
        )


class UserProfile(CamelModel):
    """The user's background and job search preferences."""

    name: str = ""
    professional_background: str = ""
    skills: list[str] = Field(default_factory=list)
    salary_min: int = 0
    salary_max: int = 0
    preferred_locations: list[str] = Field(default_factory=list)
    job_preferences: list[str] = Field(default_factory=list)
    deal_breakers: str = ""
    company_preferences: str | None = None
    scoring_weights: ScoringWeights = Field(default_factory=ScoringWeights)
    updated_at: str = Field(default_factory=utc_now)
    created_via: Literal["chat", "form"] | None = None
