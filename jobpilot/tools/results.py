"""Tool input and output shapes for the job agents.

Outputs form a closed union discriminated on ``action``. Adding a tool that
produces a new kind of output means adding a variant here.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Literal

from pydantic import Field, TypeAdapter, ValidationError

from jobpilot.jobs.models import CamelModel, Job, Priority, ScoreBreakdown
from jobpilot.tools.base import ToolParams

logger = logging.getLogger(__name__)

SAVE_JOBS_TOOL = "saveJobsToProfile"
SCORE_JOBS_TOOL = "scoreJobsTool"
DISPLAY_JOBS_TOOL = "displayJobs"
SEARCH_JOBS_TOOL = "searchAdzunaJobs"


# -- Inputs --------------------------------------------------------------------


class SaveJobsParams(ToolParams):
    jobs: list[Job] = Field(
        min_length=1, description="Job objects to save, exactly as displayed"
    )
    criteria: str | None = Field(
        default=None,
        description="How the jobs were selected (e.g. 'top 5 by relevance')",
    )


class ScoredJobInput(CamelModel):
    id: str = Field(description="Job ID")
    score: float = Field(ge=0, le=100, description="Overall fit score (0-100)")
    score_breakdown: ScoreBreakdown = Field(
        description="Points per category, each at most the user's weight"
    )
    reasoning: str = Field(description="Why this job is or isn't a good fit")
    gaps: list[str] = Field(
        default_factory=list, description="Missing qualifications or skill gaps"
    )
    priority: Priority = Field(
        description="high (>=85), medium (70-84), low (<70)"
    )


class ScoreJobsParams(ToolParams):
    scored_jobs: list[ScoredJobInput] = Field(
        min_length=1, description="Scored saved jobs with analysis"
    )


class DisplayJobsParams(ToolParams):
    jobs: list[dict[str, Any]] = Field(
        description="Structured job objects to show to the user"
    )


class SearchJobsParams(ToolParams):
    query: str = Field(
        description="Job search query (e.g. 'AI engineer', 'product manager fintech')"
    )
    location: str | None = Field(
        default=None,
        description="Location filter (e.g. 'San Francisco', 'Remote'). Omit for all locations.",
    )
    results_count: int = Field(
        default=20, ge=1, le=50, description="Number of results to return (max 50)"
    )


# -- Outputs -------------------------------------------------------------------


class SavedJobsOutput(CamelModel):
    action: Literal["saved"] = "saved"
    saved_jobs: list[Job]
    count: int
    criteria: str = "selected jobs"
    message: str


class PriorityCounts(CamelModel):
    high: int = 0
    medium: int = 0
    low: int = 0


class ScoredJobsOutput(CamelModel):
    action: Literal["scored"] = "scored"
    scored_jobs: list[ScoredJobInput]
    count: int
    average_score: int
    priority_counts: PriorityCounts
    message: str


class DisplayJobsOutput(CamelModel):
    action: Literal["display"] = "display"
    jobs: list[Job]
    count: int
    query: str | None = None
    message: str


ToolOutput = Annotated[
    SavedJobsOutput | ScoredJobsOutput | DisplayJobsOutput,
    Field(discriminator="action"),
]

_output_adapter: TypeAdapter[ToolOutput] = TypeAdapter(ToolOutput)


def parse_tool_output(
    data: dict[str, Any] | None,
) -> SavedJobsOutput | ScoredJobsOutput | DisplayJobsOutput | None:
    """Parse a tool's JSON output into its variant, or None if it has none."""
    if not data or "action" not in data:
        return None
    try:
        return _output_adapter.validate_python(data)
    except ValidationError:
        logger.warning("Unrecognised tool output with action=%r", data.get("action"))
        return None


def plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"
