"""Job tools — display, save and score jobs on behalf of the agents.

These handlers only shape and check data. Persisting a save or a score is
done once per invocation by the tool-result processor when the call
completes.
"""

import logging
from typing import Any

from pydantic import ValidationError

from jobpilot.errors import MalformedScoreError
from jobpilot.jobs.models import Job, utc_now
from jobpilot.scoring.engine import summarize_scores, validate_scored_jobs
from jobpilot.tools.base import ToolContext, ToolResult
from jobpilot.tools.registry import discovery_registry, matching_registry
from jobpilot.tools.results import (
    DISPLAY_JOBS_TOOL,
    SAVE_JOBS_TOOL,
    SCORE_JOBS_TOOL,
    DisplayJobsOutput,
    DisplayJobsParams,
    PriorityCounts,
    SavedJobsOutput,
    SaveJobsParams,
    ScoredJobInput,
    ScoredJobsOutput,
    ScoreJobsParams,
    plural,
)

logger = logging.getLogger(__name__)


@discovery_registry.tool(
    name=DISPLAY_JOBS_TOOL,
    description=(
        "Display structured job listings to the user. Call this after you have "
        "parsed job data from any source. Displayed jobs are temporary until the "
        "user asks to save them."
    ),
    category="discovery",
    params_model=DisplayJobsParams,
)
async def display_jobs(jobs: list[dict[str, Any]]) -> ToolResult:
    if not jobs:
        return ToolResult(error="No jobs provided to display")

    valid: list[Job] = []
    for raw in jobs:
        try:
            valid.append(Job.model_validate(raw))
        except ValidationError:
            logger.warning("Skipping invalid job object: %s", raw.get("id", "<no id>"))

    output = DisplayJobsOutput(
        jobs=valid,
        count=len(valid),
        message=f"Displaying {plural(len(valid), 'job')}",
    )
    return ToolResult(data=output.to_json_dict())


@discovery_registry.tool(
    name=SAVE_JOBS_TOOL,
    description=(
        "Save selected jobs to the user's profile. Use this ONLY when the user "
        "explicitly asks to save jobs (e.g. 'save the top 5', 'save jobs 2 and 5'). "
        "Never save jobs without being asked."
    ),
    category="discovery",
    params_model=SaveJobsParams,
)
async def save_jobs_to_profile(
    jobs: list[dict[str, Any]], criteria: str | None = None
) -> ToolResult:
    now = utc_now()
    saved = [Job.model_validate(job).mark_saved(now) for job in jobs]
    logger.info("Save requested for %d job(s) (%s)", len(saved), criteria or "no criteria")

    suffix = f" ({criteria})" if criteria else ""
    output = SavedJobsOutput(
        saved_jobs=saved,
        count=len(saved),
        criteria=criteria or "selected jobs",
        message=f"Saved {plural(len(saved), 'job')}{suffix} to your profile",
    )
    return ToolResult(data=output.to_json_dict())


@matching_registry.tool(
    name=SCORE_JOBS_TOOL,
    description=(
        "Return scored saved jobs with a breakdown by category (salary, location, "
        "company, role, requirements), reasoning, gaps and priority. Each category's "
        "points must not exceed the user's weight for it, and the overall score "
        "must equal the sum of the categories. Only score saved jobs."
    ),
    category="matching",
    params_model=ScoreJobsParams,
)
async def score_jobs(
    scored_jobs: list[dict[str, Any]], tool_context: ToolContext | None = None
) -> ToolResult:
    if tool_context is None:
        return ToolResult(error="Scoring needs the user's profile context")

    profile = await tool_context.gateway.get_profile(tool_context.user_id)
    if profile is None:
        return ToolResult(error="The user has no profile; scores cannot be checked")

    entries = [ScoredJobInput.model_validate(entry) for entry in scored_jobs]
    try:
        scores = validate_scored_jobs(entries, profile.scoring_weights)
    except MalformedScoreError as exc:
        logger.warning("Rejected score batch: %s", exc)
        return ToolResult(error=str(exc))

    # Priorities are derived from the overall score, not taken from the model
    checked = [
        entry.model_copy(update={"priority": scores[entry.id].priority})
        for entry in entries
    ]
    summary = summarize_scores(scores.values())
    logger.info(
        "Scored %d job(s), average %d (%s)",
        summary.count,
        summary.average_score,
        summary.priority_counts,
    )

    output = ScoredJobsOutput(
        scored_jobs=checked,
        count=summary.count,
        average_score=summary.average_score,
        priority_counts=PriorityCounts(**summary.priority_counts),
        message=(
            f"Scored {plural(summary.count, 'job')}. "
            f"Average score: {summary.average_score}/100"
        ),
    )
    return ToolResult(data=output.to_json_dict())
