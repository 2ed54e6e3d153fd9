"""Weighted scoring contract for job fit.

The judgment of how well a job fits is made by the matching agent. This
module owns what is deterministic around it: the weight budget handed to the
agent, validation of the breakdown it returns, and the priority derived from
the overall score.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from jobpilot.config import settings
from jobpilot.errors import InvalidWeightsError, MalformedScoreError
from jobpilot.jobs.models import SCORE_CATEGORIES, JobScore, Priority, ScoringWeights

if TYPE_CHECKING:
    from collections.abc import Iterable

    from jobpilot.jobs.models import ScoreBreakdown
    from jobpilot.tools.results import ScoredJobInput

logger = logging.getLogger(__name__)

HIGH_PRIORITY_THRESHOLD = 85
MEDIUM_PRIORITY_THRESHOLD = 70

_CATEGORY_LABELS: dict[str, str] = {
    "salary_match": "Salary match",
    "location_fit": "Location fit",
    "company_appeal": "Company appeal",
    "role_match": "Role match",
    "requirements_fit": "Requirements fit",
}


def priority_for(score: float) -> Priority:
    """Map an overall score to a priority: high >= 85, medium >= 70, else low."""
    if score >= HIGH_PRIORITY_THRESHOLD:
        return "high"
    if score >= MEDIUM_PRIORITY_THRESHOLD:
        return "medium"
    return "low"


def validate_scoring_weights(weights: ScoringWeights) -> bool:
    """Return True if the five weights sum to exactly 100."""
    return weights.total == 100


def ensure_valid_weights(weights: ScoringWeights) -> None:
    """Raise InvalidWeightsError unless the weights sum to exactly 100."""
    if not validate_scoring_weights(weights):
        raise InvalidWeightsError(weights.total)


def validate_score(
    job_id: str,
    breakdown: ScoreBreakdown,
    weights: ScoringWeights,
    overall: float,
    *,
    tolerance: float | None = None,
) -> None:
    """Check a breakdown against the weights it was scored under.

    Raises:
        MalformedScoreError: A sub-score is negative or above its weight,
            the overall score is outside 0-100, or the sub-scores do not sum
            to the overall score within ``tolerance``.
    """
    tol = settings.score_sum_tolerance if tolerance is None else tolerance

    if not 0 <= overall <= 100:
        raise MalformedScoreError(job_id, f"overall score {overall} is outside 0-100")

    for name in SCORE_CATEGORIES:
        points = getattr(breakdown, name)
        limit = getattr(weights, name)
        if points < 0:
            raise MalformedScoreError(job_id, f"{name} is negative ({points})")
        if points > limit:
            raise MalformedScoreError(
                job_id, f"{name} of {points} exceeds its weight of {limit}"
            )

    total = breakdown.total
    if abs(total - overall) > tol:
        raise MalformedScoreError(
            job_id, f"sub-scores sum to {total} but overall score is {overall}"
        )


def validate_scored_job(
    entry: ScoredJobInput,
    weights: ScoringWeights,
    *,
    tolerance: float | None = None,
) -> JobScore:
    """Validate one scored job and derive its priority from the overall score."""
    validate_score(
        entry.id, entry.score_breakdown, weights, entry.score, tolerance=tolerance
    )
    priority = priority_for(entry.score)
    if entry.priority != priority:
        logger.info(
            "Job %s reported priority %s for score %s; using %s",
            entry.id,
            entry.priority,
            entry.score,
            priority,
        )
    return JobScore(
        score=entry.score,
        score_breakdown=entry.score_breakdown,
        reasoning=entry.reasoning,
        gaps=list(entry.gaps),
        priority=priority,
    )


def validate_scored_jobs(
    entries: Iterable[ScoredJobInput],
    weights: ScoringWeights,
) -> dict[str, JobScore]:
    """Validate a whole batch. One malformed or repeated entry rejects the batch."""
    scores: dict[str, JobScore] = {}
    for entry in entries:
        if entry.id in scores:
            raise MalformedScoreError(entry.id, "scored more than once in the batch")
        scores[entry.id] = validate_scored_job(entry, weights)
    return scores


def weight_constraints(weights: ScoringWeights) -> str:
    """Render the per-category maximums as a prompt section."""
    lines = ["Maximum points per category (hard limits, the total is 100):"]
    for name in SCORE_CATEGORIES:
        lines.append(f"- {_CATEGORY_LABELS[name]}: {getattr(weights, name)}")
    lines.append(
        "The overall score must equal the sum of the category points. "
        f"Priority: high >= {HIGH_PRIORITY_THRESHOLD}, "
        f"medium {MEDIUM_PRIORITY_THRESHOLD}-{HIGH_PRIORITY_THRESHOLD - 1}, "
        f"low < {MEDIUM_PRIORITY_THRESHOLD}."
    )
    return "\n".join(lines)


@dataclass
class ScoreSummary:
    """Aggregate figures for a batch of scores."""

    count: int
    average_score: int
    priority_counts: dict[str, int]


def summarize_scores(scores: Iterable[JobScore]) -> ScoreSummary:
    """Average (rounded) and per-priority counts for a batch of scores."""
    items = list(scores)
    counts = {"high": 0, "medium": 0, "low": 0}
    for item in items:
        counts[item.priority] += 1
    average = round(sum(s.score for s in items) / len(items)) if items else 0
    return ScoreSummary(count=len(items), average_score=average, priority_counts=counts)
