"""Job fit scoring — weight validation, score validation and priorities."""

from jobpilot.scoring.engine import (
    ensure_valid_weights,
    priority_for,
    summarize_scores,
    validate_score,
    validate_scored_job,
    validate_scored_jobs,
    validate_scoring_weights,
    weight_constraints,
)

__all__ = [
    "ensure_valid_weights",
    "priority_for",
    "summarize_scores",
    "validate_score",
    "validate_scored_job",
    "validate_scored_jobs",
    "validate_scoring_weights",
    "weight_constraints",
]
