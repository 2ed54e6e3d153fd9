"""System prompt assembly for the discovery and matching agents."""

import json
import logging

from jobpilot.jobs.gateway import PersistenceGateway
from jobpilot.scoring.engine import weight_constraints
from jobpilot.tools.results import (
    DISPLAY_JOBS_TOOL,
    SAVE_JOBS_TOOL,
    SCORE_JOBS_TOOL,
    SEARCH_JOBS_TOOL,
)

logger = logging.getLogger(__name__)

DISCOVERY_PROMPT = f"""\
You are a job discovery assistant. Help the user find job postings that fit \
what they are looking for.

- Use {SEARCH_JOBS_TOOL} (when available) to search, then {DISPLAY_JOBS_TOOL} \
to show structured results. Give each job a unique id.
- Displayed jobs are temporary. Call {SAVE_JOBS_TOOL} only when the user \
explicitly asks to save specific jobs, passing the job objects unchanged.
- You do not score jobs. When asked to score, explain what the user needs to \
do first.
- Keep answers short."""

MATCHING_PROMPT = f"""\
You are a job matching analyst. Score each of the user's saved jobs against \
their profile and return every result through {SCORE_JOBS_TOOL}.

- Award points per category, never more than the category's weight.
- The overall score is exactly the sum of the category points.
- Explain the reasoning and list concrete gaps honestly.
- Only score the saved jobs listed below."""


def build_discovery_prompt() -> str:
    return DISCOVERY_PROMPT


async def build_matching_prompt(gateway: PersistenceGateway, user_id: str) -> str:
    """Matching prompt with the current profile, weights and saved jobs.

    Rebuilt for every turn so the agent never scores against stale data.
    """
    profile = await gateway.get_profile(user_id)
    jobs = await gateway.get_jobs(user_id)
    logger.debug("Matching context: %d saved job(s), profile=%s", len(jobs), bool(profile))

    sections = [MATCHING_PROMPT]
    if profile is not None:
        sections.append(weight_constraints(profile.scoring_weights))
        sections.append(
            "## User profile\n\n```json\n"
            + json.dumps(profile.to_json_dict(), indent=2)
            + "\n```"
        )
    sections.append(
        "## Saved jobs to score\n\n```json\n"
        + json.dumps([job.to_json_dict() for job in jobs], indent=2)
        + "\n```"
    )
    return "\n\n".join(sections)
