"""Adzuna job search tool for the discovery agent."""

import logging
import uuid
from typing import Any

import httpx

from jobpilot.config import settings
from jobpilot.jobs.models import Job, utc_now
from jobpilot.tools.base import ToolResult
from jobpilot.tools.registry import discovery_registry
from jobpilot.tools.results import SEARCH_JOBS_TOOL, DisplayJobsOutput, SearchJobsParams, plural

logger = logging.getLogger(__name__)

ADZUNA_SEARCH_URL = "https://api.adzuna.com/v1/api/jobs/{country}/search/1"


def _format_salary(hit: dict[str, Any]) -> str | None:
    low = hit.get("salary_min")
    high = hit.get("salary_max")
    if low and high:
        return f"${low:,.0f} - ${high:,.0f}"
    if low:
        return f"${low:,.0f}+"
    return None


def _guess_requirements(description: str) -> list[str]:
    """Pull coarse requirements out of a snippet; Adzuna has no structured field."""
    lowered = description.lower()
    requirements: list[str] = []
    if "bachelor" in lowered or "degree" in lowered:
        requirements.append("Bachelor's degree or equivalent experience")
    if "experience" in lowered:
        requirements.append("Relevant professional experience")
    return requirements


def map_adzuna_job(hit: dict[str, Any]) -> Job:
    """Convert one Adzuna result into a Job."""
    description = hit.get("description", "")
    return Job(
        id=uuid.uuid4().hex,
        title=hit.get("title", ""),
        company=(hit.get("company") or {}).get("display_name", ""),
        location=(hit.get("location") or {}).get("display_name", ""),
        salary=_format_salary(hit),
        description=description,
        requirements=_guess_requirements(description),
        url=hit.get("redirect_url", ""),
        source="api",
        discovered_at=utc_now(),
    )


@discovery_registry.tool(
    name=SEARCH_JOBS_TOOL,
    description=(
        "Search for jobs with the Adzuna job search API across many companies and "
        "job boards. Use this for broad searches. Results are shown temporarily and "
        "must be explicitly saved by the user."
    ),
    category="discovery",
    params_model=SearchJobsParams,
)
async def search_adzuna_jobs(
    query: str, location: str | None = None, results_count: int = 20
) -> ToolResult:
    if not settings.adzuna_enabled:
        return ToolResult(error="ADZUNA_APP_ID and ADZUNA_APP_KEY are not configured.")

    params: dict[str, Any] = {
        "app_id": settings.adzuna_app_id,
        "app_key": settings.adzuna_app_key,
        "results_per_page": results_count,
        "what": query,
        "content-type": "application/json",
    }
    if location:
        params["where"] = location

    url = ADZUNA_SEARCH_URL.format(country=settings.adzuna_country)
    try:
        async with httpx.AsyncClient(timeout=20) as client:
            resp = await client.get(url, params=params)

        if resp.status_code != 200:
            return ToolResult(
                error=f"Adzuna API returned {resp.status_code}: {resp.text[:200]}"
            )

        results = resp.json().get("results", [])
    except httpx.HTTPError as exc:
        logger.exception("Adzuna search request failed")
        return ToolResult(error=f"Search request failed: {exc}")

    jobs = [map_adzuna_job(hit) for hit in results]
    where = f" in {location}" if location else ""
    output = DisplayJobsOutput(
        jobs=jobs,
        count=len(jobs),
        query=query,
        message=f"Found {plural(len(jobs), 'job')} matching \"{query}\"{where}",
    )
    return ToolResult(data=output.to_json_dict())
