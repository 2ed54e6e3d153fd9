"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import pytest

from jobpilot.jobs.models import (
    Job,
    JobScore,
    ScoreBreakdown,
    ScoringWeights,
    TailoredResume,
    UserProfile,
)
from jobpilot.jobs.store import JobStore


def make_job(job_id: str = "job1", **kwargs: Any) -> Job:
    defaults: dict[str, Any] = {
        "title": "Backend Engineer",
        "company": "Acme",
        "location": "Remote",
        "salary": "$150,000 - $180,000",
        "description": "Build APIs in Python.",
        "requirements": ["Python", "SQL"],
        "url": f"https://jobs.example.com/{job_id}",
        "source": "manual",
        "discovered_at": "2025-01-01T00:00:00+00:00",
    }
    defaults.update(kwargs)
    return Job(id=job_id, **defaults)


def make_profile(**kwargs: Any) -> UserProfile:
    defaults: dict[str, Any] = {
        "name": "Sam",
        "professional_background": "Eight years of backend work",
        "skills": ["Python", "PostgreSQL"],
        "salary_min": 140000,
        "salary_max": 190000,
        "preferred_locations": ["Remote"],
    }
    defaults.update(kwargs)
    return UserProfile(**defaults)


def make_breakdown(
    salary: float = 25, location: float = 18, company: float = 20, role: float = 12, req: float = 8
) -> ScoreBreakdown:
    return ScoreBreakdown(
        salary_match=salary,
        location_fit=location,
        company_appeal=company,
        role_match=role,
        requirements_fit=req,
    )


def scored_entry(job_id: str = "job1", breakdown: ScoreBreakdown | None = None, **kwargs: Any) -> dict:
    """A scored-job object as the matching agent sends it (camelCase)."""
    breakdown = breakdown or make_breakdown()
    entry = {
        "id": job_id,
        "score": breakdown.total,
        "scoreBreakdown": breakdown.to_json_dict(),
        "reasoning": "Strong backend overlap",
        "gaps": ["Kubernetes"],
        "priority": "high",
    }
    entry.update(kwargs)
    return entry


class FakeGateway:
    """In-memory PersistenceGateway that records every write."""

    def __init__(self, profile: UserProfile | None = None, jobs: list[Job] | None = None) -> None:
        self.profile = profile
        self.jobs: dict[str, Job] = {job.id: job for job in jobs or []}
        self.upsert_calls: list[list[Job]] = []
        self.score_calls: list[dict[str, JobScore]] = []
        self.fail_writes = False
        self.write_delay = 0.0
        self.write_error: Exception | None = None
        self.read_error: Exception | None = None

    async def get_jobs(self, user_id: str) -> list[Job]:
        if self.read_error is not None:
            raise self.read_error
        return list(self.jobs.values())

    async def upsert_jobs(self, user_id: str, jobs: list[Job]) -> bool:
        self.upsert_calls.append(list(jobs))
        if self.write_delay:
            await asyncio.sleep(self.write_delay)
        if self.write_error is not None:
            raise self.write_error
        if self.fail_writes:
            return False
        for job in jobs:
            self.jobs.setdefault(job.id, job)
        return True

    async def apply_scores(self, user_id: str, scores: dict[str, JobScore]) -> bool:
        self.score_calls.append(dict(scores))
        if self.write_error is not None:
            raise self.write_error
        if self.fail_writes:
            return False
        for job_id, job_score in scores.items():
            if job_id in self.jobs:
                self.jobs[job_id] = self.jobs[job_id].with_score(job_score)
        return True

    async def delete_job(self, user_id: str, job_id: str) -> bool:
        return self.jobs.pop(job_id, None) is not None

    async def update_job_status(self, user_id: str, job_id: str, status: str) -> bool:
        return self._update(job_id, application_status=status)

    async def update_job_notes(self, user_id: str, job_id: str, notes: str) -> bool:
        return self._update(job_id, notes=notes)

    async def save_job_resume(self, user_id: str, job_id: str, resume: TailoredResume) -> bool:
        return self._update(job_id, tailored_resume=resume)

    def _update(self, job_id: str, **fields: Any) -> bool:
        if self.fail_writes or job_id not in self.jobs:
            return False
        self.jobs[job_id] = self.jobs[job_id].model_copy(update=fields)
        return True

    async def get_profile(self, user_id: str) -> UserProfile | None:
        return self.profile

    async def save_profile(self, user_id: str, profile: UserProfile) -> bool:
        if self.fail_writes:
            return False
        self.profile = profile
        return True


@pytest.fixture
def gateway() -> FakeGateway:
    """Empty in-memory gateway with a default profile."""
    return FakeGateway(profile=make_profile())


@pytest.fixture
def weights() -> ScoringWeights:
    return ScoringWeights()


@pytest.fixture
async def store(tmp_path: Path) -> JobStore:
    """Create a JobStore backed by a temp database."""
    JobStore._reset()
    s = JobStore(db_path=tmp_path / "test.db")
    JobStore._instance = s
    yield s
    JobStore._reset()


class ScriptedCollaborator:
    """Collaborator that replays a fixed list of stream events.

    If ``gate`` is set, the stream pauses before its first event until the
    gate is released. ``error`` is raised after the events are sent.
    """

    def __init__(self, events=None, *, gate: asyncio.Event | None = None, error: Exception | None = None):
        self.events = list(events or [])
        self.gate = gate
        self.error = error
        self.calls: list[tuple[str, list]] = []

    async def stream(self, system, messages):
        self.calls.append((system, list(messages)))
        if self.gate is not None:
            await self.gate.wait()
        for event in self.events:
            yield event
            await asyncio.sleep(0)
        if self.error is not None:
            raise self.error


async def static_prompt() -> str:
    return "system"
