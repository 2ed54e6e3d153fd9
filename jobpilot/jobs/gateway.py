"""PersistenceGateway protocol — interface to the saved jobs and profile store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from jobpilot.jobs.models import ApplicationStatus, Job, JobScore, TailoredResume, UserProfile


@runtime_checkable
class PersistenceGateway(Protocol):
    """Protocol every jobs/profile store must satisfy.

    All operations are scoped to one user id; a store never returns or
    modifies another user's rows.
    """

    async def get_jobs(self, user_id: str) -> list[Job]:
        """Return the user's saved jobs."""
        ...

    async def upsert_jobs(self, user_id: str, jobs: list[Job]) -> bool:
        """Persist jobs as saved. Returns True on success."""
        ...

    async def apply_scores(self, user_id: str, scores: dict[str, JobScore]) -> bool:
        """Attach scores to saved jobs, keyed by job id. Returns True on success."""
        ...

    async def delete_job(self, user_id: str, job_id: str) -> bool:
        """Remove a saved job. Returns False if it was not saved."""
        ...

    async def update_job_status(
        self, user_id: str, job_id: str, status: ApplicationStatus
    ) -> bool:
        """Move a saved job through the application pipeline."""
        ...

    async def update_job_notes(self, user_id: str, job_id: str, notes: str) -> bool:
        """Replace the user's notes on a saved job."""
        ...

    async def save_job_resume(
        self, user_id: str, job_id: str, resume: TailoredResume
    ) -> bool:
        """Attach a tailored resume to a saved job."""
        ...

    async def get_profile(self, user_id: str) -> UserProfile | None:
        """Return the user's profile, or None if none was saved."""
        ...

    async def save_profile(self, user_id: str, profile: UserProfile) -> bool:
        """Persist the profile. Rejects weights that do not sum to 100."""
        ...
