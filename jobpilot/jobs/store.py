"""JobStore — aiosqlite persistence for saved jobs and the user profile."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

import aiosqlite

from jobpilot.config import settings
from jobpilot.jobs.models import ApplicationStatus, Job, TailoredResume, UserProfile, utc_now
from jobpilot.scoring.engine import ensure_valid_weights

if TYPE_CHECKING:
    from pathlib import Path

    from jobpilot.jobs.models import JobScore

logger = logging.getLogger(__name__)

_CREATE_JOBS = """
CREATE TABLE IF NOT EXISTS jobs (
    user_id TEXT NOT NULL,
    id TEXT NOT NULL,
    data TEXT NOT NULL,
    saved_at TEXT NOT NULL,
    PRIMARY KEY (user_id, id)
)
"""

_CREATE_PROFILES = """
CREATE TABLE IF NOT EXISTS profiles (
    user_id TEXT PRIMARY KEY,
    data TEXT NOT NULL
)
"""

# Fields a re-save refreshes; scores, notes and resumes are kept.
_POSTING_FIELDS = (
    "title",
    "company",
    "location",
    "salary",
    "description",
    "requirements",
    "url",
    "source",
)


def _dump(job: Job) -> str:
    return json.dumps(job.to_json_dict())


def _load(data: str) -> Job:
    return Job.model_validate(json.loads(data))


class JobStore:
    """Persists saved jobs and profiles in SQLite.

    Implements the PersistenceGateway protocol. Singleton accessed via
    ``JobStore.get()``. Pass an explicit *db_path* for test isolation
    (e.g. ``tmp_path / "test.db"``).
    """

    _instance: JobStore | None = None

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or settings.database_path
        self._initialised = False

    @classmethod
    def get(cls) -> JobStore:
        """Return the shared JobStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    # -- Internal helpers ------------------------------------------------------

    async def _connect(self) -> aiosqlite.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(self._db_path))
        if not self._initialised:
            await db.execute(_CREATE_JOBS)
            await db.execute(_CREATE_PROFILES)
            await db.commit()
            self._initialised = True
        return db

    async def _update_job(self, user_id: str, job: Job) -> bool:
        db = await self._connect()
        try:
            cursor = await db.execute(
                "UPDATE jobs SET data = ? WHERE user_id = ? AND id = ?",
                (_dump(job), user_id, job.id),
            )
            await db.commit()
            return cursor.rowcount > 0
        finally:
            await db.close()

    # -- Jobs ------------------------------------------------------------------

    async def get_jobs(self, user_id: str) -> list[Job]:
        """Return all saved jobs for a user, oldest first."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT data FROM jobs WHERE user_id = ? ORDER BY saved_at, rowid",
                (user_id,),
            )
            rows = await cursor.fetchall()
            return [_load(row[0]) for row in rows]
        finally:
            await db.close()

    async def get_job(self, user_id: str, job_id: str) -> Job | None:
        """Fetch one saved job, or None if not found."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT data FROM jobs WHERE user_id = ? AND id = ?", (user_id, job_id)
            )
            row = await cursor.fetchone()
            return _load(row[0]) if row else None
        finally:
            await db.close()

    async def upsert_jobs(self, user_id: str, jobs: list[Job]) -> bool:
        """Save jobs with ``application_status="saved"``.

        A job that is already saved keeps its status, score, notes and
        resume; only its posting fields are refreshed.
        """
        now = utc_now()
        db = await self._connect()
        try:
            inserted = 0
            for job in jobs:
                cursor = await db.execute(
                    "SELECT data FROM jobs WHERE user_id = ? AND id = ?", (user_id, job.id)
                )
                row = await cursor.fetchone()
                if row:
                    existing = _load(row[0])
                    merged = existing.model_copy(
                        update={name: getattr(job, name) for name in _POSTING_FIELDS}
                    )
                    await db.execute(
                        "UPDATE jobs SET data = ? WHERE user_id = ? AND id = ?",
                        (_dump(merged), user_id, job.id),
                    )
                    continue
                saved = job if job.is_saved else job.mark_saved(now)
                await db.execute(
                    "INSERT INTO jobs (user_id, id, data, saved_at) VALUES (?, ?, ?, ?)",
                    (user_id, job.id, _dump(saved), now),
                )
                inserted += 1
            await db.commit()
            logger.info(
                "Saved %d job(s) for %s (%d new)", len(jobs), user_id, inserted
            )
            return True
        finally:
            await db.close()

    async def apply_scores(self, user_id: str, scores: dict[str, JobScore]) -> bool:
        """Merge scores into saved jobs. Unknown job ids are logged and skipped."""
        db = await self._connect()
        try:
            applied = 0
            for job_id, job_score in scores.items():
                cursor = await db.execute(
                    "SELECT data FROM jobs WHERE user_id = ? AND id = ?", (user_id, job_id)
                )
                row = await cursor.fetchone()
                if row is None:
                    logger.warning("Cannot apply score: job %s is not saved", job_id)
                    continue
                scored = _load(row[0]).with_score(job_score)
                await db.execute(
                    "UPDATE jobs SET data = ? WHERE user_id = ? AND id = ?",
                    (_dump(scored), user_id, job_id),
                )
                applied += 1
            await db.commit()
            logger.info("Applied %d of %d score(s) for %s", applied, len(scores), user_id)
            return True
        finally:
            await db.close()

    async def delete_job(self, user_id: str, job_id: str) -> bool:
        """Delete a saved job. Returns True if a row was removed."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                "DELETE FROM jobs WHERE user_id = ? AND id = ?", (user_id, job_id)
            )
            await db.commit()
            deleted = cursor.rowcount > 0
            if deleted:
                logger.info("Deleted job %s", job_id)
            else:
                logger.warning("Cannot delete: job %s not found", job_id)
            return deleted
        finally:
            await db.close()

    async def update_job_status(
        self, user_id: str, job_id: str, status: ApplicationStatus
    ) -> bool:
        """Set the application status. Returns False if the job is not saved."""
        job = await self.get_job(user_id, job_id)
        if job is None:
            logger.warning("Cannot update status: job %s not found", job_id)
            return False
        updated = job.model_copy(
            update={"application_status": status, "status_updated_at": utc_now()}
        )
        return await self._update_job(user_id, updated)

    async def update_job_notes(self, user_id: str, job_id: str, notes: str) -> bool:
        """Replace the user's notes on a job."""
        job = await self.get_job(user_id, job_id)
        if job is None:
            logger.warning("Cannot update notes: job %s not found", job_id)
            return False
        return await self._update_job(user_id, job.model_copy(update={"notes": notes}))

    async def save_job_resume(
        self, user_id: str, job_id: str, resume: TailoredResume
    ) -> bool:
        """Attach a tailored resume to a saved job."""
        job = await self.get_job(user_id, job_id)
        if job is None:
            logger.warning("Cannot save resume: job %s not found", job_id)
            return False
        return await self._update_job(
            user_id, job.model_copy(update={"tailored_resume": resume})
        )

    # -- Profile ---------------------------------------------------------------

    async def get_profile(self, user_id: str) -> UserProfile | None:
        """Fetch the user's profile, or None if none was saved."""
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT data FROM profiles WHERE user_id = ?", (user_id,)
            )
            row = await cursor.fetchone()
            return UserProfile.model_validate(json.loads(row[0])) if row else None
        finally:
            await db.close()

    async def save_profile(self, user_id: str, profile: UserProfile) -> bool:
        """Insert or replace the user's profile.

        Raises:
            InvalidWeightsError: The scoring weights do not sum to 100.
        """
        ensure_valid_weights(profile.scoring_weights)
        stamped = profile.model_copy(update={"updated_at": utc_now()})
        db = await self._connect()
        try:
            await db.execute(
                """
                INSERT INTO profiles (user_id, data) VALUES (?, ?)
                ON CONFLICT(user_id) DO UPDATE SET data = excluded.data
                """,
                (user_id, json.dumps(stamped.to_json_dict())),
            )
            await db.commit()
            logger.info("Saved profile for %s", user_id)
            return True
        finally:
            await db.close()
