"""Exception types raised by the orchestration layer."""


class JobPilotError(Exception):
    """Base class for all JobPilot errors."""


class SessionBusyError(JobPilotError):
    """A message was dispatched into a session that is still streaming."""

    def __init__(self, agent: str) -> None:
        super().__init__(f"The {agent} agent is still responding")
        self.agent = agent


class MalformedScoreError(JobPilotError):
    """A score returned by the matching agent violates the weight contract."""

    def __init__(self, job_id: str, reason: str) -> None:
        super().__init__(f"Malformed score for job {job_id}: {reason}")
        self.job_id = job_id
        self.reason = reason


class InvalidWeightsError(JobPilotError):
    """Profile scoring weights do not sum to exactly 100."""

    def __init__(self, total: int) -> None:
        super().__init__(f"Scoring weights must sum to 100 (got {total})")
        self.total = total


class PersistenceError(JobPilotError):
    """A persistence gateway write did not succeed."""
