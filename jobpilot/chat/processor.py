"""Tool-result processing — persist side effects of completed tool calls once.

The processor is re-run over the whole merged timeline after every streamed
update. Each completed invocation is claimed by id before anything is
awaited, so however often a message list is re-observed, a given invocation
reaches the persistence gateway at most once. Failed writes are reported,
not retried: the user re-issues the action, which produces a new invocation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from jobpilot.chat.messages import OrderedMessage
from jobpilot.errors import JobPilotError, PersistenceError
from jobpilot.scoring.engine import validate_scored_jobs
from jobpilot.tools.results import (
    SAVE_JOBS_TOOL,
    SCORE_JOBS_TOOL,
    SavedJobsOutput,
    ScoredJobsOutput,
    parse_tool_output,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from jobpilot.chat.messages import Message, ToolInvocation
    from jobpilot.jobs.gateway import PersistenceGateway

logger = logging.getLogger(__name__)

# Tools whose completion has an orchestration-layer side effect
_SIDE_EFFECT_TOOLS = frozenset({SAVE_JOBS_TOOL, SCORE_JOBS_TOOL})


@dataclass
class ProcessingFailure:
    invocation_id: str
    tool_name: str
    error: str


@dataclass
class ProcessReport:
    """What one processing pass did."""

    processed: list[str] = field(default_factory=list)
    failures: list[ProcessingFailure] = field(default_factory=list)
    refresh_error: str | None = None

    @property
    def ok(self) -> bool:
        return not self.failures


class ToolResultProcessor:
    """Dispatches side effects for completed tool invocations exactly once."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        user_id: str,
        on_refresh: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self._gateway = gateway
        self._user_id = user_id
        self._on_refresh = on_refresh
        self._processed: set[str] = set()

    def is_processed(self, invocation_id: str) -> bool:
        return invocation_id in self._processed

    def claim(self, invocation_id: str) -> bool:
        """Mark an invocation processed. Returns False if it already was."""
        if invocation_id in self._processed:
            return False
        self._processed.add(invocation_id)
        return True

    def reset(self) -> None:
        """Forget processed ids (used when the conversation is cleared)."""
        self._processed.clear()

    async def process(self, messages: Iterable[OrderedMessage | Message]) -> ProcessReport:
        """Scan messages in order and handle newly completed invocations."""
        claimed: list[ToolInvocation] = []
        for item in messages:
            message = item.message if isinstance(item, OrderedMessage) else item
            if message.role != "assistant":
                continue
            for invocation in message.tool_invocations:
                if invocation.is_completed and self.claim(invocation.invocation_id):
                    claimed.append(invocation)

        report = ProcessReport()
        changed = False
        for invocation in claimed:
            report.processed.append(invocation.invocation_id)
            if invocation.tool_name not in _SIDE_EFFECT_TOOLS:
                continue
            try:
                await self._dispatch(invocation)
                changed = True
            except JobPilotError as exc:
                logger.error(
                    "Tool result %s (%s) not persisted: %s",
                    invocation.invocation_id,
                    invocation.tool_name,
                    exc,
                )
                report.failures.append(
                    ProcessingFailure(invocation.invocation_id, invocation.tool_name, str(exc))
                )
            except Exception as exc:
                logger.exception(
                    "Persisting tool result %s (%s) failed",
                    invocation.invocation_id,
                    invocation.tool_name,
                )
                report.failures.append(
                    ProcessingFailure(
                        invocation.invocation_id,
                        invocation.tool_name,
                        str(exc) or type(exc).__name__,
                    )
                )

        if changed and self._on_refresh is not None:
            try:
                await self._on_refresh()
            except Exception as exc:
                # The writes above are committed; a stale view must not undo that
                logger.exception("Refreshing state after tool results failed")
                report.refresh_error = str(exc) or type(exc).__name__
        return report

    # -- Dispatch ----------------------------------------------------------------

    async def _dispatch(self, invocation: ToolInvocation) -> None:
        output = parse_tool_output(invocation.output)
        if invocation.tool_name == SAVE_JOBS_TOOL and isinstance(output, SavedJobsOutput):
            await self._save_jobs(output)
        elif invocation.tool_name == SCORE_JOBS_TOOL and isinstance(output, ScoredJobsOutput):
            await self._apply_scores(output)
        else:
            action = output.action if output is not None else None
            msg = f"unexpected output for {invocation.tool_name} (action={action!r})"
            raise JobPilotError(msg)

    async def _save_jobs(self, output: SavedJobsOutput) -> None:
        jobs = [job if job.is_saved else job.mark_saved() for job in output.saved_jobs]
        if not await self._gateway.upsert_jobs(self._user_id, jobs):
            msg = f"failed to save {len(jobs)} job(s)"
            raise PersistenceError(msg)
        logger.info("Saved %d job(s) from tool result", len(jobs))

    async def _apply_scores(self, output: ScoredJobsOutput) -> None:
        profile = await self._gateway.get_profile(self._user_id)
        if profile is None:
            msg = "no profile to validate scores against"
            raise PersistenceError(msg)
        scores = validate_scored_jobs(output.scored_jobs, profile.scoring_weights)
        if not await self._gateway.apply_scores(self._user_id, scores):
            msg = f"failed to save scores for {len(scores)} job(s)"
            raise PersistenceError(msg)
        logger.info("Applied scores to %d job(s) from tool result", len(scores))
