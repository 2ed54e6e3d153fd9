"""Chat controller — wires routing, both sessions, merging and tool processing.

Every streamed update from either session re-runs the aggregator over both
message lists and the tool-result processor over the merged timeline.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import TYPE_CHECKING

from jobpilot.chat.aggregator import SessionAggregator
from jobpilot.chat.messages import AgentName
from jobpilot.chat.processor import ToolResultProcessor
from jobpilot.chat.router import AgentRouter, AgentRoutingState
from jobpilot.chat.session import ConversationSession
from jobpilot.errors import PersistenceError
from jobpilot.jobs.models import TailoredResume
from jobpilot.llm.prompt import build_discovery_prompt, build_matching_prompt
from jobpilot.scoring.engine import ensure_valid_weights

if TYPE_CHECKING:
    from jobpilot.chat.intent import IntentClassifier
    from jobpilot.chat.messages import OrderedMessage
    from jobpilot.chat.processor import ProcessingFailure
    from jobpilot.chat.router import RouteDecision
    from jobpilot.jobs.gateway import PersistenceGateway
    from jobpilot.jobs.models import ApplicationStatus, Job, UserProfile
    from jobpilot.llm.events import Collaborator

logger = logging.getLogger(__name__)


class ChatController:
    """One user's conversation with the discovery and matching agents."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        user_id: str,
        discovery: Collaborator,
        matching: Collaborator,
        classifier: IntentClassifier | None = None,
    ) -> None:
        self.gateway = gateway
        self.user_id = user_id
        self.saved_jobs: list[Job] = []
        self.profile: UserProfile | None = None
        self.failures: list[ProcessingFailure] = []
        self._processing: set[asyncio.Task[None]] = set()

        async def discovery_prompt() -> str:
            return build_discovery_prompt()

        async def matching_prompt() -> str:
            return await build_matching_prompt(gateway, user_id)

        self.aggregator = SessionAggregator()
        self.processor = ToolResultProcessor(gateway, user_id, on_refresh=self.refresh_saved_jobs)
        state = AgentRoutingState(
            discovery=ConversationSession(
                AgentName.DISCOVERY, discovery, discovery_prompt, on_update=self._on_update
            ),
            matching=ConversationSession(
                AgentName.MATCHING, matching, matching_prompt, on_update=self._on_update
            ),
        )
        self.router = AgentRouter(
            state,
            settle_hooks=[self.wait_for_processing],
            reset_hooks=[self.aggregator.reset, self.processor.reset],
        )
        if classifier is not None:
            self.router.classifier = classifier

    # -- State -----------------------------------------------------------------

    @property
    def state(self) -> AgentRoutingState:
        return self.router.state

    @property
    def active_session(self) -> ConversationSession:
        return self.state.active_session

    @property
    def is_streaming(self) -> bool:
        """True while the active agent is replying; input should be disabled."""
        return self.active_session.is_streaming

    async def load(self) -> None:
        """Load saved jobs and profile from the gateway."""
        await self.refresh_saved_jobs()
        await self.refresh_profile()

    async def refresh_saved_jobs(self) -> None:
        self.saved_jobs = await self.gateway.get_jobs(self.user_id)

    async def refresh_profile(self) -> None:
        self.profile = await self.gateway.get_profile(self.user_id)

    # -- Timeline --------------------------------------------------------------

    def timeline(self) -> list[OrderedMessage]:
        """Both agents' messages in stable display order."""
        return self.aggregator.observe(
            self.state.discovery.messages, self.state.matching.messages
        )

    async def _on_update(self, session: ConversationSession) -> None:
        # Processing runs in its own task: stopping the stream must not cancel
        # a write for an invocation that is already claimed.
        task = asyncio.create_task(self._process(self.timeline()))
        self._processing.add(task)
        task.add_done_callback(self._processing.discard)
        await asyncio.shield(task)

    async def _process(self, timeline: list[OrderedMessage]) -> None:
        report = await self.processor.process(timeline)
        self.failures.extend(report.failures)

    async def wait_for_processing(self) -> None:
        """Wait until every in-flight tool result has been persisted or reported."""
        while self._processing:
            await asyncio.wait(set(self._processing))

    # -- Actions ---------------------------------------------------------------

    async def send_message(self, text: str) -> RouteDecision:
        """Route a user message and wait for the chosen agent's reply.

        Raises:
            SessionBusyError: The chosen agent is still replying.
        """
        decision = await self.router.dispatch(
            text,
            has_saved_jobs=bool(self.saved_jobs),
            has_profile=self.profile is not None,
        )
        session = self.state.session_for(decision.target)
        await session.wait()
        await self.wait_for_processing()
        try:
            await self.refresh_saved_jobs()
        except Exception:
            logger.exception("Reloading saved jobs after the reply failed")
        return decision

    async def save_profile(self, profile: UserProfile) -> None:
        """Persist the profile after checking its scoring weights.

        Raises:
            InvalidWeightsError: The weights do not sum to exactly 100.
            PersistenceError: The gateway did not accept the write.
        """
        ensure_valid_weights(profile.scoring_weights)
        if not await self.gateway.save_profile(self.user_id, profile):
            msg = "failed to save profile"
            raise PersistenceError(msg)
        await self.refresh_profile()
        logger.info("Profile updated for %s", self.user_id)

    async def clear_chat(self) -> None:
        """Stop both agents and start a fresh conversation. Saved data is kept."""
        await self.router.clear()

    # -- Saved jobs ------------------------------------------------------------

    async def delete_job(self, job_id: str) -> None:
        """Remove a saved job at the user's request.

        Raises:
            PersistenceError: The job is not saved.
        """
        self._require(await self.gateway.delete_job(self.user_id, job_id), job_id)
        logger.info("Deleted job %s for %s", job_id, self.user_id)
        await self.refresh_saved_jobs()

    async def set_job_status(self, job_id: str, status: ApplicationStatus) -> None:
        self._require(
            await self.gateway.update_job_status(self.user_id, job_id, status), job_id
        )
        await self.refresh_saved_jobs()

    async def set_job_notes(self, job_id: str, notes: str) -> None:
        self._require(await self.gateway.update_job_notes(self.user_id, job_id, notes), job_id)
        await self.refresh_saved_jobs()

    async def attach_resume(self, job_id: str, content: str) -> TailoredResume:
        """Store a resume tailored for one saved job."""
        resume = TailoredResume(resume_id=uuid.uuid4().hex, content=content)
        self._require(
            await self.gateway.save_job_resume(self.user_id, job_id, resume), job_id
        )
        await self.refresh_saved_jobs()
        return resume

    @staticmethod
    def _require(ok: bool, job_id: str) -> None:
        if not ok:
            msg = f"job {job_id} is not saved or could not be updated"
            raise PersistenceError(msg)
