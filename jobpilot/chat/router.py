"""Agent routing — decides which agent session receives each user message."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from jobpilot.chat.intent import KeywordIntentClassifier
from jobpilot.chat.messages import AgentName
from jobpilot.errors import SessionBusyError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from jobpilot.chat.intent import Intent, IntentClassifier
    from jobpilot.chat.session import ConversationSession

logger = logging.getLogger(__name__)

PROFILE_REQUIRED_TEMPLATE = (
    "The user asked: \"{text}\"\n\n"
    "This is a request to score or compare jobs, but the user has not "
    "completed their profile yet. Do not score anything. Explain that job "
    "scoring needs a profile (background, skills, salary range, preferred "
    "locations and scoring weights) and ask them to complete it first."
)

NO_SAVED_JOBS_TEMPLATE = (
    "The user asked: \"{text}\"\n\n"
    "This is a request to score or compare jobs, but the user has no saved "
    "jobs yet. Do not score anything. Explain that only saved jobs can be "
    "scored and offer to search for jobs they can save first."
)


@dataclass(frozen=True)
class RouteDecision:
    """Where a user message goes and what text is actually sent.

    Attributes:
        target: The agent whose session receives the message.
        dispatch_text: The user's text, or a synthesized redirect.
        clear_history: Clear the target session before sending.
        reason: ``"scoring"``, ``"profile_required"``, ``"no_saved_jobs"``
            or ``"default"``.
    """

    target: AgentName
    dispatch_text: str
    clear_history: bool = False
    reason: str = "default"


def route(
    text: str,
    intent: Intent,
    has_saved_jobs: bool,
    has_profile: bool,
) -> RouteDecision:
    """Apply the routing table. The first matching rule wins."""
    if intent.wants_scoring and has_saved_jobs and has_profile:
        return RouteDecision(AgentName.MATCHING, text, clear_history=True, reason="scoring")
    if intent.wants_scoring and not has_profile:
        return RouteDecision(
            AgentName.DISCOVERY,
            PROFILE_REQUIRED_TEMPLATE.format(text=text),
            reason="profile_required",
        )
    if intent.wants_scoring and not has_saved_jobs:
        return RouteDecision(
            AgentName.DISCOVERY,
            NO_SAVED_JOBS_TEMPLATE.format(text=text),
            reason="no_saved_jobs",
        )
    return RouteDecision(AgentName.DISCOVERY, text)


@dataclass
class AgentRoutingState:
    """The two agent sessions and which one the user is talking to."""

    discovery: ConversationSession
    matching: ConversationSession
    active_agent: AgentName = AgentName.DISCOVERY

    def session_for(self, agent: AgentName) -> ConversationSession:
        return self.discovery if agent is AgentName.DISCOVERY else self.matching

    @property
    def active_session(self) -> ConversationSession:
        return self.session_for(self.active_agent)


@dataclass
class AgentRouter:
    """Owns all mutation of an AgentRoutingState.

    ``dispatch`` and ``clear`` are serialized so a clear never interleaves
    with a routing decision.
    """

    state: AgentRoutingState
    classifier: IntentClassifier = field(default_factory=KeywordIntentClassifier)
    settle_hooks: list[Callable[[], Awaitable[None]]] = field(default_factory=list)
    reset_hooks: list[Callable[[], None]] = field(default_factory=list)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    async def dispatch(
        self,
        text: str,
        *,
        has_saved_jobs: bool,
        has_profile: bool,
    ) -> RouteDecision:
        """Route a message and start streaming in the chosen session.

        Returns once the send has started; await the session's ``wait()``
        for the reply to finish.

        Raises:
            SessionBusyError: The chosen session is still streaming.
        """
        async with self._lock:
            intent = self.classifier.classify(text)
            decision = route(text, intent, has_saved_jobs, has_profile)
            session = self.state.session_for(decision.target)
            if session.is_streaming:
                raise SessionBusyError(decision.target.value)

            logger.info(
                "Routing to %s (%s): scoring=%s saved_jobs=%s profile=%s",
                decision.target.value,
                decision.reason,
                intent.wants_scoring,
                has_saved_jobs,
                has_profile,
            )
            self.state.active_agent = decision.target
            if decision.clear_history:
                session.clear()
            session.start(decision.dispatch_text)
        return decision

    async def clear(self) -> None:
        """Stop both sessions, then reset the conversation to a fresh start.

        Work the sessions already handed off (``settle_hooks``) is awaited
        before the reset. Saved jobs and the profile are untouched.
        """
        async with self._lock:
            await self.state.discovery.stop()
            await self.state.matching.stop()
            for settle in self.settle_hooks:
                await settle()
            cleared = self.state.discovery.clear() + self.state.matching.clear()
            for hook in self.reset_hooks:
                hook()
            self.state.active_agent = AgentName.DISCOVERY
        logger.info("Conversation cleared (%d messages)", cleared)
