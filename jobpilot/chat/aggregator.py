"""Merge both agents' message lists into one stable, chronological timeline."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from jobpilot.chat.messages import AgentName, OrderedMessage

if TYPE_CHECKING:
    from collections.abc import Sequence

    from jobpilot.chat.messages import Message

logger = logging.getLogger(__name__)


class SessionAggregator:
    """Assigns each message a display sequence the first time it is seen.

    Sequences are append-only: a message keeps its position even while its
    parts keep streaming in. Within one observation pass, unseen discovery
    messages are numbered before unseen matching messages.

    A message id already claimed by the other session (or repeated within a
    session) is logged, recorded in ``duplicates`` and left out of the
    timeline. The first occurrence wins.
    """

    def __init__(self) -> None:
        self._sequence_of: dict[str, int] = {}
        self._origin_of: dict[str, AgentName] = {}
        self._next = 0
        self.duplicates: set[tuple[str, AgentName]] = set()

    def __len__(self) -> int:
        return len(self._sequence_of)

    def sequence_of(self, message_id: str) -> int | None:
        return self._sequence_of.get(message_id)

    def observe(
        self,
        discovery: Sequence[Message],
        matching: Sequence[Message],
    ) -> list[OrderedMessage]:
        """Return every message ordered by its assigned sequence."""
        ordered: list[OrderedMessage] = []
        for agent, messages in (
            (AgentName.DISCOVERY, discovery),
            (AgentName.MATCHING, matching),
        ):
            seen_this_pass: set[str] = set()
            for message in messages:
                if message.id in seen_this_pass or self._claimed_elsewhere(message.id, agent):
                    self._flag(message.id, agent)
                    continue
                seen_this_pass.add(message.id)
                if message.id not in self._sequence_of:
                    self._sequence_of[message.id] = self._next
                    self._origin_of[message.id] = agent
                    self._next += 1
                ordered.append(OrderedMessage(self._sequence_of[message.id], message))

        ordered.sort(key=lambda item: item.sequence)
        return ordered

    def reset(self) -> None:
        """Forget every assigned sequence (used when the conversation is cleared)."""
        self._sequence_of.clear()
        self._origin_of.clear()
        self._next = 0
        self.duplicates.clear()

    def _claimed_elsewhere(self, message_id: str, agent: AgentName) -> bool:
        origin = self._origin_of.get(message_id)
        return origin is not None and origin is not agent

    def _flag(self, message_id: str, agent: AgentName) -> None:
        key = (message_id, agent)
        if key in self.duplicates:
            return
        self.duplicates.add(key)
        logger.warning(
            "Duplicate message id %s from %s session; keeping first occurrence",
            message_id,
            agent.value,
        )
