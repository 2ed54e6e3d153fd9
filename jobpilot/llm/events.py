"""Stream events emitted by a model collaborator while it answers one turn."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from jobpilot.chat.messages import Message


@dataclass(frozen=True)
class TextDelta:
    text: str


@dataclass(frozen=True)
class ReasoningDelta:
    text: str


@dataclass(frozen=True)
class ToolCallStarted:
    invocation_id: str
    tool_name: str


@dataclass(frozen=True)
class ToolInputReady:
    invocation_id: str
    input: dict[str, Any]


@dataclass(frozen=True)
class ToolCallCompleted:
    invocation_id: str
    output: dict[str, Any]


@dataclass(frozen=True)
class ToolCallFailed:
    invocation_id: str
    error: str


StreamEvent = (
    TextDelta
    | ReasoningDelta
    | ToolCallStarted
    | ToolInputReady
    | ToolCallCompleted
    | ToolCallFailed
)


class Collaborator(Protocol):
    """The language model behind one agent.

    Consumes a system prompt and the conversation so far and yields events
    for a single assistant turn, including any tool calls it makes.
    """

    def stream(self, system: str, messages: list[Message]) -> AsyncIterator[StreamEvent]:
        ...
