"""Conversation message types shared by sessions, the aggregator and the processor."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal


class AgentName(str, Enum):
    DISCOVERY = "discovery"
    MATCHING = "matching"


class ToolState(str, Enum):
    PENDING = "pending"
    INPUT_READY = "input-ready"
    COMPLETED = "completed"
    ERRORED = "errored"


@dataclass
class TextPart:
    text: str = ""
    type: Literal["text"] = "text"


@dataclass
class ReasoningPart:
    text: str = ""
    type: Literal["reasoning"] = "reasoning"


@dataclass
class ToolInvocation:
    """One call of a declared tool.

    ``invocation_id`` is stable for the lifetime of the call and is the
    deduplication key for side effects. Once ``state`` is COMPLETED the
    output is final.
    """

    tool_name: str
    invocation_id: str
    state: ToolState = ToolState.PENDING
    input: dict[str, Any] | None = None
    output: dict[str, Any] | None = None
    error: str | None = None
    type: Literal["tool-invocation"] = "tool-invocation"

    @property
    def is_completed(self) -> bool:
        return self.state is ToolState.COMPLETED


Part = TextPart | ReasoningPart | ToolInvocation


@dataclass
class Message:
    """A single conversation turn produced by one agent session."""

    role: str  # "user" or "assistant"
    origin: AgentName
    parts: list[Part] = field(default_factory=list)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def text(self) -> str:
        """Concatenated text parts."""
        return "".join(p.text for p in self.parts if isinstance(p, TextPart))

    @property
    def tool_invocations(self) -> list[ToolInvocation]:
        return [p for p in self.parts if isinstance(p, ToolInvocation)]

    def find_invocation(self, invocation_id: str) -> ToolInvocation | None:
        for part in self.parts:
            if isinstance(part, ToolInvocation) and part.invocation_id == invocation_id:
                return part
        return None


@dataclass(frozen=True)
class OrderedMessage:
    """A message with the display sequence it was assigned on first sight."""

    sequence: int
    message: Message

    @property
    def id(self) -> str:
        return self.message.id
