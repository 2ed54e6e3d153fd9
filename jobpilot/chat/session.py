"""Conversation session — one agent's ongoing exchange with its model."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING

from jobpilot.chat.messages import (
    AgentName,
    Message,
    ReasoningPart,
    TextPart,
    ToolInvocation,
    ToolState,
)
from jobpilot.errors import SessionBusyError
from jobpilot.llm.events import (
    ReasoningDelta,
    TextDelta,
    ToolCallCompleted,
    ToolCallFailed,
    ToolCallStarted,
    ToolInputReady,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from jobpilot.llm.events import Collaborator, StreamEvent

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    ERROR = "error"


def apply_event(message: Message, event: StreamEvent) -> None:
    """Grow an assistant message in place with one stream event."""
    if isinstance(event, TextDelta):
        last = message.parts[-1] if message.parts else None
        if isinstance(last, TextPart):
            last.text += event.text
        else:
            message.parts.append(TextPart(text=event.text))
        return

    if isinstance(event, ReasoningDelta):
        last = message.parts[-1] if message.parts else None
        if isinstance(last, ReasoningPart):
            last.text += event.text
        else:
            message.parts.append(ReasoningPart(text=event.text))
        return

    if isinstance(event, ToolCallStarted):
        if message.find_invocation(event.invocation_id) is None:
            message.parts.append(
                ToolInvocation(tool_name=event.tool_name, invocation_id=event.invocation_id)
            )
        return

    invocation = message.find_invocation(event.invocation_id)
    if invocation is None:
        logger.warning("Event for unknown tool invocation %s", event.invocation_id)
        return
    if invocation.state in (ToolState.COMPLETED, ToolState.ERRORED):
        logger.warning(
            "Ignoring %s for settled invocation %s",
            type(event).__name__,
            event.invocation_id,
        )
        return

    if isinstance(event, ToolInputReady):
        invocation.input = dict(event.input)
        invocation.state = ToolState.INPUT_READY
    elif isinstance(event, ToolCallCompleted):
        invocation.output = event.output
        invocation.state = ToolState.COMPLETED
    elif isinstance(event, ToolCallFailed):
        invocation.error = event.error
        invocation.state = ToolState.ERRORED


class ConversationSession:
    """Message history and streaming status for one agent.

    ``send`` suspends until the model's turn finishes or is stopped. It does
    not refuse a send while streaming; the router enforces that.
    """

    def __init__(
        self,
        agent: AgentName,
        collaborator: Collaborator,
        system_prompt: Callable[[], Awaitable[str]],
        on_update: Callable[[ConversationSession], Awaitable[None]] | None = None,
    ) -> None:
        self.agent = agent
        self.messages: list[Message] = []
        self.status = SessionStatus.IDLE
        self.error: str | None = None
        self._collaborator = collaborator
        self._system_prompt = system_prompt
        self._on_update = on_update
        self._task: asyncio.Task[None] | None = None

    @property
    def is_streaming(self) -> bool:
        return self.status is SessionStatus.STREAMING

    def start(self, text: str) -> asyncio.Task[None]:
        """Append the user's message and begin streaming the reply."""
        self.messages.append(
            Message(role="user", origin=self.agent, parts=[TextPart(text=text)])
        )
        self.status = SessionStatus.STREAMING
        self.error = None
        self._task = asyncio.create_task(self._run(), name=f"{self.agent.value}-stream")
        return self._task

    async def wait(self) -> None:
        """Wait for the current stream to finish. Returns early-stopped streams quietly."""
        task = self._task
        if task is None:
            return
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                return
            raise

    async def send(self, text: str) -> None:
        """Send a user message and wait for the full reply."""
        self.start(text)
        await self.wait()

    async def stop(self) -> None:
        """Cancel the in-flight stream and wait until the session is idle.

        Safe to call when nothing is streaming.
        """
        task = self._task
        if task is None or task.done():
            return
        logger.info("Stopping %s stream", self.agent.value)
        task.cancel()
        await asyncio.wait({task})
        # A task cancelled before its first step never reaches _run's handler
        if self.status is SessionStatus.STREAMING:
            self.status = SessionStatus.IDLE

    def clear(self) -> int:
        """Clear all messages. Returns the count of cleared messages."""
        if self.is_streaming:
            raise SessionBusyError(self.agent.value)
        count = len(self.messages)
        self.messages.clear()
        self.error = None
        if self.status is SessionStatus.ERROR:
            self.status = SessionStatus.IDLE
        return count

    # -- Internal --------------------------------------------------------------

    async def _notify(self) -> None:
        if self._on_update is not None:
            await self._on_update(self)

    async def _run(self) -> None:
        reply = Message(role="assistant", origin=self.agent)
        self.messages.append(reply)
        history = self.messages[:-1]
        try:
            system = await self._system_prompt()
            async for event in self._collaborator.stream(system, history):
                apply_event(reply, event)
                await self._notify()
        except asyncio.CancelledError:
            self._drop_if_empty(reply)
            self.status = SessionStatus.IDLE
            logger.info("%s stream stopped", self.agent.value)
            raise
        except Exception as exc:
            self._drop_if_empty(reply)
            self.status = SessionStatus.ERROR
            self.error = str(exc) or type(exc).__name__
            logger.exception("%s stream failed", self.agent.value)
            return

        self.status = SessionStatus.IDLE
        await self._notify()

    def _drop_if_empty(self, reply: Message) -> None:
        if reply.parts:
            return
        for index, message in enumerate(self.messages):
            if message is reply:
                del self.messages[index]
                break
