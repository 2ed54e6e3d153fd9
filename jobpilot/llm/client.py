"""Async Claude collaborator with streaming and a tool-calling loop."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import anthropic

from jobpilot.config import settings
from jobpilot.llm.events import (
    ReasoningDelta,
    TextDelta,
    ToolCallCompleted,
    ToolCallFailed,
    ToolCallStarted,
    ToolInputReady,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from jobpilot.chat.messages import Message
    from jobpilot.llm.events import StreamEvent
    from jobpilot.tools.base import ToolContext
    from jobpilot.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

_client: anthropic.AsyncAnthropic | None = None


def _get_client() -> anthropic.AsyncAnthropic:
    """Lazily initialize the Anthropic client."""
    global _client  # noqa: PLW0603
    if _client is None:
        _client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
    return _client


def to_api_messages(messages: list[Message]) -> list[dict[str, Any]]:
    """Format session history for the Claude API.

    Only text is carried across turns; tool calls from earlier turns were
    already resolved inside those turns.
    """
    api_messages: list[dict[str, Any]] = []
    for message in messages:
        text = message.text
        if not text:
            continue
        api_messages.append({"role": message.role, "content": text})
    return api_messages


def _serialize_content(content: list[Any]) -> list[dict[str, Any]]:
    """Convert SDK content blocks to plain dicts for message history."""
    result: list[dict[str, Any]] = []
    for block in content:
        if block.type == "text":
            result.append({"type": "text", "text": block.text})
        elif block.type == "thinking":
            result.append({
                "type": "thinking",
                "thinking": block.thinking,
                "signature": block.signature,
            })
        elif block.type == "tool_use":
            result.append({
                "type": "tool_use",
                "id": block.id,
                "name": block.name,
                "input": block.input,
            })
    return result


class AnthropicCollaborator:
    """Streams one assistant turn from Claude, running tools as it asks.

    Tools come from the agent's own registry and are executed between
    rounds; each call is surfaced as started, input-ready, then completed
    or failed.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        *,
        max_rounds: int,
        tool_context: ToolContext | None = None,
        model: str | None = None,
    ) -> None:
        self._registry = registry
        self._max_rounds = max_rounds
        self._tool_context = tool_context
        self._model = model or settings.claude_model

    async def stream(self, system: str, messages: list[Message]) -> AsyncIterator[StreamEvent]:
        client = _get_client()
        tool_schemas = self._registry.get_schemas()
        loop_messages = to_api_messages(messages)

        for round_num in range(self._max_rounds):
            kwargs: dict[str, Any] = {
                "model": self._model,
                "max_tokens": settings.max_tokens,
                "system": system,
                "messages": loop_messages,
            }
            if tool_schemas:
                kwargs["tools"] = tool_schemas
            if settings.thinking_budget_tokens > 0:
                kwargs["thinking"] = {
                    "type": "enabled",
                    "budget_tokens": settings.thinking_budget_tokens,
                }

            started: set[str] = set()
            async with client.messages.stream(**kwargs) as stream:
                async for event in stream:
                    if event.type == "text":
                        yield TextDelta(event.text)
                    elif event.type == "thinking":
                        yield ReasoningDelta(event.thinking)
                    elif event.type == "content_block_start" and event.content_block.type == "tool_use":
                        started.add(event.content_block.id)
                        yield ToolCallStarted(event.content_block.id, event.content_block.name)

                response = await stream.get_final_message()

            tool_use_blocks = [b for b in response.content if b.type == "tool_use"]
            if not tool_use_blocks:
                return

            logger.info(
                "Round %d: %d tool call(s): %s",
                round_num + 1,
                len(tool_use_blocks),
                ", ".join(b.name for b in tool_use_blocks),
            )

            loop_messages.append({
                "role": "assistant",
                "content": _serialize_content(response.content),
            })

            tool_results: list[dict[str, Any]] = []
            for block in tool_use_blocks:
                if block.id not in started:
                    yield ToolCallStarted(block.id, block.name)
                yield ToolInputReady(block.id, dict(block.input or {}))

                result = await self._registry.execute(
                    block.name, block.input or {}, tool_context=self._tool_context
                )
                if result.success:
                    yield ToolCallCompleted(block.id, result.data or {})
                else:
                    yield ToolCallFailed(block.id, result.error or "Tool failed")

                tool_results.append({
                    "type": "tool_result",
                    "tool_use_id": block.id,
                    "content": result.to_content(),
                    "is_error": not result.success,
                })

            loop_messages.append({"role": "user", "content": tool_results})

        logger.warning("Hit max tool rounds (%d)", self._max_rounds)
