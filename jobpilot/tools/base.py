"""Shared types for agent tools."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

if TYPE_CHECKING:
    from jobpilot.jobs.gateway import PersistenceGateway


@dataclass
class ToolResult:
    """What a tool handler hands back.

    ``data`` becomes the invocation's output once the call completes;
    ``error`` turns the invocation into an errored one and is shown to the
    model so it can recover.
    """

    data: dict[str, Any] | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    def to_content(self) -> str:
        """JSON body for the tool_result block sent back to Claude."""
        return json.dumps({"error": self.error} if self.error else self.data or {})


@dataclass
class ToolContext:
    """The user a tool acts for and the store it may read from."""

    user_id: str
    gateway: PersistenceGateway


class ToolParams(BaseModel):
    """Argument model for a tool; the model sees camelCase property names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
