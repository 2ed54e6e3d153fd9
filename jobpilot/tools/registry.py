"""Tool registry — the set of tools declared to one agent."""

from __future__ import annotations

import inspect
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from jobpilot.tools.base import ToolContext, ToolParams, ToolResult

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


@dataclass
class ToolDef:
    """A registered tool handler and its argument model."""

    name: str
    description: str
    category: str
    handler: Callable[..., Awaitable[ToolResult]]
    params_model: type[ToolParams] | None = None

    @property
    def wants_context(self) -> bool:
        return "tool_context" in inspect.signature(self.handler).parameters

    def schema(self) -> dict[str, Any]:
        """Claude tool definition with camelCase input properties."""
        if self.params_model is not None:
            input_schema = self.params_model.model_json_schema(by_alias=True)
        else:
            input_schema = {"type": "object", "properties": {}}
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": input_schema,
        }


class ToolRegistry:
    """Tools one agent may call, keyed by their wire name.

    Each agent gets its own registry so the matching agent can never see a
    discovery tool and vice versa. Register with the decorator::

        @discovery_registry.tool(
            name="displayJobs",
            description="Show jobs",
            category="discovery",
            params_model=DisplayJobsParams,
        )
        async def display_jobs(jobs: list[dict]) -> ToolResult:
            ...
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._tools: dict[str, ToolDef] = {}

    def tool(
        self,
        *,
        name: str,
        description: str,
        category: str,
        params_model: type[ToolParams] | None = None,
    ) -> Callable:
        """Decorator that registers an async handler under ``name``."""

        def decorator(fn: Callable[..., Awaitable[ToolResult]]) -> Callable:
            if not inspect.iscoroutinefunction(fn):
                msg = f"Tool handler '{name}' must be an async function"
                raise TypeError(msg)
            if name in self._tools:
                msg = f"Tool '{name}' is already registered with the {self.name} agent"
                raise ValueError(msg)

            self._tools[name] = ToolDef(name, description, category, fn, params_model)
            return fn

        return decorator

    def get(self, name: str) -> ToolDef | None:
        return self._tools.get(name)

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools)

    def get_schemas(self) -> list[dict[str, Any]]:
        """Tool definitions to send with every request for this agent."""
        return [tool_def.schema() for tool_def in self._tools.values()]

    async def execute(
        self,
        name: str,
        arguments: dict[str, Any],
        tool_context: ToolContext | None = None,
    ) -> ToolResult:
        """Run a tool with the model's arguments.

        Never raises. Bad arguments come back as an error the model can read
        and correct; handler crashes are logged and reported generically.
        ``tool_context`` is passed only to handlers that declare it.
        """
        tool_def = self._tools.get(name)
        if tool_def is None:
            return ToolResult(error=f"Unknown tool: {name}")

        logger.info("[%s] tool '%s' called", self.name, name)
        logger.debug("[%s] tool '%s' arguments: %s", self.name, name, arguments)

        try:
            kwargs = (
                tool_def.params_model.model_validate(arguments).model_dump()
                if tool_def.params_model is not None
                else dict(arguments)
            )
        except ValidationError as exc:
            logger.warning("[%s] tool '%s' got invalid arguments: %s", self.name, name, exc)
            return ToolResult(error=f"Invalid arguments for {name}: {exc}")

        if tool_context is not None and tool_def.wants_context:
            kwargs["tool_context"] = tool_context

        started = time.monotonic()
        try:
            result = await tool_def.handler(**kwargs)
        except Exception:
            logger.exception(
                "[%s] tool '%s' crashed after %.2fs", self.name, name, time.monotonic() - started
            )
            return ToolResult(error=f"Tool '{name}' failed. Check logs for details.")

        elapsed = time.monotonic() - started
        if result.success:
            logger.info("[%s] tool '%s' succeeded in %.2fs", self.name, name, elapsed)
        else:
            logger.warning(
                "[%s] tool '%s' returned error in %.2fs: %s", self.name, name, elapsed, result.error
            )
        return result


# Tool modules register into these on import.
discovery_registry = ToolRegistry("discovery")
matching_registry = ToolRegistry("matching")
