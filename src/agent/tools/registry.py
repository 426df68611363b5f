"""
agent.tools.registry - Tool registration, discovery, and invocation.

The registry is the single source of truth for the tool catalog: the model
sees exactly what is registered, and every dispatch goes through execute(),
which never raises. Any failure (unknown tool, bad arguments, exception,
timeout) comes back as a string starting with "Error:".
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from pydantic import ValidationError

from application.context import SessionContext
from agent.tools.base import BaseTool
from domain.exceptions import ToolArgumentError, ToolError, ToolTimeoutError, UnknownToolError
from domain.models import FAILURE_PREFIX

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n...[TRUNCATED]"


def _validation_summary(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)


class ToolRegistry:
    """Manages tool registration and invocation."""

    def __init__(self, timeout_seconds: float = 120, output_limit: int = 100_000):
        self._tools: dict[str, BaseTool] = {}
        self._timeout = timeout_seconds
        self._output_limit = output_limit

    def register(self, tool: BaseTool) -> None:
        """Register a tool by its name."""
        self._tools[tool.name] = tool
        logger.debug("Registered tool: %s", tool.name)

    def get(self, name: str) -> BaseTool:
        """Get a tool by name."""
        if name not in self._tools:
            raise UnknownToolError(f"Unknown tool: {name}")
        return self._tools[name]

    def all(self) -> list[BaseTool]:
        """Return all registered tools."""
        return list(self._tools.values())

    def names(self) -> list[str]:
        """Return all registered tool names."""
        return list(self._tools.keys())

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def describe(self) -> list[dict[str, Any]]:
        return [tool.describe() for tool in self._tools.values()]

    def to_openai_tools(self) -> list[dict[str, Any]]:
        """The live catalog in the function-calling format bound to chat models."""
        return [{"type": "function", "function": entry} for entry in self.describe()]

    async def execute(
        self,
        name: str,
        args: Optional[dict[str, Any]],
        ctx: SessionContext,
    ) -> str:
        """Validate, run and post-process one tool call.

        args is None when the model's raw argument payload was not valid JSON.
        """
        try:
            output = await self._dispatch(name, args, ctx)
        except ToolError as exc:
            return f"{FAILURE_PREFIX} {exc}"
        except Exception as exc:
            logger.exception("Tool '%s' raised", name)
            return f"{FAILURE_PREFIX} {name} failed: {exc}"

        if len(output) > self._output_limit:
            logger.info("Truncating %s output (%d chars)", name, len(output))
            output = output[:self._output_limit] + TRUNCATION_MARKER
        return output

    async def _dispatch(
        self,
        name: str,
        args: Optional[dict[str, Any]],
        ctx: SessionContext,
    ) -> str:
        tool = self.get(name)

        if args is None:
            raise ToolArgumentError(
                f"Invalid arguments for {name}: payload is not a JSON object"
            )
        try:
            validated = tool.get_schema().model_validate(args)
        except ValidationError as exc:
            raise ToolArgumentError(
                f"Invalid arguments for {name}: {_validation_summary(exc)}"
            ) from exc

        logger.info("Executing tool %s", name)
        try:
            result = await asyncio.wait_for(
                tool.execute(ctx, **validated.model_dump()),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            raise ToolTimeoutError(f"{name} timed out after {self._timeout:g}s") from exc

        return result.output
