"""
agent.tools.base - Base tool interface and result container.

All agent tools inherit from BaseTool and return ToolResult. A tool declares
its arguments as a Pydantic model; the registry validates the model's
payload against it before execute() is ever called.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from application.context import SessionContext


@dataclass
class ToolResult:
    """Result returned by a tool execution.

    output: String fed back to the model as the tool message.
    """
    output: str


class BaseTool(ABC):
    """Abstract base for all agent tools."""

    name: str
    description: str

    @abstractmethod
    async def execute(self, ctx: SessionContext, **kwargs) -> ToolResult:
        """Execute the tool with the given session context and validated arguments."""
        ...

    @abstractmethod
    def get_schema(self) -> type[BaseModel]:
        """Return the Pydantic schema for this tool's input arguments."""
        ...

    def describe(self) -> dict[str, Any]:
        """Catalog entry: name, description and JSON schema of the arguments."""
        schema = self.get_schema().model_json_schema()
        schema.pop("title", None)
        return {
            "name": self.name,
            "description": self.description,
            "parameters": schema,
        }
