"""
application.dto - Data Transfer Objects for service input/output.

These are the structured results that the agent loop and services return
to callers (CLI and REST adapters).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional


class AgentOutcome(str, Enum):
    COMPLETED = "completed"
    INCOMPLETE = "incomplete"   # iteration budget exhausted
    FAILED = "failed"           # gateway failure


@dataclass(frozen=True)
class ToolInvocation:
    """One executed tool call as reported back to the caller."""
    tool: str
    args: Optional[dict[str, Any]]
    result: str
    success: bool
    timestamp: int


@dataclass(frozen=True)
class AgentResult:
    """Complete result of one agent-loop invocation."""
    reply: str
    tools_executed: list[ToolInvocation] = field(default_factory=list)
    iterations: int = 0
    model: str = ""
    outcome: AgentOutcome = AgentOutcome.COMPLETED
    usage: dict[str, Any] = field(default_factory=dict)
    mood: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.outcome is not AgentOutcome.FAILED

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["outcome"] = self.outcome.value
        return data


@dataclass(frozen=True)
class RecipeStepResult:
    step: str
    success: bool
    result: str


@dataclass(frozen=True)
class RecipeRunResult:
    recipe_id: str
    results: list[RecipeStepResult] = field(default_factory=list)
    stopped: bool = False
