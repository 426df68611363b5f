"""
domain.models - Value objects for the agent runtime.

Plain data containers with no dependencies on infrastructure
(no LangChain, no SQLite). Persisted records expose to_dict()/from_dict()
so stores can keep them as JSON documents.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def now_iso() -> str:
    return datetime.now().isoformat()


# Every failed tool call, wherever it failed, produces text with this prefix.
FAILURE_PREFIX = "Error:"


def is_failure(result: str) -> bool:
    """True when a tool result is a failure string."""
    return result.startswith(FAILURE_PREFIX)


# Coercion of nested values read back from stored documents.

def _as_dict(value: Any) -> dict:
    return dict(value) if isinstance(value, dict) else {}


def _as_list(value: Any) -> list:
    return list(value) if isinstance(value, list) else []


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


# ---------------------------------------------------------------------------
# Session activity
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Action:
    """One entry of the short-term context buffer."""
    kind: str
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: int = field(default_factory=now_ms)

    @property
    def path(self) -> Optional[str]:
        return self.data.get("path")

    def to_dict(self) -> dict:
        return {"action": self.kind, "data": dict(self.data), "time": self.timestamp}


# ---------------------------------------------------------------------------
# Persistent memory
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MemoryEntry:
    """Persistent key/value memory item.

    origin is "tool" for explicit remember calls and "auto_summary" for
    entries written when the short-term buffer evicts old actions.
    """
    key: str
    value: str
    saved_at: int = field(default_factory=now_ms)
    origin: str = "tool"

    def to_dict(self) -> dict:
        return {"value": self.value, "saved": self.saved_at, "type": self.origin}

    @classmethod
    def from_dict(cls, key: str, data: dict) -> MemoryEntry:
        return cls(
            key=key,
            value=str(data.get("value", "")),
            saved_at=int(data.get("saved", 0) or 0),
            origin=data.get("type", "tool"),
        )


@dataclass(frozen=True)
class ArchiveSummary:
    """Long-term archive entry: truncated content plus a keyword set."""
    id: str
    type: str
    content: str
    keywords: list[str] = field(default_factory=list)
    created_at: str = field(default_factory=now_iso)

    @property
    def search_text(self) -> str:
        return (self.content + " " + " ".join(self.keywords)).lower()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "content": self.content,
            "keywords": list(self.keywords),
            "created": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> ArchiveSummary:
        return cls(
            id=str(data.get("id", "")),
            type=data.get("type", "conversation"),
            content=data.get("content", ""),
            keywords=list(data.get("keywords") or []),
            created_at=data.get("created", ""),
        )


# ---------------------------------------------------------------------------
# Mood / self-model
# ---------------------------------------------------------------------------

class MoodEvent(str, Enum):
    TASK_SUCCESS = "task_success"
    TASK_FAILURE = "task_failure"
    LONG_SESSION = "long_session"
    USER_PRAISE = "user_praise"
    USER_FRUSTRATION = "user_frustration"
    CREATIVE_TASK = "creative_task"
    BORING_TASK = "boring_task"


@dataclass(frozen=True)
class MoodEffect:
    energy: int
    mood: str


_STAT_COUNTERS = ("totalMessages", "totalToolCalls", "conversationCount")


@dataclass
class MoodState:
    """Affective state plus the self-model counters it is persisted with."""
    current: str = "neutral"
    energy: int = 100
    last_update: str = ""
    history: list[dict[str, Any]] = field(default_factory=list)
    stats: dict[str, Any] = field(default_factory=dict)
    self_model: dict[str, Any] = field(default_factory=dict)

    def snapshot(self) -> dict[str, Any]:
        return {"current": self.current, "energy": self.energy}

    def to_dict(self) -> dict:
        return {
            "mood": {
                "current": self.current,
                "energy": self.energy,
                "lastUpdate": self.last_update,
                "history": list(self.history),
            },
            "stats": dict(self.stats),
            "self_model": dict(self.self_model),
        }

    @classmethod
    def from_dict(cls, data: dict) -> MoodState:
        mood = _as_dict(data.get("mood"))
        stats = _as_dict(data.get("stats"))
        for key in _STAT_COUNTERS:
            if key in stats:
                stats[key] = _as_int(stats[key], 0)
        self_model = _as_dict(data.get("self_model"))
        self_model["totalTasksCompleted"] = _as_int(self_model.get("totalTasksCompleted"), 0)
        self_model["favoriteActivities"] = [
            a for a in _as_list(self_model.get("favoriteActivities")) if isinstance(a, dict)
        ]
        current = mood.get("current")
        return cls(
            current=current if isinstance(current, str) and current else "neutral",
            energy=max(0, min(100, _as_int(mood.get("energy"), 100))),
            last_update=str(mood.get("lastUpdate") or ""),
            history=[h for h in _as_list(mood.get("history")) if isinstance(h, dict)],
            stats=stats,
            self_model=self_model,
        )


class RelationshipTier(str, Enum):
    NEW = "new"
    GETTING_STARTED = "getting_started"
    ACQUAINTED = "acquainted"
    FAMILIAR = "familiar"
    CLOSE = "close"

    @property
    def label(self) -> str:
        return _TIER_LABELS[self]


_TIER_LABELS = {
    RelationshipTier.NEW: "new acquaintance",
    RelationshipTier.GETTING_STARTED: "getting started",
    RelationshipTier.ACQUAINTED: "getting to know each other",
    RelationshipTier.FAMILIAR: "familiar friend",
    RelationshipTier.CLOSE: "close collaborator",
}


@dataclass
class UserProfile:
    """Identity, preferences, interaction counters and trigger-phrase logs."""
    user: dict[str, Any] = field(default_factory=dict)
    preferences: dict[str, str] = field(default_factory=dict)
    relationship: dict[str, Any] = field(default_factory=dict)
    patterns: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.relationship["totalInteractions"] = _as_int(
            self.relationship.get("totalInteractions"), 0,
        )
        self.relationship.setdefault("firstInteraction", None)
        for key in ("frustrationTriggers", "excitementTriggers"):
            self.patterns[key] = _as_list(self.patterns.get(key))
        self.patterns["activeHours"] = {
            str(hour): _as_int(count, 0)
            for hour, count in _as_dict(self.patterns.get("activeHours")).items()
        }

    @property
    def total_interactions(self) -> int:
        return int(self.relationship.get("totalInteractions", 0) or 0)

    @property
    def display_name(self) -> Optional[str]:
        return self.user.get("preferredName") or self.user.get("name")

    def to_dict(self) -> dict:
        return {
            "user": dict(self.user),
            "preferences": dict(self.preferences),
            "relationship": dict(self.relationship),
            "patterns": dict(self.patterns),
        }

    @classmethod
    def from_dict(cls, data: dict) -> UserProfile:
        return cls(
            user=_as_dict(data.get("user")),
            preferences=_as_dict(data.get("preferences")),
            relationship=_as_dict(data.get("relationship")),
            patterns=_as_dict(data.get("patterns")),
        )


# ---------------------------------------------------------------------------
# Model gateway exchange
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ToolCallRequest:
    """A tool invocation requested by the model.

    arguments is None when the raw payload could not be parsed as JSON.
    """
    id: str
    name: str
    arguments: Optional[dict[str, Any]]
    raw_arguments: str = ""


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


@dataclass(frozen=True)
class GatewayResponse:
    """Either final content (no tool calls) or an ordered list of tool calls."""
    content: str = ""
    tool_calls: list[ToolCallRequest] = field(default_factory=list)
    usage: TokenUsage = field(default_factory=TokenUsage)
    model: str = ""
    cost: float = 0.0

    @property
    def wants_tools(self) -> bool:
        return bool(self.tool_calls)


@dataclass(frozen=True)
class RuntimeConfig:
    """Persisted runtime configuration, editable at run time."""
    default_model: str = "openai/gpt-4o-mini"
    max_iterations: int = 15
    auto_upgrade: bool = True

    def to_dict(self) -> dict:
        return {
            "defaultModel": self.default_model,
            "maxIterations": self.max_iterations,
            "autoUpgrade": self.auto_upgrade,
        }

    @classmethod
    def from_dict(cls, data: dict, defaults: RuntimeConfig) -> RuntimeConfig:
        return cls(
            default_model=data.get("defaultModel") or defaults.default_model,
            max_iterations=int(data.get("maxIterations") or defaults.max_iterations),
            auto_upgrade=bool(data.get("autoUpgrade", defaults.auto_upgrade)),
        )


# ---------------------------------------------------------------------------
# Automation recipes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RecipeStep:
    tool: str
    args: dict[str, Any] = field(default_factory=dict)
    delay_ms: int = 500


@dataclass(frozen=True)
class AutomationRecipe:
    """A named, replayable sequence of tool calls."""
    id: str
    name: str
    description: str = ""
    steps: list[RecipeStep] = field(default_factory=list)
    created_at: str = field(default_factory=now_iso)
    times_used: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "steps": [
                {"tool": s.tool, "args": dict(s.args), "delay": s.delay_ms}
                for s in self.steps
            ],
            "created": self.created_at,
            "timesUsed": self.times_used,
        }

    @classmethod
    def from_dict(cls, data: dict) -> AutomationRecipe:
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name", ""),
            description=data.get("description", ""),
            steps=[
                RecipeStep(
                    tool=s.get("tool", ""),
                    args=dict(s.get("args") or {}),
                    delay_ms=int(s.get("delay", 500)),
                )
                for s in data.get("steps") or []
            ],
            created_at=data.get("created", ""),
            times_used=int(data.get("timesUsed", 0)),
        )
