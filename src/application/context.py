"""
application.context - Per-conversation session context.

Replaces a process-global session. Every function receives its context
explicitly, so two concurrent conversations get two different
SessionContext instances and never share a short-term buffer, error log or
usage counters. Process-wide state lives only in the persistent stores.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Optional
from uuid import uuid4

from domain.models import Action, TokenUsage, now_ms
from application.services.memory_store import ShortTermContext

_ERROR_LOG_LIMIT = 50
_AUTOMATION_LOG_LIMIT = 100


@dataclass
class SessionContext:
    """Per-conversation context passed through all layers.

    Attributes:
        conversation_id:   Unique per conversation session.
        short_term:        Bounded buffer of recent Actions.
        last_created_path: Last file/folder a tool created ("that folder").
        total_tokens:      Cumulative prompt + completion tokens.
        total_cost:        Cumulative estimated USD cost.
        errors:            Bounded log of gateway/tool errors.
        automation_log:    Bounded log of automation activity.
        automation_active: Cleared by "stop automation"; checked between
                           recipe steps.
        request_id:        Unique per request, for tracing/logging.
    """
    conversation_id: str = field(default_factory=lambda: uuid4().hex)
    short_term: ShortTermContext = field(default_factory=ShortTermContext)
    last_created_path: Optional[str] = None
    last_model: Optional[str] = None
    total_tokens: int = 0
    total_cost: float = 0.0
    errors: list[dict[str, Any]] = field(default_factory=list)
    automation_log: list[dict[str, Any]] = field(default_factory=list)
    automation_active: bool = False
    started_at: float = field(default_factory=time.time)
    request_id: str = field(default_factory=lambda: uuid4().hex)

    def new_request(self) -> None:
        """Reset per-request state for a new request within the same session."""
        self.request_id = uuid4().hex

    @property
    def uptime_seconds(self) -> int:
        return int(time.time() - self.started_at)

    async def record_action(self, kind: str, **data: Any) -> Action:
        """Append an Action to the short-term buffer (may trigger eviction)."""
        return await self.short_term.append(kind, data)

    async def record_created_path(self, path: str, kind: str = "created_file") -> None:
        self.last_created_path = path
        await self.record_action(kind, path=path)

    def record_usage(self, usage: TokenUsage, cost: float) -> None:
        self.total_tokens += usage.total_tokens
        self.total_cost += cost

    def log_error(self, error: str, **details: Any) -> None:
        self.errors.append({**details, "error": error, "time": now_ms()})
        if len(self.errors) > _ERROR_LOG_LIMIT:
            del self.errors[:-_ERROR_LOG_LIMIT]

    def log_automation(self, **entry: Any) -> None:
        self.automation_log.append({**entry, "time": now_ms()})
        if len(self.automation_log) > _AUTOMATION_LOG_LIMIT:
            del self.automation_log[:-_AUTOMATION_LOG_LIMIT]
