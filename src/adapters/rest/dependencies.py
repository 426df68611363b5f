"""
Shared FastAPI dependencies.

- get_factory(): returns the initialized ServiceFactory (set at startup).
- get_sessions(): the per-conversation SessionContext registry.
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Optional

from factory import ServiceFactory
from application.context import SessionContext

logger = logging.getLogger(__name__)

# Module-level references set by app lifespan
_factory: ServiceFactory | None = None
_sessions: SessionRegistry | None = None


@dataclass
class _Session:
    ctx: SessionContext
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class SessionRegistry:
    """One SessionContext per conversation id, least recently used evicted first.

    Requests that mutate a session (chat, recipe runs) hold its lock through
    exclusive(), so runs on one conversation never interleave. Sessions with
    a run in flight are never evicted.
    """

    def __init__(self, factory: ServiceFactory, max_sessions: int = 256):
        self._factory = factory
        self._max_sessions = max(1, max_sessions)
        self._sessions: OrderedDict[str, _Session] = OrderedDict()

    def _entry(self, conversation_id: Optional[str]) -> _Session:
        if conversation_id and conversation_id in self._sessions:
            self._sessions.move_to_end(conversation_id)
            return self._sessions[conversation_id]
        entry = _Session(self._factory.create_session(conversation_id))
        self._sessions[entry.ctx.conversation_id] = entry
        self._evict()
        return entry

    def _evict(self) -> None:
        for conversation_id in list(self._sessions)[:-1]:
            if len(self._sessions) <= self._max_sessions:
                return
            if not self._sessions[conversation_id].lock.locked():
                del self._sessions[conversation_id]
                logger.debug("Evicted session %s", conversation_id)

    @asynccontextmanager
    async def exclusive(
        self, conversation_id: Optional[str] = None,
    ) -> AsyncIterator[SessionContext]:
        """The conversation's session, held exclusively until the block exits."""
        entry = self._entry(conversation_id)
        async with entry.lock:
            yield entry.ctx

    def get(self, conversation_id: str) -> Optional[SessionContext]:
        entry = self._sessions.get(conversation_id)
        return entry.ctx if entry else None

    def __contains__(self, conversation_id: str) -> bool:
        return conversation_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)


def set_factory(factory: ServiceFactory) -> None:
    global _factory, _sessions
    _factory = factory
    _sessions = SessionRegistry(factory, max_sessions=factory.config.max_sessions)


def get_factory() -> ServiceFactory:
    if _factory is None:
        raise RuntimeError("ServiceFactory not initialized.")
    return _factory


def get_sessions() -> SessionRegistry:
    if _sessions is None:
        raise RuntimeError("ServiceFactory not initialized.")
    return _sessions
