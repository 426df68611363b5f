"""
application.services.chat_history - Conversation history persistence.

Only the final {user, assistant} pair of each turn is stored; the loop's
transcript (tool calls, tool results) stays local to the loop. The stored
history is bounded to the most recent messages.
"""

from __future__ import annotations

import asyncio
import logging

from domain.models import now_ms
from domain.ports import DocumentStorePort

logger = logging.getLogger(__name__)

HISTORY_DOCUMENT = "history"


class ConversationHistoryService:
    """Appends and reads the persisted message history."""

    def __init__(self, store: DocumentStorePort, limit: int = 200):
        self._store = store
        self._limit = limit
        self._lock = asyncio.Lock()

    async def messages(self) -> list[dict]:
        document = await self._store.load(HISTORY_DOCUMENT, {"messages": []})
        return list(document.get("messages") or [])

    async def append_turn(self, user: str, assistant: str) -> None:
        """Append one user/assistant pair and drop anything past the limit."""
        async with self._lock:
            messages = await self.messages()
            ts = now_ms()
            messages.append({"role": "user", "content": user, "time": ts})
            messages.append({"role": "assistant", "content": assistant, "time": ts})
            if len(messages) > self._limit:
                messages = messages[-self._limit:]
            await self._store.save(HISTORY_DOCUMENT, {"messages": messages})

    async def recent(self, n: int = 20) -> list[dict]:
        messages = await self.messages()
        return messages[-n:] if n > 0 else []

    async def clear(self) -> None:
        async with self._lock:
            await self._store.save(HISTORY_DOCUMENT, {"messages": []})
        logger.info("Cleared conversation history")
