"""
application.services.memory_store - Layered memory for the agent.

Three layers:
  - ShortTermContext: bounded per-session buffer of recent Actions. When it
    overflows, the oldest half is summarised into ONE persistent key/value
    entry before being dropped.
  - Key/value memory: explicit remember/recall, survives restarts.
  - Archive: keyword-indexed summaries of notable turns. Lossy by design
    (substring match on extracted keywords, not semantic search). Once it
    exceeds its cap, the oldest block is compacted into a single
    "archive" summary.

All read-modify-write sequences on the persistent documents run under an
asyncio.Lock, so concurrent conversations never interleave a compaction.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Optional, Sequence
from uuid import uuid4

from domain.models import Action, ArchiveSummary, MemoryEntry, now_iso, now_ms
from domain.ports import DocumentStorePort

logger = logging.getLogger(__name__)

MEMORY_DOCUMENT = "memory"
ARCHIVE_DOCUMENT = "memory_index"

STOP_WORDS = frozenset({
    "the", "a", "an", "is", "are", "was", "were", "to",
    "for", "of", "and", "or", "in", "on", "at", "by",
})
MIN_KEYWORD_LENGTH = 4
MAX_KEYWORDS = 10
MAX_ARCHIVE_KEYWORDS = 20
MAX_ARCHIVE_CONTENT = 500
SEARCH_LIMIT = 3


# ---------------------------------------------------------------------------
# Keyword index helpers
# ---------------------------------------------------------------------------

def tokenize(text: str) -> list[str]:
    """Lower-case, whitespace-split, drop stop-words and short tokens, dedupe."""
    seen: dict[str, None] = {}
    for word in text.lower().split():
        if len(word) >= MIN_KEYWORD_LENGTH and word not in STOP_WORDS:
            seen.setdefault(word, None)
    return list(seen)


def extract_keywords(text: str, limit: int = MAX_KEYWORDS) -> list[str]:
    return tokenize(text)[:limit]


def compress_summaries(summaries: Sequence[ArchiveSummary]) -> ArchiveSummary:
    """Collapse a contiguous block of summaries into one "archive" entry."""
    first = summaries[0].created_at if summaries else "unknown"
    last = summaries[-1].created_at if summaries else "unknown"

    keywords: dict[str, None] = {}
    for summary in summaries:
        for kw in summary.keywords:
            keywords.setdefault(kw, None)

    return ArchiveSummary(
        id=uuid4().hex,
        type="archive",
        content=f"Archive of {len(summaries)} items from {first} to {last}",
        keywords=list(keywords)[:MAX_ARCHIVE_KEYWORDS],
    )


def summarize_actions(actions: Sequence[Action]) -> Optional[str]:
    """One human-readable sentence: unique action kinds plus up to 5 paths."""
    if not actions:
        return None
    kinds = list(dict.fromkeys(a.kind for a in actions))
    paths = [a.path for a in actions if a.path]
    return f"Actions: {', '.join(kinds)}. Paths: {', '.join(paths[:5])}"


# ---------------------------------------------------------------------------
# Short-term context
# ---------------------------------------------------------------------------

class ShortTermContext:
    """Bounded ring buffer of Actions for one session.

    on_evict receives the summary sentence of every eviction; it is the only
    bridge from raw session activity into persistent memory.
    """

    def __init__(
        self,
        cap: int = 100,
        on_evict: Optional[Callable[[str], Awaitable[Any]]] = None,
    ):
        if cap < 2:
            raise ValueError("short-term cap must be at least 2")
        self._cap = cap
        self._on_evict = on_evict
        self._actions: list[Action] = []

    @property
    def cap(self) -> int:
        return self._cap

    @property
    def actions(self) -> list[Action]:
        return list(self._actions)

    def __len__(self) -> int:
        return len(self._actions)

    def recent(self, n: int) -> list[Action]:
        return self._actions[-n:] if n > 0 else []

    async def append(self, kind: str, data: Optional[dict[str, Any]] = None) -> Action:
        action = Action(kind=kind, data=dict(data or {}))
        self._actions.append(action)
        if len(self._actions) > self._cap:
            await self._evict()
        return action

    async def _evict(self) -> None:
        keep = self._cap // 2
        evicted = self._actions[:-keep]
        self._actions = self._actions[-keep:]

        summary = summarize_actions(evicted)
        logger.debug("Evicted %d short-term action(s)", len(evicted))
        if summary and self._on_evict is not None:
            await self._on_evict(summary)

    def clear(self) -> None:
        self._actions.clear()


# ---------------------------------------------------------------------------
# Persistent memory
# ---------------------------------------------------------------------------

class MemoryStore:
    """Key/value memory plus the compacting long-term archive."""

    def __init__(
        self,
        store: DocumentStorePort,
        archive_cap: int = 500,
        archive_block_size: int = 100,
    ):
        if not 0 < archive_block_size <= archive_cap:
            raise ValueError("archive_block_size must be in (0, archive_cap]")
        self._store = store
        self._archive_cap = archive_cap
        self._block_size = archive_block_size
        self._memory_lock = asyncio.Lock()
        self._archive_lock = asyncio.Lock()

    # ── Key/value ──────────────────────────────────────────────────────────

    async def _load_memory(self) -> dict[str, dict]:
        return await self._store.load(MEMORY_DOCUMENT, {})

    async def remember(self, key: str, value: str, origin: str = "tool") -> MemoryEntry:
        """Store *value* under *key*, overwriting any previous value."""
        entry = MemoryEntry(key=key, value=value, origin=origin)
        async with self._memory_lock:
            memory = await self._load_memory()
            memory[key] = entry.to_dict()
            await self._store.save(MEMORY_DOCUMENT, memory)
        logger.info("Remembered '%s' (%s)", key, origin)
        return entry

    async def recall(self, key: str) -> str:
        """Return the stored value, the full map for "all", or a not-found message."""
        memory = await self._load_memory()
        if key == "all":
            return json.dumps(memory, indent=2, ensure_ascii=False)
        item = memory.get(key)
        if item is None:
            return f"No memory found for key: {key}"
        return MemoryEntry.from_dict(key, item).value

    async def entries(self) -> dict[str, MemoryEntry]:
        memory = await self._load_memory()
        return {k: MemoryEntry.from_dict(k, v) for k, v in memory.items()}

    async def keys(self) -> list[str]:
        return list(await self._load_memory())

    async def record_session_summary(self, summary: str) -> str:
        """Persist an eviction summary under a fresh timestamped key."""
        async with self._memory_lock:
            memory = await self._load_memory()
            base = f"session_summary_{now_ms()}"
            key, n = base, 1
            while key in memory:
                key = f"{base}_{n}"
                n += 1
            memory[key] = MemoryEntry(key=key, value=summary, origin="auto_summary").to_dict()
            await self._store.save(MEMORY_DOCUMENT, memory)
        logger.info("Archived short-term context into '%s'", key)
        return key

    # ── Archive ────────────────────────────────────────────────────────────

    async def archive(self) -> list[ArchiveSummary]:
        document = await self._store.load(ARCHIVE_DOCUMENT, {"summaries": []})
        return [ArchiveSummary.from_dict(s) for s in document.get("summaries") or []]

    async def add_to_archive(self, content: str, type: str = "conversation") -> ArchiveSummary:
        """Index one summary; compacts the oldest block once the cap is exceeded."""
        summary = ArchiveSummary(
            id=uuid4().hex,
            type=type,
            content=content[:MAX_ARCHIVE_CONTENT],
            keywords=extract_keywords(content),
            created_at=now_iso(),
        )
        async with self._archive_lock:
            summaries = await self.archive()
            summaries.append(summary)
            if len(summaries) > self._archive_cap:
                summaries = self._compact(summaries)
            await self._store.save(
                ARCHIVE_DOCUMENT, {"summaries": [s.to_dict() for s in summaries]},
            )
        return summary

    def _compact(self, summaries: list[ArchiveSummary]) -> list[ArchiveSummary]:
        block = summaries[:self._block_size]
        compacted = [compress_summaries(block), *summaries[self._block_size:]]
        logger.info(
            "Compacted %d archive entries (%d -> %d)",
            len(block), len(summaries), len(compacted),
        )
        return compacted

    async def search(self, query: str, limit: int = SEARCH_LIMIT) -> list[ArchiveSummary]:
        """First *limit* summaries (insertion order) sharing any query keyword."""
        keywords = tokenize(query)
        if not keywords:
            return []
        matches = []
        for summary in await self.archive():
            text = summary.search_text
            if any(kw in text for kw in keywords):
                matches.append(summary)
                if len(matches) == limit:
                    break
        return matches
