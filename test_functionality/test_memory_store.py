"""Layered memory: key/value, keyword archive with compaction, short-term eviction."""

import asyncio
import json

import pytest

from application.services.memory_store import (
    MAX_ARCHIVE_KEYWORDS,
    MemoryStore,
    ShortTermContext,
    extract_keywords,
    summarize_actions,
)
from domain.models import Action


# ── Keywords ──


class TestKeywords:

    def test_drops_stop_words_and_short_tokens(self):
        assert extract_keywords("the cat sat on the mat with purpose") == ["with", "purpose"]

    def test_lowercases_and_dedupes(self):
        assert extract_keywords("Deploy deploy DEPLOY cluster") == ["deploy", "cluster"]

    def test_caps_keyword_count(self):
        words = " ".join(f"word{i:02d}" for i in range(30))
        assert len(extract_keywords(words)) == 10

    def test_summarize_actions(self):
        actions = [
            Action(kind="created_file", data={"path": "a.txt"}),
            Action(kind="ran_command", data={"command": "ls"}),
            Action(kind="created_file", data={"path": "b.txt"}),
        ]
        assert summarize_actions(actions) == (
            "Actions: created_file, ran_command. Paths: a.txt, b.txt"
        )

    def test_summarize_nothing(self):
        assert summarize_actions([]) is None


# ── Key/value ──


class TestKeyValueMemory:

    @pytest.fixture
    def memory(self, store):
        return MemoryStore(store)

    async def test_recall_missing_key(self, memory):
        assert await memory.recall("nope") == "No memory found for key: nope"

    async def test_remember_and_recall(self, memory):
        await memory.remember("color", "blue")
        assert await memory.recall("color") == "blue"

    async def test_remember_overwrites(self, memory):
        await memory.remember("color", "blue")
        await memory.remember("color", "green")
        assert await memory.recall("color") == "green"

    async def test_recall_all_returns_full_map(self, memory):
        await memory.remember("a", "1")
        await memory.remember("b", "2")
        everything = json.loads(await memory.recall("all"))
        assert set(everything) == {"a", "b"}
        assert everything["a"]["value"] == "1"
        assert everything["a"]["type"] == "tool"

    async def test_session_summaries_get_unique_keys(self, memory):
        first = await memory.record_session_summary("Actions: one")
        second = await memory.record_session_summary("Actions: two")
        assert first != second
        entries = await memory.entries()
        assert entries[first].value == "Actions: one"
        assert entries[second].origin == "auto_summary"


# ── Archive ──


class TestArchive:

    async def test_entry_fields(self, store):
        memory = MemoryStore(store)
        summary = await memory.add_to_archive("Deployed the kubernetes cluster", "conversation")
        assert summary.type == "conversation"
        assert "kubernetes" in summary.keywords
        assert len(await memory.archive()) == 1

    async def test_content_is_truncated(self, store):
        memory = MemoryStore(store)
        summary = await memory.add_to_archive("x" * 800)
        assert len(summary.content) == 500

    async def test_search_matches_keywords(self, store):
        memory = MemoryStore(store)
        await memory.add_to_archive("Deployed the kubernetes cluster")
        await memory.add_to_archive("Baked sourdough bread")
        results = await memory.search("how is my kubernetes setup?")
        assert [r.content for r in results] == ["Deployed the kubernetes cluster"]

    async def test_search_ignores_unrelated_entries(self, store):
        memory = MemoryStore(store)
        await memory.add_to_archive("Planned the garden layout")
        before = await memory.search("garden")
        await memory.add_to_archive("Fixed printer drivers")
        await memory.add_to_archive("Watched hockey highlights")
        assert [r.id for r in await memory.search("garden")] == [r.id for r in before]

    async def test_search_limit(self, store):
        memory = MemoryStore(store)
        for i in range(5):
            await memory.add_to_archive(f"python project number {i}")
        results = await memory.search("python")
        assert len(results) == 3
        assert results[0].content == "python project number 0"

    async def test_search_without_keywords(self, store):
        memory = MemoryStore(store)
        await memory.add_to_archive("anything at all")
        assert await memory.search("a an the") == []

    async def test_compaction_replaces_oldest_block(self, store):
        memory = MemoryStore(store, archive_cap=5, archive_block_size=2)
        for i in range(6):
            await memory.add_to_archive(f"entry{i} about topic{i}")

        archive = await memory.archive()
        # 6 entries, block of 2 collapsed into 1
        assert len(archive) == 5
        assert archive[0].type == "archive"
        assert archive[0].content.startswith("Archive of 2 items from ")
        assert set(archive[0].keywords) == {"entry0", "about", "topic0", "entry1", "topic1"}
        assert [s.content for s in archive[1:]] == [
            f"entry{i} about topic{i}" for i in range(2, 6)
        ]

    async def test_compacted_keywords_are_capped(self, store):
        memory = MemoryStore(store, archive_cap=3, archive_block_size=3)
        for i in range(4):
            words = " ".join(f"k{i}word{j}" for j in range(10))
            await memory.add_to_archive(words)

        archive = await memory.archive()
        assert len(archive) == 2
        assert len(archive[0].keywords) == MAX_ARCHIVE_KEYWORDS

    def test_block_size_must_fit_cap(self, store):
        with pytest.raises(ValueError):
            MemoryStore(store, archive_cap=5, archive_block_size=10)

    async def test_concurrent_additions_compact_once(self, store):
        memory = MemoryStore(store, archive_cap=5, archive_block_size=2)
        contents = [f"entry{i} about topic{i}" for i in range(6)]
        await asyncio.gather(*(memory.add_to_archive(c) for c in contents))

        archive = await memory.archive()
        assert len(archive) == 6 - 2 + 1
        assert [s.type for s in archive].count("archive") == 1
        assert archive[0].type == "archive"
        assert archive[0].content.startswith("Archive of 2 items from ")
        assert {s.content for s in archive[1:]} < set(contents)


class TestConcurrentMemoryWrites:

    async def test_no_lost_writes(self, store):
        memory = MemoryStore(store)
        await asyncio.gather(
            *(memory.remember(f"key{i}", f"value{i}") for i in range(10)),
            *(memory.record_session_summary(f"summary {i}") for i in range(10)),
        )

        entries = await memory.entries()
        assert len(entries) == 20
        assert {f"key{i}" for i in range(10)} <= set(entries)
        summaries = [e.value for k, e in entries.items() if k.startswith("session_summary_")]
        assert sorted(summaries) == sorted(f"summary {i}" for i in range(10))


# ── Short-term ──


class TestShortTermContext:

    async def test_under_cap_keeps_everything(self):
        buffer = ShortTermContext(cap=4)
        for i in range(4):
            await buffer.append("ran_command", {"command": f"c{i}"})
        assert len(buffer) == 4

    async def test_overflow_keeps_newest_half_and_summarises_once(self):
        summaries = []

        async def on_evict(summary):
            summaries.append(summary)

        buffer = ShortTermContext(cap=4, on_evict=on_evict)
        for i in range(5):
            await buffer.append("created_file", {"path": f"f{i}.txt"})

        assert len(buffer) == 2
        assert [a.path for a in buffer.actions] == ["f3.txt", "f4.txt"]
        assert summaries == ["Actions: created_file. Paths: f0.txt, f1.txt, f2.txt"]

    async def test_repeated_overflow_never_exceeds_cap(self):
        calls = []

        async def on_evict(summary):
            calls.append(summary)

        buffer = ShortTermContext(cap=4, on_evict=on_evict)
        for i in range(20):
            await buffer.append("ran_command")
            assert len(buffer) <= 4
        assert len(calls) >= 2

    async def test_eviction_lands_in_memory_with_unique_keys(self, store):
        memory = MemoryStore(store)
        buffer = ShortTermContext(cap=2, on_evict=memory.record_session_summary)
        for i in range(9):
            await buffer.append("created_file", {"path": f"f{i}"})

        keys = [k for k in await memory.keys() if k.startswith("session_summary_")]
        assert len(keys) == len(set(keys))
        assert len(keys) >= 3

    def test_cap_must_allow_eviction(self):
        with pytest.raises(ValueError):
            ShortTermContext(cap=1)

    async def test_recent(self):
        buffer = ShortTermContext(cap=10)
        for kind in ("a", "b", "c"):
            await buffer.append(kind)
        assert [a.kind for a in buffer.recent(2)] == ["b", "c"]
        assert buffer.recent(0) == []
