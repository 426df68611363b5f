"""Document store: defaults, round trips and recovery from damaged documents."""

from application.services.memory_store import MemoryStore


class TestDocumentStore:

    async def test_missing_document_returns_default(self, store):
        assert await store.load("nothing", {"a": 1}) == {"a": 1}

    async def test_default_is_not_shared(self, store):
        default = {"items": []}
        loaded = await store.load("nothing", default)
        loaded["items"].append("x")
        assert default == {"items": []}

    async def test_save_then_load(self, store):
        await store.save("memory", {"k": {"value": "v"}})
        assert await store.load("memory", {}) == {"k": {"value": "v"}}

    async def test_save_overwrites(self, store):
        await store.save("doc", {"v": 1})
        await store.save("doc", {"v": 2})
        assert await store.load("doc", {}) == {"v": 2}

    async def test_corrupt_json_falls_back_to_default(self, store):
        await store.write_raw("memory", "{not json")
        assert await store.load("memory", {}) == {}

    async def test_wrong_type_falls_back_to_default(self, store):
        await store.write_raw("memory", "[1, 2, 3]")
        assert await store.load("memory", {}) == {}

    async def test_memory_survives_corrupt_document(self, store):
        await store.write_raw("memory", "garbage")
        memory = MemoryStore(store)
        assert await memory.recall("anything") == "No memory found for key: anything"
        await memory.remember("anything", "works again")
        assert await memory.recall("anything") == "works again"
