"""System prompt assembly from live state."""

from datetime import datetime

import pytest

from agent.prompt import build_system_prompt, format_relevant_memories, personality_note
from agent.tools.introspection import GetContextTool
from agent.tools.registry import ToolRegistry
from domain.models import ArchiveSummary, MoodState, UserProfile


@pytest.fixture
def registry():
    registry = ToolRegistry()
    registry.register(GetContextTool())
    return registry


class TestSystemPrompt:

    async def test_reflects_live_state(self, registry, ctx):
        await ctx.record_created_path("projects/demo", kind="created_folder")
        profile = UserProfile(user={"name": "Robin"}, relationship={"totalInteractions": 7})

        prompt = build_system_prompt(
            registry, ctx,
            mood=MoodState(current="happy", energy=80),
            profile=profile,
            memory_keys=["editor", "color"],
            now=datetime(2024, 5, 1, 20, 0),
        )

        assert "- get_context: " in prompt
        assert "Last created: projects/demo" in prompt
        assert "Recent: created_folder" in prompt
        assert "Keys: editor, color" in prompt
        assert "Relationship with Robin: getting started (7 interactions)." in prompt
        assert "Current mood: happy, feeling energetic. It's in the evening." in prompt
        assert "ADDRESS THE USER AS: Robin" in prompt
        assert "read_self" not in prompt

    def test_defaults_without_memory(self, registry, ctx):
        prompt = build_system_prompt(
            registry, ctx, mood=MoodState(), profile=UserProfile(), memory_keys=[],
        )
        assert "Keys: none" in prompt
        assert "ADDRESS THE USER AS: User" in prompt

    def test_personality_note(self):
        assert personality_note(MoodState(energy=10)).startswith("I'm running a bit low")
        assert personality_note(MoodState(current="excited")) == "Excited to work on this!"
        assert personality_note(MoodState()) == ""

    def test_relevant_memories_block(self):
        assert format_relevant_memories([]) == ""
        block = format_relevant_memories([ArchiveSummary(id="1", type="conversation", content="A")])
        assert block == "\n\nRELEVANT MEMORIES:\n- A"
