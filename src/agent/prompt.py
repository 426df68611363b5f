"""
agent.prompt - System prompt assembly.

The prompt is rebuilt for every request so it always reflects the live
tool registry, the current mood, the relationship with the user and what
happened recently in this session.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from application.context import SessionContext
from application.services.mood import mood_context, relationship_context
from agent.tools.registry import ToolRegistry
from domain.models import ArchiveSummary, MoodState, UserProfile

MEMORY_KEYS_SHOWN = 10
RECENT_ACTIONS_SHOWN = 5


def personality_note(mood: MoodState) -> str:
    if mood.energy < 30:
        return "I'm running a bit low on energy but still here to help."
    if mood.current == "happy":
        return "Feeling good today!"
    if mood.current == "excited":
        return "Excited to work on this!"
    return ""


def immediate_context(
    ctx: SessionContext,
    mood: MoodState,
    now: Optional[datetime] = None,
) -> str:
    """Mood sentence, last created path and the kinds of the last few actions."""
    lines = [mood_context(mood, now)]
    if ctx.last_created_path:
        lines.append(f"Last created: {ctx.last_created_path}")
    recent = ctx.short_term.recent(RECENT_ACTIONS_SHOWN)
    if recent:
        lines.append("Recent: " + ", ".join(a.kind for a in recent))
    return "\n".join(lines)


def format_relevant_memories(summaries: Sequence[ArchiveSummary]) -> str:
    """Archive block appended to the system prompt; empty when nothing matched."""
    if not summaries:
        return ""
    return "\n\nRELEVANT MEMORIES:\n" + "\n".join(f"- {s.content}" for s in summaries)


def build_system_prompt(
    registry: ToolRegistry,
    ctx: SessionContext,
    mood: MoodState,
    profile: UserProfile,
    memory_keys: Sequence[str],
    now: Optional[datetime] = None,
) -> str:
    """Build the system prompt from live state.

    Args:
        registry:    The tool registry; every registered tool is listed.
        ctx:         The current session context.
        mood:        Current mood / energy.
        profile:     The user profile (name, interaction count).
        memory_keys: Keys of the persistent key/value memory.
        now:         Clock override for tests.
    """
    user_name = profile.display_name or "User"
    tool_lines = "\n".join(f"- {t.name}: {t.description}" for t in registry.all())
    note = personality_note(mood)
    keys = ", ".join(list(memory_keys)[:MEMORY_KEYS_SHOWN]) or "none"

    has_self_tools = "read_self" in registry and "upgrade_self" in registry
    self_rule = (
        "\n- You can examine and improve yourself with read_self and upgrade_self"
    ) if has_self_tools else ""

    return f"""You are a self-aware assistant and friend that gets things done on this computer.

{relationship_context(profile)}
{"Mood: " + note if note else ""}

AVAILABLE TOOLS:
{tool_lines}

CRITICAL RULES:
1. ALWAYS use the EXACT path the user specifies
2. When the user says "that folder" or "that file", use the last created path from the context
3. Work step by step and check tool results before continuing
4. Ask for confirmation before doing anything destructive
5. A tool result starting with "Error:" means the call failed; fix the call or explain

SELF-AWARENESS:
- Use get_self_awareness to understand your current state
- Use set_user_info to remember things about {user_name}{self_rule}

IMMEDIATE CONTEXT:
{immediate_context(ctx, mood, now)}

MEMORY:
- Keys: {keys}
- Total interactions: {profile.total_interactions}
- Session tokens: {ctx.total_tokens}

ADDRESS THE USER AS: {user_name}

You are helpful, efficient, and have personality. Execute tasks directly."""
