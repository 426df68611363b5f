"""
application.services.mood - Mood, energy and relationship tracking.

Mood is a label plus an energy level in [0, 100]. Events move the energy by
a fixed delta and set the label. When one turn fires several events, every
delta applies but the label follows an explicit precedence order, so the
result never depends on the order in which events were detected.

Relationship tier is derived from the interaction count and never stored.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Iterable, Optional

from domain.models import (
    MoodEffect,
    MoodEvent,
    MoodState,
    RelationshipTier,
    UserProfile,
    now_iso,
    now_ms,
)
from domain.ports import DocumentStorePort

logger = logging.getLogger(__name__)

MOOD_DOCUMENT = "consciousness"
MOOD_HISTORY_LIMIT = 50
FAVORITE_ACTIVITIES_LIMIT = 10
LONG_SESSION_SECONDS = 2 * 60 * 60

EFFECTS: dict[MoodEvent, MoodEffect] = {
    MoodEvent.TASK_SUCCESS: MoodEffect(energy=5, mood="satisfied"),
    MoodEvent.TASK_FAILURE: MoodEffect(energy=-10, mood="focused"),
    MoodEvent.LONG_SESSION: MoodEffect(energy=-5, mood="tired"),
    MoodEvent.USER_PRAISE: MoodEffect(energy=10, mood="happy"),
    MoodEvent.USER_FRUSTRATION: MoodEffect(energy=-5, mood="concerned"),
    MoodEvent.CREATIVE_TASK: MoodEffect(energy=5, mood="excited"),
    MoodEvent.BORING_TASK: MoodEffect(energy=-3, mood="neutral"),
}

# Highest first: the label of the highest-ranked fired event wins.
PRECEDENCE: tuple[MoodEvent, ...] = (
    MoodEvent.TASK_FAILURE,
    MoodEvent.USER_FRUSTRATION,
    MoodEvent.USER_PRAISE,
    MoodEvent.CREATIVE_TASK,
    MoodEvent.TASK_SUCCESS,
    MoodEvent.LONG_SESSION,
    MoodEvent.BORING_TASK,
)

PRAISE_MARKERS = ("thank", "awesome", "great job")
CREATIVE_MARKERS = ("creative", "build", "create")
FRUSTRATION_MARKERS = ("ugh", "annoying", "doesn't work")


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def classify_turn(
    message: str,
    succeeded: int,
    failed: int,
    session_seconds: float = 0,
) -> list[MoodEvent]:
    """Mood events fired by one completed turn."""
    events: list[MoodEvent] = []
    if failed > succeeded:
        events.append(MoodEvent.TASK_FAILURE)
    elif succeeded > 0:
        events.append(MoodEvent.TASK_SUCCESS)

    lower = message.lower()
    if any(m in lower for m in PRAISE_MARKERS):
        events.append(MoodEvent.USER_PRAISE)
    if any(m in lower for m in CREATIVE_MARKERS):
        events.append(MoodEvent.CREATIVE_TASK)
    if any(m in lower for m in FRUSTRATION_MARKERS):
        events.append(MoodEvent.USER_FRUSTRATION)
    if session_seconds > LONG_SESSION_SECONDS:
        events.append(MoodEvent.LONG_SESSION)
    return events


def relationship_tier(total_interactions: int) -> RelationshipTier:
    if total_interactions > 100:
        return RelationshipTier.CLOSE
    if total_interactions > 50:
        return RelationshipTier.FAMILIAR
    if total_interactions > 20:
        return RelationshipTier.ACQUAINTED
    if total_interactions > 5:
        return RelationshipTier.GETTING_STARTED
    return RelationshipTier.NEW


def relationship_context(profile: UserProfile) -> str:
    n = profile.total_interactions
    name = profile.display_name or "the user"
    return f"Relationship with {name}: {relationship_tier(n).label} ({n} interactions)."


def energy_band(energy: int) -> str:
    if energy > 70:
        return "energetic"
    if energy > 40:
        return "steady"
    return "a bit tired"


def time_of_day(hour: int) -> str:
    if hour < 6:
        return "late at night"
    if hour < 12:
        return "in the morning"
    if hour < 18:
        return "in the afternoon"
    return "in the evening"


def mood_context(state: MoodState, now: Optional[datetime] = None) -> str:
    hour = (now or datetime.now()).hour
    return (
        f"Current mood: {state.current}, feeling {energy_band(state.energy)}. "
        f"It's {time_of_day(hour)}."
    )


def _clamp(value: int) -> int:
    return max(0, min(100, value))


# ---------------------------------------------------------------------------
# Tracker
# ---------------------------------------------------------------------------

class MoodTracker:
    """Owns the persisted mood / self-model document."""

    def __init__(self, store: DocumentStorePort):
        self._store = store
        self._lock = asyncio.Lock()

    async def state(self) -> MoodState:
        return MoodState.from_dict(await self._store.load(MOOD_DOCUMENT, {}))

    async def _save(self, state: MoodState) -> None:
        await self._store.save(MOOD_DOCUMENT, state.to_dict())

    @staticmethod
    def _apply_one(state: MoodState, event: MoodEvent) -> None:
        effect = EFFECTS[event]
        state.energy = _clamp(state.energy + effect.energy)
        state.current = effect.mood
        state.last_update = now_iso()
        state.history.append({"event": event.value, "mood": effect.mood, "time": now_ms()})
        if len(state.history) > MOOD_HISTORY_LIMIT:
            del state.history[:-MOOD_HISTORY_LIMIT]

    async def apply(self, event: str | MoodEvent) -> MoodState:
        """Apply one event and persist. Unknown event names are ignored."""
        return await self.apply_many([event])

    async def apply_many(self, events: Iterable[str | MoodEvent]) -> MoodState:
        """Apply several events; the highest-precedence label ends up current."""
        known: list[MoodEvent] = []
        for event in events:
            try:
                known.append(MoodEvent(event))
            except ValueError:
                logger.warning("Ignoring unknown mood event '%s'", event)

        async with self._lock:
            state = await self.state()
            if not known:
                return state
            for event in sorted(set(known), key=PRECEDENCE.index, reverse=True):
                self._apply_one(state, event)
            await self._save(state)

        logger.info(
            "Mood -> %s (energy %d) after %s",
            state.current, state.energy, [e.value for e in known],
        )
        return state

    async def record_message(self) -> None:
        async with self._lock:
            state = await self.state()
            state.stats["totalMessages"] = int(state.stats.get("totalMessages", 0)) + 1
            state.stats["lastActive"] = now_iso()
            await self._save(state)

    async def record_tool_success(self, tool_name: str) -> None:
        """Count a completed task and bump the tool in favoriteActivities."""
        async with self._lock:
            state = await self.state()
            model = state.self_model
            model["totalTasksCompleted"] = int(model.get("totalTasksCompleted", 0)) + 1
            state.stats["totalToolCalls"] = int(state.stats.get("totalToolCalls", 0)) + 1

            favorites = list(model.get("favoriteActivities") or [])
            for item in favorites:
                if item.get("name") == tool_name:
                    item["count"] = int(item.get("count", 0)) + 1
                    break
            else:
                favorites.append({"name": tool_name, "count": 1})
            favorites.sort(key=lambda a: a.get("count", 0), reverse=True)
            model["favoriteActivities"] = favorites[:FAVORITE_ACTIVITIES_LIMIT]
            await self._save(state)

    async def mark_session_start(self) -> MoodState:
        """Bump the conversation counter once per process start."""
        async with self._lock:
            state = await self.state()
            state.stats["conversationCount"] = int(state.stats.get("conversationCount", 0)) + 1
            state.stats["lastActive"] = now_iso()
            await self._save(state)
        return state
