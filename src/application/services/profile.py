"""
application.services.profile - User profile management.

Tracks who the user is (name, preferred name, timezone), free-form
preferences, the interaction counter that drives the relationship tier, and
light pattern logs (frustration/excitement phrases, active hours).
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Optional

from domain.models import UserProfile, now_iso, now_ms
from domain.ports import DocumentStorePort

logger = logging.getLogger(__name__)

PROFILE_DOCUMENT = "user_profile"
TRIGGER_LOG_LIMIT = 20

FRUSTRATION_PHRASES = ("ugh", "annoying", "doesn't work")
EXCITEMENT_PHRASES = ("awesome", "cool", "nice")


class ProfileService:
    """Manages the single persisted user profile."""

    def __init__(self, store: DocumentStorePort):
        self._store = store
        self._lock = asyncio.Lock()

    async def profile(self) -> UserProfile:
        return UserProfile.from_dict(await self._store.load(PROFILE_DOCUMENT, {}))

    async def _save(self, profile: UserProfile) -> None:
        await self._store.save(PROFILE_DOCUMENT, profile.to_dict())

    async def record_message(
        self,
        message: str,
        now: Optional[datetime] = None,
    ) -> UserProfile:
        """Count one interaction and log any trigger phrases it contains.

        Called once per successful turn, so a failed gateway call leaves the
        profile untouched.
        """
        now = now or datetime.now()
        lower = message.lower()

        async with self._lock:
            profile = await self.profile()
            patterns = profile.patterns

            if any(p in lower for p in FRUSTRATION_PHRASES):
                patterns["frustrationTriggers"].append(
                    {"context": message[:100], "time": now_ms()}
                )
            if any(p in lower for p in EXCITEMENT_PHRASES):
                patterns["excitementTriggers"].append(
                    {"context": message[:100], "time": now_ms()}
                )
            for name in ("frustrationTriggers", "excitementTriggers"):
                patterns[name] = patterns[name][-TRIGGER_LOG_LIMIT:]

            # JSON object keys are strings
            hour = str(now.hour)
            patterns["activeHours"][hour] = int(patterns["activeHours"].get(hour, 0)) + 1

            profile.relationship["totalInteractions"] = profile.total_interactions + 1
            if not profile.relationship.get("firstInteraction"):
                profile.relationship["firstInteraction"] = now_iso()

            await self._save(profile)
        return profile

    async def set_user_info(
        self,
        name: Optional[str] = None,
        preferred_name: Optional[str] = None,
        timezone: Optional[str] = None,
        preference_key: Optional[str] = None,
        preference_value: Optional[str] = None,
    ) -> UserProfile:
        """Update identity fields and/or one preference; omitted fields are kept."""
        async with self._lock:
            profile = await self.profile()
            if name:
                profile.user["name"] = name
            if preferred_name:
                profile.user["preferredName"] = preferred_name
            if timezone:
                profile.user["timezone"] = timezone
            if preference_key and preference_value is not None:
                profile.preferences[preference_key] = preference_value
            await self._save(profile)

        logger.info("Updated user profile (name=%s)", profile.display_name)
        return profile
