"""
application.services.skills - Library of skills the agent has written down.

A skill is a named snippet of code with a description. Skills are persisted
for the user to review and are never executed by the runtime.
"""

from __future__ import annotations

import asyncio
import logging

from domain.models import now_ms
from domain.ports import DocumentStorePort

logger = logging.getLogger(__name__)

SKILLS_DOCUMENT = "skills"


class SkillLibrary:

    def __init__(self, store: DocumentStorePort):
        self._store = store
        self._lock = asyncio.Lock()

    async def installed(self) -> list[dict]:
        document = await self._store.load(SKILLS_DOCUMENT, {"installed": []})
        return [s for s in document.get("installed") or [] if isinstance(s, dict)]

    async def add(self, name: str, description: str, code: str) -> dict:
        """Store a skill; a skill with the same name is replaced."""
        skill = {"name": name, "description": description, "code": code, "added": now_ms()}
        async with self._lock:
            skills = [s for s in await self.installed() if s.get("name") != name]
            skills.append(skill)
            await self._store.save(SKILLS_DOCUMENT, {"installed": skills})
        logger.info("Added skill '%s'", name)
        return skill
