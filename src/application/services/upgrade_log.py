"""
application.services.upgrade_log - Log of self-modifications.
"""

from __future__ import annotations

import asyncio
import logging

from domain.models import now_iso
from domain.ports import DocumentStorePort

logger = logging.getLogger(__name__)

UPGRADES_DOCUMENT = "upgrades"


class UpgradeLog:

    def __init__(self, store: DocumentStorePort):
        self._store = store
        self._lock = asyncio.Lock()

    async def entries(self) -> list[dict]:
        document = await self._store.load(UPGRADES_DOCUMENT, {"upgrades": []})
        return list(document.get("upgrades") or [])

    async def record(self, file: str, reason: str) -> dict:
        entry = {"file": file, "reason": reason, "time": now_iso()}
        async with self._lock:
            upgrades = await self.entries()
            upgrades.append(entry)
            await self._store.save(UPGRADES_DOCUMENT, {"upgrades": upgrades})
        logger.info("Self-upgrade recorded for %s: %s", file, reason)
        return entry
