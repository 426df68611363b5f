"""
application.services.runtime_config - Persisted runtime configuration.

Environment settings provide the defaults; the persisted "config" document
overrides them and can be changed while the agent runs (e.g. switching the
default model from the CLI).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any

from domain.models import RuntimeConfig
from domain.ports import DocumentStorePort

logger = logging.getLogger(__name__)

CONFIG_DOCUMENT = "config"


class RuntimeConfigService:

    def __init__(self, store: DocumentStorePort, defaults: RuntimeConfig):
        self._store = store
        self._defaults = defaults
        self._lock = asyncio.Lock()

    async def get(self) -> RuntimeConfig:
        data = await self._store.load(CONFIG_DOCUMENT, {})
        return RuntimeConfig.from_dict(data, self._defaults)

    async def update(self, **changes: Any) -> RuntimeConfig:
        """Apply field changes (default_model, max_iterations, auto_upgrade)."""
        async with self._lock:
            current = await self.get()
            updated = replace(current, **changes)
            if updated.max_iterations < 1:
                raise ValueError("max_iterations must be at least 1")
            await self._store.save(CONFIG_DOCUMENT, updated.to_dict())
        logger.info("Runtime config updated: %s", changes)
        return updated

    async def set_default_model(self, model: str) -> RuntimeConfig:
        return await self.update(default_model=model)
