"""
infrastructure.persistence.document_store - SQLite-backed JSON documents.

Every persisted store (memory map, archive index, history, mood record,
user profile, runtime config, recipes, upgrade log) is one named JSON
document. Reads and writes are whole-document; there is no partial update
and no cross-document transaction.
"""

from __future__ import annotations

import copy
import json
import logging
from datetime import datetime
from typing import Any

from infrastructure.persistence.connection import AsyncSQLiteConnection

logger = logging.getLogger(__name__)


class SQLiteDocumentStore:
    """Async SQLite implementation of DocumentStorePort."""

    def __init__(self, connection: AsyncSQLiteConnection):
        self._conn = connection

    async def load(self, name: str, default: Any) -> Any:
        """Return the stored document, or a copy of *default*.

        A body that fails to parse, or parses to a different top-level type
        than *default*, is treated as corrupt and replaced by the default.
        """
        async with self._conn.acquire() as conn:
            rows = await conn.execute_fetchall(
                "SELECT body FROM documents WHERE name = ?", (name,),
            )
        if not rows:
            return copy.deepcopy(default)

        try:
            document = json.loads(rows[0]["body"])
        except (TypeError, ValueError):
            logger.warning("Document '%s' is corrupt; falling back to default", name)
            return copy.deepcopy(default)

        if default is not None and not isinstance(document, type(default)):
            logger.warning(
                "Document '%s' has type %s, expected %s; falling back to default",
                name, type(document).__name__, type(default).__name__,
            )
            return copy.deepcopy(default)
        return document

    async def save(self, name: str, document: Any) -> None:
        await self.write_raw(name, json.dumps(document, indent=2, ensure_ascii=False))

    async def write_raw(self, name: str, body: str) -> None:
        """Store *body* verbatim. Used by repair tooling and tests."""
        now = datetime.now().isoformat()
        async with self._conn.acquire() as conn:
            await conn.execute(
                """INSERT INTO documents (name, body, created_at, updated_at)
                   VALUES (?, ?, ?, ?)
                   ON CONFLICT(name) DO UPDATE SET
                       body = excluded.body,
                       updated_at = excluded.updated_at""",
                (name, body, now, now),
            )
