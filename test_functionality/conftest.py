"""Shared fixtures: a throwaway SQLite store, a scripted gateway and a wired factory."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence

import pytest

from application.context import SessionContext
from domain.models import GatewayResponse, ToolCallRequest
from factory import ServiceFactory
from infrastructure.config import Settings
from infrastructure.persistence.connection import AsyncSQLiteConnection
from infrastructure.persistence.document_store import SQLiteDocumentStore
from infrastructure.persistence.migrations import run_migrations


class ScriptedGateway:
    """Replays a fixed list of responses; an exception in the list is raised.

    Once the script runs out the last entry repeats, which is handy for
    driving the loop into its iteration cap.
    """

    def __init__(self, script: Sequence[Any]):
        self._script = list(script)
        self.calls: list[dict[str, Any]] = []

    async def complete(self, transcript, tools, model) -> GatewayResponse:
        self.calls.append({"transcript": list(transcript), "tools": tools, "model": model})
        index = min(len(self.calls) - 1, len(self._script) - 1)
        item = self._script[index]
        if isinstance(item, Exception):
            raise item
        return item


def reply(content: str) -> GatewayResponse:
    return GatewayResponse(content=content, model="test-model")


def tool_call(name: str, arguments: Any, call_id: str = "call_1") -> GatewayResponse:
    return GatewayResponse(
        tool_calls=[ToolCallRequest(id=call_id, name=name, arguments=arguments)],
        model="test-model",
    )


@pytest.fixture
async def store(tmp_path: Path) -> SQLiteDocumentStore:
    connection = AsyncSQLiteConnection(str(tmp_path / "state.db"))
    await run_migrations(connection)
    return SQLiteDocumentStore(connection)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    return Settings(
        project_root=tmp_path,
        install_root=tmp_path / "install",
        workspace_dir=workspace,
        db_path=str(tmp_path / "agent_state.db"),
        default_model="test-model",
        max_iterations=5,
        tool_timeout_seconds=5,
        short_term_cap=10,
    )


@pytest.fixture
def ctx() -> SessionContext:
    return SessionContext()


def make_factory(settings: Settings, script: Sequence[Any]) -> tuple[ServiceFactory, ScriptedGateway]:
    gateway = ScriptedGateway(script)
    return ServiceFactory(settings, gateway=gateway), gateway
