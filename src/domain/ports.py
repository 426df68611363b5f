"""
domain.ports - Abstract interfaces (Protocols) for all system boundaries.

These define WHAT the runtime needs without specifying HOW. Infrastructure
modules provide concrete implementations. Application services depend only
on these protocols, never on concrete classes.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable

from domain.models import GatewayResponse


@runtime_checkable
class ModelGatewayPort(Protocol):
    """Send a transcript plus tool catalog to the language-model backend.

    The transcript is a sequence of chat messages owned by the caller; the
    gateway never mutates it.
    """

    async def complete(
        self,
        transcript: Sequence[Any],
        tools: list[dict[str, Any]],
        model: str,
    ) -> GatewayResponse: ...


@runtime_checkable
class DocumentStorePort(Protocol):
    """Whole-document JSON persistence keyed by document name."""

    async def load(self, name: str, default: Any) -> Any: ...
    async def save(self, name: str, document: Any) -> None: ...


@runtime_checkable
class ToolExecutorPort(Protocol):
    """Dispatch one named tool call; failures come back as "Error: ..." strings."""

    async def execute(self, name: str, args: Any, ctx: Any) -> str: ...
