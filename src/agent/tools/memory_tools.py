"""
agent.tools.memory_tools - remember / recall / search_memory.

Thin wrappers over MemoryStore so the model can read and write persistent
memory explicitly.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from application.context import SessionContext
from application.services.memory_store import MemoryStore
from agent.tools.base import BaseTool, ToolResult


class RememberInput(BaseModel):
    key: str = Field(min_length=1, description="Memory key name")
    value: str = Field(description="Value to store")


class RememberTool(BaseTool):

    name = "remember"
    description = "Store information in persistent memory. Survives restarts."

    def __init__(self, memory: MemoryStore):
        self._memory = memory

    def get_schema(self) -> type[BaseModel]:
        return RememberInput

    async def execute(
        self, ctx: SessionContext, key: str = "", value: str = "", **kwargs,
    ) -> ToolResult:
        await self._memory.remember(key, value)
        await ctx.record_action("remembered", key=key)
        return ToolResult(output=f'Stored "{key}" in memory')


class RecallInput(BaseModel):
    key: str = Field(description="Memory key to retrieve (or 'all' for everything)")


class RecallTool(BaseTool):

    name = "recall"
    description = "Retrieve information from persistent memory by key, or 'all'."

    def __init__(self, memory: MemoryStore):
        self._memory = memory

    def get_schema(self) -> type[BaseModel]:
        return RecallInput

    async def execute(self, ctx: SessionContext, key: str = "", **kwargs) -> ToolResult:
        return ToolResult(output=await self._memory.recall(key))


class SearchMemoryInput(BaseModel):
    query: str = Field(description="Words to look for in past conversation summaries")


class SearchMemoryTool(BaseTool):

    name = "search_memory"
    description = (
        "Search the long-term archive of past conversations by keyword. "
        "Returns at most 3 summaries."
    )

    def __init__(self, memory: MemoryStore):
        self._memory = memory

    def get_schema(self) -> type[BaseModel]:
        return SearchMemoryInput

    async def execute(self, ctx: SessionContext, query: str = "", **kwargs) -> ToolResult:
        matches = await self._memory.search(query)
        if not matches:
            return ToolResult(output="No matching memories found")
        lines = [f"- [{m.type}] {m.content}" for m in matches]
        return ToolResult(output="\n".join(lines))
