"""
agent.tools.filesystem - File and directory tools.

Relative paths resolve against the configured workspace directory. The path
recorded in the session context is the one the model gave, so follow-up
requests like "open that file" can refer back to it verbatim.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, Field

from application.context import SessionContext
from agent.tools.base import BaseTool, ToolResult
from agent.tools.safety import SelfModificationGuard

logger = logging.getLogger(__name__)


def _resolve(workdir: Path, path: str) -> Path:
    p = Path(path).expanduser()
    return p if p.is_absolute() else workdir / p


# ---------------------------------------------------------------------------
# read_file
# ---------------------------------------------------------------------------

class ReadFileInput(BaseModel):
    path: str = Field(description="Path to the file to read")


class ReadFileTool(BaseTool):

    name = "read_file"
    description = "Read a text file and return its full contents."

    def __init__(self, workdir: Path):
        self._workdir = workdir

    def get_schema(self) -> type[BaseModel]:
        return ReadFileInput

    async def execute(self, ctx: SessionContext, path: str = "", **kwargs) -> ToolResult:
        target = _resolve(self._workdir, path)
        logger.info("READ %s", target)
        try:
            content = target.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            return ToolResult(output=f"Error: Could not read {path}: {exc}")
        await ctx.record_action("read_file", path=path)
        return ToolResult(output=content)


# ---------------------------------------------------------------------------
# write_file
# ---------------------------------------------------------------------------

class WriteFileInput(BaseModel):
    path: str = Field(description="Path of the file to create or overwrite")
    content: str = Field(description="Full text content to write")


class WriteFileTool(BaseTool):

    name = "write_file"
    description = (
        "Write content to a file, creating parent directories if needed. "
        "Use this for creating new files."
    )

    def __init__(self, workdir: Path, guard: SelfModificationGuard):
        self._workdir = workdir
        self._guard = guard

    def get_schema(self) -> type[BaseModel]:
        return WriteFileInput

    async def execute(
        self,
        ctx: SessionContext,
        path: str = "",
        content: str = "",
        **kwargs,
    ) -> ToolResult:
        target = _resolve(self._workdir, path)
        self._guard.check_write_target(target)
        logger.info("WRITE %s (%d chars)", target, len(content))
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        except OSError as exc:
            ctx.log_error(str(exc), path=path)
            return ToolResult(output=f"Error: Could not write {path}: {exc}")

        await ctx.record_created_path(path, kind="created_file")
        return ToolResult(output=f"Successfully wrote {len(content)} chars to {path}")


# ---------------------------------------------------------------------------
# edit_file
# ---------------------------------------------------------------------------

class EditFileInput(BaseModel):
    path: str = Field(description="Path to the file to edit")
    old_text: str = Field(description="Exact text to find (including whitespace)")
    new_text: str = Field(description="Replacement text")


class EditFileTool(BaseTool):

    name = "edit_file"
    description = (
        "Edit a file by replacing the first occurrence of old_text with new_text. "
        "old_text must match EXACTLY, including whitespace."
    )

    def __init__(self, workdir: Path, guard: SelfModificationGuard):
        self._workdir = workdir
        self._guard = guard

    def get_schema(self) -> type[BaseModel]:
        return EditFileInput

    async def execute(
        self,
        ctx: SessionContext,
        path: str = "",
        old_text: str = "",
        new_text: str = "",
        **kwargs,
    ) -> ToolResult:
        target = _resolve(self._workdir, path)
        self._guard.check_write_target(target)
        logger.info("EDIT %s", target)
        try:
            content = target.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            return ToolResult(output=f"Error: Could not read {path}: {exc}")

        if not old_text or old_text not in content:
            return ToolResult(output=(
                "Error: Could not find exact text to replace. "
                "Make sure it matches exactly including whitespace."
            ))
        target.write_text(content.replace(old_text, new_text, 1), encoding="utf-8")
        await ctx.record_action("edited_file", path=path)
        return ToolResult(output=f"Successfully edited {path}")


# ---------------------------------------------------------------------------
# list_dir
# ---------------------------------------------------------------------------

class ListDirInput(BaseModel):
    path: str = Field(default=".", description="Directory to list")


class ListDirTool(BaseTool):

    name = "list_dir"
    description = "List the files and folders in a directory."

    def __init__(self, workdir: Path):
        self._workdir = workdir

    def get_schema(self) -> type[BaseModel]:
        return ListDirInput

    async def execute(self, ctx: SessionContext, path: str = ".", **kwargs) -> ToolResult:
        target = _resolve(self._workdir, path)
        try:
            items = sorted(target.iterdir(), key=lambda p: p.name)
        except OSError as exc:
            return ToolResult(output=f"Error: Could not list {path}: {exc}")

        lines = [f"{'[DIR]' if p.is_dir() else '[FILE]'} {p.name}" for p in items]
        return ToolResult(output="\n".join(lines) or "(empty directory)")
