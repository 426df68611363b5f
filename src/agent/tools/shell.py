"""
agent.tools.shell - Shell command execution.

Runs through the platform shell with its own timeout (the registry adds an
outer one, a little longer). On POSIX the shell leads its own process group,
so a timeout or cancellation kills every process the command started.
Commands that would delete the installation are refused before a process is
started.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import signal
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from application.context import SessionContext
from agent.tools.base import BaseTool, ToolResult
from agent.tools.safety import SelfModificationGuard

logger = logging.getLogger(__name__)

_MKDIR_RE = re.compile(r"\bmkdir\s+(?:-p\s+)?[\"']?([^\"'\n;&|]+)", re.IGNORECASE)


def created_directory(command: str) -> Optional[str]:
    """Directory named by a mkdir in the command, if any."""
    match = _MKDIR_RE.search(command)
    return match.group(1).strip() if match else None


async def _terminate(proc: asyncio.subprocess.Process) -> None:
    """Kill the shell and everything it started, then reap it."""
    try:
        if os.name != "nt":
            os.killpg(proc.pid, signal.SIGKILL)
        elif proc.returncode is None:
            proc.kill()
    except ProcessLookupError:
        pass
    await proc.wait()


class RunCommandInput(BaseModel):
    command: str = Field(description="Shell command to execute")
    cwd: Optional[str] = Field(
        default=None,
        description="Working directory (optional, defaults to the workspace)",
    )


class RunCommandTool(BaseTool):

    name = "run_command"
    description = (
        "Execute a shell command and return its combined stdout/stderr. "
        "Examples: ls, mkdir, git status, python script.py"
    )

    def __init__(
        self,
        workdir: Path,
        guard: SelfModificationGuard,
        timeout_seconds: float = 120,
        output_limit: int = 100_000,
    ):
        self._workdir = workdir
        self._guard = guard
        self._timeout = timeout_seconds
        self._output_limit = output_limit

    def get_schema(self) -> type[BaseModel]:
        return RunCommandInput

    async def execute(
        self,
        ctx: SessionContext,
        command: str = "",
        cwd: Optional[str] = None,
        **kwargs,
    ) -> ToolResult:
        workdir = self._workdir / Path(cwd).expanduser() if cwd else self._workdir
        self._guard.check_command(command, cwd=workdir)
        logger.info("RUN %s", command)

        proc = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=str(workdir),
            start_new_session=(os.name != "nt"),
        )
        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError:
            await _terminate(proc)
            ctx.log_error("command timed out", command=command)
            return ToolResult(output=f"Error: Command timed out after {self._timeout:g}s")
        except BaseException:
            # cancelled from outside, e.g. by the registry deadline
            await _terminate(proc)
            raise

        output = stdout.decode("utf-8", errors="replace").strip()
        if len(output) > self._output_limit:
            output = output[:self._output_limit] + "\n[TRUNCATED]"

        directory = created_directory(command)
        if directory and proc.returncode == 0:
            await ctx.record_created_path(directory, kind="created_folder")

        await ctx.record_action("ran_command", command=command[:200])

        if proc.returncode != 0 and not output:
            ctx.log_error(f"exit status {proc.returncode}", command=command)
            return ToolResult(output=f"Error: Command exited with status {proc.returncode}")
        return ToolResult(output=output or "(command completed, no output)")
