"""
agent.tools.self_upgrade - read_self / upgrade_self.

Self-modification is limited to a fixed allow-list of named artifacts. An
upgrade must match its old_code exactly, always writes a full backup first,
and is refused if it would leave the file empty. Every applied upgrade is
appended to the persisted upgrade log.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from pydantic import BaseModel, Field

from application.context import SessionContext
from application.services.runtime_config import RuntimeConfigService
from application.services.upgrade_log import UpgradeLog
from agent.tools.base import BaseTool, ToolResult
from domain.exceptions import SelfModificationRefused

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".backup"


def default_artifacts(install_root: Path) -> dict[str, Path]:
    """The files the agent may read and upgrade, keyed by artifact name."""
    src = install_root / "src"
    return {
        "config": src / "infrastructure" / "config.py",
        "prompt": src / "agent" / "prompt.py",
        "tools": src / "agent" / "tools" / "registry.py",
    }


def _unknown(name: str, artifacts: dict[str, Path]) -> str:
    return f"Error: Unknown file '{name}'. Options: {', '.join(artifacts)}"


class ReadSelfInput(BaseModel):
    file: str = Field(description="Artifact to read: 'config', 'prompt' or 'tools'")


class ReadSelfTool(BaseTool):

    name = "read_self"
    description = "Read one of the agent's own source artifacts (config, prompt, tools)."

    def __init__(self, artifacts: dict[str, Path]):
        self._artifacts = artifacts

    def get_schema(self) -> type[BaseModel]:
        return ReadSelfInput

    async def execute(self, ctx: SessionContext, file: str = "", **kwargs) -> ToolResult:
        path = self._artifacts.get(file)
        if path is None:
            return ToolResult(output=_unknown(file, self._artifacts))
        try:
            return ToolResult(output=path.read_text(encoding="utf-8"))
        except OSError as exc:
            return ToolResult(output=f"Error: Could not read {file}: {exc}")


class UpgradeSelfInput(BaseModel):
    file: str = Field(description="Artifact to modify: 'config', 'prompt' or 'tools'")
    old_code: str = Field(min_length=1, description="Exact code to replace")
    new_code: str = Field(description="New code to insert")
    reason: str = Field(min_length=1, description="Why this change is being made")


class UpgradeSelfTool(BaseTool):

    name = "upgrade_self"
    description = (
        "Modify one of the agent's own artifacts (config, prompt, tools) to add a "
        "feature or fix a bug. old_code must match exactly. A backup is written "
        "first. BE CAREFUL."
    )

    def __init__(
        self,
        artifacts: dict[str, Path],
        upgrades: UpgradeLog,
        runtime_config: RuntimeConfigService,
    ):
        self._artifacts = artifacts
        self._upgrades = upgrades
        self._runtime_config = runtime_config

    def get_schema(self) -> type[BaseModel]:
        return UpgradeSelfInput

    async def execute(
        self,
        ctx: SessionContext,
        file: str = "",
        old_code: str = "",
        new_code: str = "",
        reason: str = "",
        **kwargs,
    ) -> ToolResult:
        config = await self._runtime_config.get()
        if not config.auto_upgrade:
            raise SelfModificationRefused("Self-upgrade is disabled in the runtime config")

        path = self._artifacts.get(file)
        if path is None:
            return ToolResult(output=_unknown(file, self._artifacts))

        content = path.read_text(encoding="utf-8")
        if old_code not in content:
            return ToolResult(output=(
                "Error: Could not find exact code to replace. "
                "Check whitespace and formatting."
            ))
        updated = content.replace(old_code, new_code, 1)
        if not updated.strip():
            raise SelfModificationRefused(f"Upgrade would leave {file} empty")

        backup = path.with_name(path.name + BACKUP_SUFFIX)
        shutil.copyfile(path, backup)
        path.write_text(updated, encoding="utf-8")

        await self._upgrades.record(file, reason)
        await ctx.record_action("upgraded_self", path=str(path))
        logger.warning("Self-upgrade applied to %s: %s", path, reason)
        return ToolResult(output=(
            f"Successfully upgraded {file}. Backup saved to {backup.name}. "
            "Restart to apply changes."
        ))
