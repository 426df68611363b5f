"""
agent.tools.safety - Self-modification guard.

Refuses shell commands that would delete the agent's own installation and
file writes that target the installation root directory itself. Individual
files inside the installation can still be edited through upgrade_self,
which has its own allow-list.

A delete is refused when one of its targets, resolved against the command's
working directory, is the installation root or a directory containing it.
Commands that mention the root by absolute path or directory name next to a
delete verb are refused as well.
"""

from __future__ import annotations

import logging
import os
import re
import shlex
from pathlib import Path
from typing import Iterator, Optional, Union

from domain.exceptions import SelfModificationRefused

logger = logging.getLogger(__name__)

DELETE_VERBS = ("rm", "rmdir", "del", "rd", "remove-item", "shutil.rmtree")

DELETE_REFUSAL = (
    "BLOCKED: Cannot delete the agent installation. Delete specific files instead."
)

_DELETE_RE = re.compile(
    r"(?<![\w.-])(" + "|".join(re.escape(v) for v in DELETE_VERBS) + r")(?![\w-])",
    re.IGNORECASE,
)
_RMTREE_ARG_RE = re.compile(r"rmtree\(\s*[rbu]?[\"']([^\"']+)[\"']", re.IGNORECASE)
_SEPARATORS = frozenset({";", "&&", "||", "|", "&"})


def _tokens(command: str) -> list[str]:
    try:
        return shlex.split(command, posix=(os.name != "nt"))
    except ValueError:
        return command.split()


def delete_targets(command: str) -> Iterator[str]:
    """Path arguments of every delete verb in the command, flags skipped."""
    deleting = False
    for token in _tokens(command):
        if token in _SEPARATORS:
            deleting = False
            continue
        bare = token.rstrip(";&|")
        if Path(bare).name.lower() in DELETE_VERBS:
            deleting = True
        elif deleting and bare and not bare.startswith("-") and not _is_dos_switch(bare):
            yield bare
        if bare != token:
            deleting = False

    for match in _RMTREE_ARG_RE.finditer(command):
        yield match.group(1)


def _is_dos_switch(token: str) -> bool:
    # rd /s /q, del /f
    return os.name == "nt" and len(token) == 2 and token.startswith("/")


class SelfModificationGuard:
    """Knows the installation root and vets commands and write targets."""

    def __init__(self, install_root: Path):
        self._root = Path(install_root).resolve()

    @property
    def install_root(self) -> Path:
        return self._root

    def _covers_root(self, path: Path) -> bool:
        return path == self._root or path in self._root.parents

    def _target_covers_root(self, target: str, cwd: Path) -> bool:
        path = cwd / Path(target).expanduser()
        if path.name and not path.name.strip("*"):
            # a bare wildcard empties its directory
            path = path.parent
        return self._covers_root(Path(os.path.normpath(path)).resolve())

    def command_refusal(
        self,
        command: str,
        cwd: Optional[Union[str, Path]] = None,
    ) -> Optional[str]:
        """Reason the command is refused, or None when it may run.

        Relative delete targets resolve against cwd (default: the process
        working directory).
        """
        if not _DELETE_RE.search(command):
            return None

        lower = command.lower()
        root_path = str(self._root).lower()
        root_name = self._root.name.lower()
        if root_path in lower or (root_name and re.search(
            r"(?<![\w.-])" + re.escape(root_name) + r"(?![\w.-])", lower,
        )):
            return DELETE_REFUSAL

        base = Path(cwd) if cwd is not None else Path.cwd()
        for target in delete_targets(command):
            if self._target_covers_root(target, base):
                return DELETE_REFUSAL
        return None

    def check_command(self, command: str, cwd: Optional[Union[str, Path]] = None) -> None:
        reason = self.command_refusal(command, cwd)
        if reason:
            logger.warning("Refused command: %s", command)
            raise SelfModificationRefused(reason)

    def check_write_target(self, path: Path) -> None:
        """Refuse writes whose target is the installation root directory itself."""
        if Path(path).resolve() == self._root:
            logger.warning("Refused write to installation root: %s", path)
            raise SelfModificationRefused(
                "BLOCKED: Cannot overwrite the agent installation directory."
            )
