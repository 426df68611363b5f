"""Built-in tools: filesystem, shell, memory, web and self-modification safety."""

import asyncio
import json
import sys

import pytest

from agent.tools.filesystem import EditFileTool, ListDirTool, ReadFileTool, WriteFileTool
from agent.tools.introspection import GetContextTool, SetUserInfoTool
from agent.tools.memory_tools import RecallTool, RememberTool, SearchMemoryTool
from agent.tools.registry import ToolRegistry
from agent.tools.safety import SelfModificationGuard
from agent.tools.self_upgrade import ReadSelfTool, UpgradeSelfTool
from agent.tools.shell import RunCommandTool, created_directory
from agent.tools.skills import AddSkillTool
from agent.tools.web import extract_snippets
from application.services.memory_store import MemoryStore
from application.services.profile import ProfileService
from application.services.runtime_config import RuntimeConfigService
from application.services.skills import SkillLibrary
from application.services.upgrade_log import UpgradeLog
from domain.exceptions import SelfModificationRefused
from domain.models import RuntimeConfig


@pytest.fixture
def install_root(tmp_path):
    root = tmp_path / "agent-install"
    root.mkdir()
    return root


@pytest.fixture
def workdir(tmp_path):
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def guard(install_root):
    return SelfModificationGuard(install_root)


# ── Self-modification guard ──


class TestGuard:

    def test_blocks_recursive_delete_of_install_root(self, guard, install_root):
        assert guard.command_refusal(f"rm -rf {install_root}") == (
            "BLOCKED: Cannot delete the agent installation. Delete specific files instead."
        )

    def test_blocks_delete_by_directory_name(self, guard):
        assert guard.command_refusal("Remove-Item -Recurse agent-install") is not None

    def test_blocks_rmtree(self, guard, install_root):
        command = f"python -c \"import shutil; shutil.rmtree('{install_root}')\""
        assert guard.command_refusal(command) is not None

    def test_allows_other_deletes(self, guard):
        assert guard.command_refusal("rm notes.txt") is None
        assert guard.command_refusal("rm -rf agent-install-backup") is None

    def test_allows_reads_of_install_root(self, guard, install_root):
        assert guard.command_refusal(f"ls {install_root}") is None

    @pytest.mark.parametrize("command", ["rm -rf .", "rm -rf ..", "rm -rf /", "rm -rf *"])
    def test_blocks_targets_resolving_to_root_or_ancestor(self, guard, install_root, command):
        assert guard.command_refusal(command, cwd=install_root) is not None

    def test_blocks_parent_by_absolute_path(self, guard, install_root):
        assert guard.command_refusal(f"rm -rf {install_root.parent}") is not None
        assert guard.command_refusal(f"cd /tmp; rmdir '{install_root.parent}'") is not None

    def test_allows_deletes_inside_root(self, guard, install_root):
        assert guard.command_refusal("rm -rf build", cwd=install_root) is None
        assert guard.command_refusal("rm *.log", cwd=install_root) is None
        assert guard.command_refusal("rm -rf .", cwd=install_root / "build") is None

    def test_write_to_install_root_refused(self, guard, install_root):
        with pytest.raises(SelfModificationRefused):
            guard.check_write_target(install_root)
        guard.check_write_target(install_root / "notes.txt")


# ── Filesystem ──


class TestFilesystemTools:

    async def test_write_records_created_path(self, workdir, guard, ctx):
        tool = WriteFileTool(workdir, guard)
        result = await tool.execute(ctx, path="sub/notes.txt", content="hello")
        assert result.output == "Successfully wrote 5 chars to sub/notes.txt"
        assert (workdir / "sub" / "notes.txt").read_text() == "hello"
        assert ctx.last_created_path == "sub/notes.txt"
        assert ctx.short_term.actions[-1].kind == "created_file"

    async def test_write_to_install_root_through_registry(self, workdir, guard, install_root, ctx):
        registry = ToolRegistry()
        registry.register(WriteFileTool(workdir, guard))
        result = await registry.execute(
            "write_file", {"path": str(install_root), "content": "x"}, ctx,
        )
        assert result == "Error: BLOCKED: Cannot overwrite the agent installation directory."

    async def test_read_missing_file(self, workdir, ctx):
        result = await ReadFileTool(workdir).execute(ctx, path="missing.txt")
        assert result.output.startswith("Error: Could not read missing.txt")

    async def test_edit_replaces_first_occurrence(self, workdir, guard, ctx):
        (workdir / "a.txt").write_text("one two one")
        result = await EditFileTool(workdir, guard).execute(
            ctx, path="a.txt", old_text="one", new_text="three",
        )
        assert result.output == "Successfully edited a.txt"
        assert (workdir / "a.txt").read_text() == "three two one"

    async def test_edit_without_match(self, workdir, guard, ctx):
        (workdir / "a.txt").write_text("content")
        result = await EditFileTool(workdir, guard).execute(
            ctx, path="a.txt", old_text="absent", new_text="x",
        )
        assert result.output.startswith("Error: Could not find exact text")

    async def test_list_dir(self, workdir, ctx):
        (workdir / "folder").mkdir()
        (workdir / "file.txt").write_text("")
        result = await ListDirTool(workdir).execute(ctx, path=".")
        assert result.output == "[FILE] file.txt\n[DIR] folder"

    async def test_list_empty_dir(self, workdir, ctx):
        result = await ListDirTool(workdir).execute(ctx)
        assert result.output == "(empty directory)"


# ── Shell ──


class TestShell:

    def test_created_directory(self):
        assert created_directory("mkdir -p projects/demo && cd projects/demo") == "projects/demo"
        assert created_directory("ls -la") is None

    async def test_blocked_command_never_runs(self, workdir, guard, install_root, ctx):
        registry = ToolRegistry()
        registry.register(RunCommandTool(workdir, guard))
        result = await registry.execute("run_command", {"command": f"rm -rf {install_root}"}, ctx)
        assert result.startswith("Error: BLOCKED")
        assert install_root.exists()

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell")
    async def test_runs_in_workspace(self, workdir, guard, ctx):
        result = await RunCommandTool(workdir, guard).execute(ctx, command="mkdir demo && echo ok")
        assert result.output == "ok"
        assert (workdir / "demo").is_dir()
        assert ctx.last_created_path == "demo"

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell")
    async def test_silent_failure(self, workdir, guard, ctx):
        result = await RunCommandTool(workdir, guard).execute(ctx, command="exit 3")
        assert result.output == "Error: Command exited with status 3"
        assert ctx.errors

    async def test_delete_of_root_workspace_refused(self, guard, install_root, ctx):
        registry = ToolRegistry()
        registry.register(RunCommandTool(install_root, guard))
        result = await registry.execute("run_command", {"command": "rm -rf ."}, ctx)
        assert result.startswith("Error: BLOCKED")
        result = await registry.execute("run_command", {"command": "rm -rf *", "cwd": "."}, ctx)
        assert result.startswith("Error: BLOCKED")
        assert install_root.exists()

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX process groups")
    async def test_own_timeout_kills_the_command(self, workdir, guard, ctx):
        tool = RunCommandTool(workdir, guard, timeout_seconds=0.3)
        result = await tool.execute(ctx, command="sleep 1; touch marker")
        assert result.output == "Error: Command timed out after 0.3s"
        await asyncio.sleep(1.5)
        assert not (workdir / "marker").exists()

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX process groups")
    async def test_registry_deadline_kills_the_command(self, workdir, guard, ctx):
        registry = ToolRegistry(timeout_seconds=0.3)
        registry.register(RunCommandTool(workdir, guard, timeout_seconds=5))
        result = await registry.execute(
            "run_command", {"command": "sleep 1 && touch marker & sleep 5"}, ctx,
        )
        assert result == "Error: run_command timed out after 0.3s"
        await asyncio.sleep(1.5)
        assert not (workdir / "marker").exists()


# ── Memory and introspection ──


class TestMemoryTools:

    async def test_remember_then_recall(self, store, ctx):
        memory = MemoryStore(store)
        stored = await RememberTool(memory).execute(ctx, key="editor", value="vim")
        assert stored.output == 'Stored "editor" in memory'
        recalled = await RecallTool(memory).execute(ctx, key="editor")
        assert recalled.output == "vim"

    async def test_search_memory(self, store, ctx):
        memory = MemoryStore(store)
        tool = SearchMemoryTool(memory)
        assert (await tool.execute(ctx, query="kubernetes")).output == "No matching memories found"
        await memory.add_to_archive("Deployed the kubernetes cluster")
        result = await tool.execute(ctx, query="kubernetes")
        assert result.output == "- [conversation] Deployed the kubernetes cluster"

    async def test_get_context(self, ctx):
        await ctx.record_created_path("notes.txt")
        result = await GetContextTool().execute(ctx)
        payload = json.loads(result.output)
        assert payload["lastCreatedPath"] == "notes.txt"

    async def test_set_user_info(self, store, ctx):
        profiles = ProfileService(store)
        result = await SetUserInfoTool(profiles).execute(
            ctx, name="Robin", preference="editor=vim",
        )
        assert result.output == "Updated user profile"
        profile = await profiles.profile()
        assert profile.display_name == "Robin"
        assert profile.preferences == {"editor": "vim"}


# ── Self-upgrade ──


class TestSelfUpgrade:

    @pytest.fixture
    def artifact(self, tmp_path):
        path = tmp_path / "config.py"
        path.write_text("MAX = 1\n")
        return path

    @pytest.fixture
    def upgrades(self, store):
        return UpgradeLog(store)

    def _tool(self, store, artifact, upgrades, auto_upgrade=True):
        runtime = RuntimeConfigService(store, RuntimeConfig(auto_upgrade=auto_upgrade))
        return UpgradeSelfTool({"config": artifact}, upgrades, runtime)

    async def test_read_self(self, artifact, ctx):
        result = await ReadSelfTool({"config": artifact}).execute(ctx, file="config")
        assert result.output == "MAX = 1\n"

    async def test_upgrade_writes_backup_and_logs(self, store, artifact, upgrades, ctx):
        tool = self._tool(store, artifact, upgrades)
        result = await tool.execute(
            ctx, file="config", old_code="MAX = 1", new_code="MAX = 2", reason="raise limit",
        )
        assert result.output.startswith("Successfully upgraded config")
        assert artifact.read_text() == "MAX = 2\n"
        assert (artifact.parent / "config.py.backup").read_text() == "MAX = 1\n"
        entries = await upgrades.entries()
        assert len(entries) == 1
        assert entries[0]["file"] == "config"
        assert entries[0]["reason"] == "raise limit"

    async def test_mismatch_changes_nothing(self, store, artifact, upgrades, ctx):
        tool = self._tool(store, artifact, upgrades)
        result = await tool.execute(
            ctx, file="config", old_code="MAX = 3", new_code="MAX = 4", reason="r",
        )
        assert result.output.startswith("Error: Could not find exact code")
        assert artifact.read_text() == "MAX = 1\n"
        assert not (artifact.parent / "config.py.backup").exists()
        assert await upgrades.entries() == []

    async def test_empty_result_refused(self, store, artifact, upgrades, ctx):
        registry = ToolRegistry()
        registry.register(self._tool(store, artifact, upgrades))
        result = await registry.execute(
            "upgrade_self",
            {"file": "config", "old_code": "MAX = 1\n", "new_code": "", "reason": "wipe"},
            ctx,
        )
        assert result == "Error: Upgrade would leave config empty"
        assert artifact.read_text() == "MAX = 1\n"

    async def test_unknown_artifact(self, store, artifact, upgrades, ctx):
        tool = self._tool(store, artifact, upgrades)
        result = await tool.execute(ctx, file="server", old_code="a", new_code="b", reason="r")
        assert result.output.startswith("Error: Unknown file 'server'")

    async def test_disabled_by_runtime_config(self, store, artifact, upgrades, ctx):
        tool = self._tool(store, artifact, upgrades, auto_upgrade=False)
        with pytest.raises(SelfModificationRefused):
            await tool.execute(ctx, file="config", old_code="MAX = 1", new_code="MAX = 2", reason="r")
        assert artifact.read_text() == "MAX = 1\n"


# ── Skills ──


class TestSkills:

    async def test_add_skill_persists(self, store, ctx):
        library = SkillLibrary(store)
        result = await AddSkillTool(library).execute(
            ctx, name="greet", description="Say hello", code="print('hi')",
        )
        assert result.output.startswith("Added skill: greet.")
        skills = await library.installed()
        assert len(skills) == 1
        assert skills[0]["description"] == "Say hello"
        assert isinstance(skills[0]["added"], int)
        assert ctx.short_term.actions[-1].kind == "added_skill"

    async def test_same_name_replaces(self, store, ctx):
        library = SkillLibrary(store)
        tool = AddSkillTool(library)
        await tool.execute(ctx, name="greet", description="v1", code="a")
        await tool.execute(ctx, name="other", description="x", code="b")
        await tool.execute(ctx, name="greet", description="v2", code="c")
        assert [(s["name"], s["description"]) for s in await library.installed()] == [
            ("other", "x"), ("greet", "v2"),
        ]

    async def test_empty_name_rejected(self, store, ctx):
        registry = ToolRegistry()
        registry.register(AddSkillTool(SkillLibrary(store)))
        result = await registry.execute(
            "add_skill", {"name": "", "description": "d", "code": "c"}, ctx,
        )
        assert result.startswith("Error: Invalid arguments for add_skill")
        assert await SkillLibrary(store).installed() == []


# ── Web ──


class TestWebSearch:

    def test_extract_snippets(self):
        page = (
            '<a class="result__snippet" href="/1">Python <b>3.13</b> &amp; more</a>'
            '<a class="result__snippet" href="/2">  second\n result </a>'
            '<a class="result__snippet" href="/3"></a>'
        )
        assert extract_snippets(page) == ["Python 3.13 & more", "second result"]

    def test_snippet_limit(self):
        page = '<a class="result__snippet">hit</a>' * 8
        assert len(extract_snippets(page)) == 5
