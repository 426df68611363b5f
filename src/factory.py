"""
factory - Composition root for the agent runtime.

ALL dependency wiring happens here. No other module constructs its own
dependencies. Adapters (CLI, REST) call this factory to get fully
configured services, sessions and agents.

Usage:
    from factory import ServiceFactory
    from infrastructure.config import Settings

    config = Settings.from_env()
    factory = ServiceFactory(config)
    await factory.initialize()  # one-time startup

    ctx = factory.create_session()
    agent = factory.create_agent()
    result = await agent.run(ctx, user_input)
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Optional

from domain.models import RuntimeConfig
from domain.ports import ModelGatewayPort
from infrastructure.config import Settings
from infrastructure.llm.gateway import LangChainModelGateway
from infrastructure.llm.llm_builder import build_chat_model
from infrastructure.persistence.connection import AsyncSQLiteConnection
from infrastructure.persistence.document_store import SQLiteDocumentStore
from infrastructure.persistence.migrations import run_migrations
from application.context import SessionContext
from application.services.automation import AutomationService
from application.services.chat_history import ConversationHistoryService
from application.services.memory_store import MemoryStore, ShortTermContext
from application.services.mood import MoodTracker
from application.services.profile import ProfileService
from application.services.runtime_config import RuntimeConfigService
from application.services.skills import SkillLibrary
from application.services.upgrade_log import UpgradeLog
from agent.executor import AgentExecutor
from agent.tools.filesystem import EditFileTool, ListDirTool, ReadFileTool, WriteFileTool
from agent.tools.introspection import GetContextTool, GetSelfAwarenessTool, SetUserInfoTool
from agent.tools.memory_tools import RecallTool, RememberTool, SearchMemoryTool
from agent.tools.registry import ToolRegistry
from agent.tools.safety import SelfModificationGuard
from agent.tools.self_upgrade import ReadSelfTool, UpgradeSelfTool, default_artifacts
from agent.tools.skills import AddSkillTool
from agent.tools.shell import RunCommandTool
from agent.tools.web import HttpRequestTool, OpenBrowserTool, WebSearchTool

logger = logging.getLogger(__name__)

# The shell tool enforces its own deadline and kills its process group;
# the registry deadline sits behind it.
REGISTRY_TIMEOUT_MARGIN = 5.0


class ServiceFactory:
    """Composition root: wires all dependencies together.

    Every store-backed service is a process-wide singleton so its
    asyncio.Lock really serialises all read-modify-write on that store.
    Call initialize() once at startup, then create sessions/agents as needed.
    """

    def __init__(self, config: Settings, gateway: Optional[ModelGatewayPort] = None):
        self._config = config
        self._connection = AsyncSQLiteConnection(config.db_path)
        self._store = SQLiteDocumentStore(self._connection)

        self.memory = MemoryStore(
            self._store,
            archive_cap=config.archive_cap,
            archive_block_size=config.archive_block_size,
        )
        self.mood = MoodTracker(self._store)
        self.profiles = ProfileService(self._store)
        self.history = ConversationHistoryService(self._store, limit=config.history_limit)
        self.runtime_config = RuntimeConfigService(
            self._store,
            defaults=RuntimeConfig(
                default_model=config.default_model,
                max_iterations=config.max_iterations,
                auto_upgrade=config.auto_upgrade,
            ),
        )
        self.upgrades = UpgradeLog(self._store)
        self.skills = SkillLibrary(self._store)

        self._gateway = gateway
        self._registry: Optional[ToolRegistry] = None
        self._automation: Optional[AutomationService] = None
        self._initialized = False

    @property
    def config(self) -> Settings:
        return self._config

    async def initialize(self) -> None:
        """One-time startup: run migrations, count the new conversation.

        Must be called before creating agents.
        """
        logger.info("Initializing ServiceFactory...")

        await run_migrations(self._connection)
        logger.info("Database migrations complete")

        await self.mood.mark_session_start()

        if not self._config.api_key_configured:
            logger.warning(
                "No API key configured for provider '%s'; model calls will fail",
                self._config.llm_provider,
            )

        self._initialized = True
        logger.info("ServiceFactory ready")

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(self, conversation_id: Optional[str] = None) -> SessionContext:
        """A fresh per-conversation context whose evictions land in memory."""
        short_term = ShortTermContext(
            cap=self._config.short_term_cap,
            on_evict=self.memory.record_session_summary,
        )
        if conversation_id:
            return SessionContext(conversation_id=conversation_id, short_term=short_term)
        return SessionContext(short_term=short_term)

    # ------------------------------------------------------------------
    # Service creation
    # ------------------------------------------------------------------

    def create_gateway(self) -> ModelGatewayPort:
        """The model gateway; built lazily so a missing key fails per call."""
        if self._gateway is None:
            self._gateway = LangChainModelGateway(partial(_chat_model_for, self._config))
        return self._gateway

    def create_tool_registry(self) -> ToolRegistry:
        """The tool registry with every built-in tool registered (one per process)."""
        if self._registry is not None:
            return self._registry

        cfg = self._config
        workdir = cfg.workspace_dir
        guard = SelfModificationGuard(cfg.install_root)
        artifacts = default_artifacts(cfg.install_root)

        registry = ToolRegistry(
            timeout_seconds=cfg.tool_timeout_seconds + REGISTRY_TIMEOUT_MARGIN,
            output_limit=cfg.tool_output_limit,
        )
        registry.register(RunCommandTool(
            workdir, guard,
            timeout_seconds=cfg.tool_timeout_seconds,
            output_limit=cfg.tool_output_limit,
        ))
        registry.register(ReadFileTool(workdir))
        registry.register(WriteFileTool(workdir, guard))
        registry.register(EditFileTool(workdir, guard))
        registry.register(ListDirTool(workdir))
        registry.register(RememberTool(self.memory))
        registry.register(RecallTool(self.memory))
        registry.register(SearchMemoryTool(self.memory))
        registry.register(WebSearchTool())
        registry.register(HttpRequestTool(output_limit=cfg.http_output_limit))
        registry.register(OpenBrowserTool())
        registry.register(ReadSelfTool(artifacts))
        registry.register(UpgradeSelfTool(artifacts, self.upgrades, self.runtime_config))
        registry.register(AddSkillTool(self.skills))
        registry.register(GetContextTool())
        registry.register(GetSelfAwarenessTool(self.mood, self.profiles))
        registry.register(SetUserInfoTool(self.profiles))

        logger.info("Registered %d tools", len(registry.names()))
        self._registry = registry
        return registry

    def create_automation_service(self) -> AutomationService:
        if self._automation is None:
            self._automation = AutomationService(self._store, self.create_tool_registry())
        return self._automation

    # ------------------------------------------------------------------
    # Agent creation
    # ------------------------------------------------------------------

    def create_agent(self) -> AgentExecutor:
        """Create a fully configured AgentExecutor.

        The executor holds no per-conversation state; pass a SessionContext
        from create_session() to each run().
        """
        self._ensure_initialized()
        return AgentExecutor(
            gateway=self.create_gateway(),
            tools=self.create_tool_registry(),
            memory=self.memory,
            mood=self.mood,
            profiles=self.profiles,
            history=self.history,
            runtime_config=self.runtime_config,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError(
                "ServiceFactory not initialized. Call await factory.initialize() first."
            )


def _chat_model_for(cfg: Settings, model: str):
    return build_chat_model(
        provider=cfg.llm_provider,
        model=model,
        temperature=cfg.temperature,
        max_tokens=cfg.max_tokens,
        openrouter_api_key=cfg.openrouter_api_key,
        openrouter_base_url=cfg.openrouter_base_url,
        openai_api_key=cfg.openai_api_key,
        groq_api_key=cfg.groq_api_key,
        ollama_base_url=cfg.ollama_base_url,
    )
