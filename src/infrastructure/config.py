"""
infrastructure.config - Typed, injectable configuration.

A frozen dataclass that can be constructed from the environment or passed
explicitly in tests. Values persisted in the runtime config document
(default model, iteration cap, auto-upgrade) override the env defaults at
run time; see application.services.runtime_config.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class Settings:
    """Centralized configuration for the agent runtime.

    All paths are absolute. No module-level globals; construct via from_env()
    or pass explicitly in tests.
    """
    project_root: Path

    # Directory the running program is installed in. Guarded against deletion
    # and the anchor for the self-upgrade allow-list.
    install_root: Path

    # Base directory for relative paths given to file and shell tools
    workspace_dir: Path = Path(".")

    # Database holding all persisted documents
    db_path: str = "agent_state.db"

    # ── LLM provider ────────────────────────────────────────────
    # Allowed: "openrouter", "openai", "groq", "ollama"
    llm_provider: str = "openrouter"
    default_model: str = "openai/gpt-4o-mini"
    temperature: float = 0.7
    max_tokens: int = 4096

    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openai_api_key: str = ""
    groq_api_key: str = ""
    ollama_base_url: str = "http://localhost:11434/"

    # ── Agent loop ──────────────────────────────────────────────
    max_iterations: int = 15
    auto_upgrade: bool = True

    # ── Tools ───────────────────────────────────────────────────
    tool_timeout_seconds: float = 120.0
    tool_output_limit: int = 100_000
    http_output_limit: int = 50_000

    # ── Memory ──────────────────────────────────────────────────
    short_term_cap: int = 100
    archive_cap: int = 500
    archive_block_size: int = 100
    history_limit: int = 200

    # ── REST ────────────────────────────────────────────────────
    max_sessions: int = 256

    @classmethod
    def from_env(cls, project_root: Optional[Path] = None) -> Settings:
        """Build Settings from the environment and standard project layout."""
        from dotenv import load_dotenv
        load_dotenv()

        root = project_root or Path(__file__).resolve().parent.parent.parent
        install_root = Path(os.getenv("AGENT_INSTALL_ROOT", str(root))).resolve()

        return cls(
            project_root=root,
            install_root=install_root,
            workspace_dir=Path(os.getenv("AGENT_WORKSPACE", os.getcwd())).resolve(),
            db_path=os.getenv("DB_PATH", str(root / "agent_state.db")),

            llm_provider=os.getenv("LLM_PROVIDER", "openrouter"),
            default_model=os.getenv("DEFAULT_MODEL", "openai/gpt-4o-mini"),
            temperature=float(os.getenv("LLM_TEMPERATURE", "0.7")),
            max_tokens=int(os.getenv("LLM_MAX_TOKENS", "4096")),
            openrouter_api_key=os.getenv("OPENROUTER_API_KEY", ""),
            openrouter_base_url=os.getenv(
                "OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1",
            ),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            groq_api_key=os.getenv("GROQ_API_KEY", ""),
            ollama_base_url=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434/"),

            max_iterations=int(os.getenv("AGENT_MAX_ITERATIONS", "15")),
            auto_upgrade=os.getenv("AGENT_AUTO_UPGRADE", "true").lower() == "true",

            tool_timeout_seconds=float(os.getenv("TOOL_TIMEOUT_SECONDS", "120")),
            tool_output_limit=int(os.getenv("TOOL_OUTPUT_LIMIT", "100000")),
            http_output_limit=int(os.getenv("HTTP_OUTPUT_LIMIT", "50000")),

            short_term_cap=int(os.getenv("SHORT_TERM_CAP", "100")),
            archive_cap=int(os.getenv("ARCHIVE_CAP", "500")),
            archive_block_size=int(os.getenv("ARCHIVE_BLOCK_SIZE", "100")),
            history_limit=int(os.getenv("HISTORY_LIMIT", "200")),

            max_sessions=int(os.getenv("MAX_SESSIONS", "256")),
        )

    @property
    def api_key_configured(self) -> bool:
        """True when the active provider has the credential it needs."""
        provider = self.llm_provider.lower()
        if provider == "openrouter":
            return bool(self.openrouter_api_key)
        if provider == "openai":
            return bool(self.openai_api_key)
        if provider == "groq":
            return bool(self.groq_api_key)
        return True
