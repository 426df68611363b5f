"""
Run the agent runtime CLI.

Usage:
    python run_cli.py [COMMAND] [OPTIONS]

Commands:
    ask        One-shot request to the agent
    chat       Interactive session
    status     Model, API key, memory/history sizes, mood
    memory     Show the persistent key/value memory
    model      Show or switch the default model
    upgrades   Show the self-upgrade log
    clear      Clear the conversation history

Examples:
    python run_cli.py ask "create a file notes.txt with hello"
    python run_cli.py model code
    python run_cli.py chat

Environment variables (all optional):
    LLM_PROVIDER         "openrouter", "openai", "groq" or "ollama" (default: openrouter)
    DEFAULT_MODEL        Model id used when none is persisted (default: openai/gpt-4o-mini)
    OPENROUTER_API_KEY   Required when LLM_PROVIDER=openrouter
    OPENAI_API_KEY       Required when LLM_PROVIDER=openai
    GROQ_API_KEY         Required when LLM_PROVIDER=groq
    OLLAMA_BASE_URL      Ollama server URL (default: http://localhost:11434/)
    DB_PATH              SQLite database file path (default: agent_state.db)
    AGENT_WORKSPACE      Base directory for relative tool paths (default: cwd)
    AGENT_INSTALL_ROOT   Installation directory protected from deletion
    LOG_LEVEL            Logging level (default: WARNING)
"""

import logging
import os
import sys
from pathlib import Path

# Ensure src/ is importable
sys.path.insert(0, str(Path(__file__).parent / "src"))

from adapters.cli.main import app

if __name__ == "__main__":
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app()
