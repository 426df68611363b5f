"""
Run the agent runtime REST API.

Usage:
    python run_api.py

Environment variables (all optional):
    API_HOST             Bind address (default: 127.0.0.1)
    API_PORT             Port (default: 8787)
    LLM_PROVIDER         "openrouter", "openai", "groq" or "ollama" (default: openrouter)
    OPENROUTER_API_KEY   Required when LLM_PROVIDER=openrouter
    DB_PATH              SQLite database file path (default: agent_state.db)
    LOG_LEVEL            Logging level (default: INFO)
"""

import logging
import os
import sys
from pathlib import Path

# Ensure src/ is importable
sys.path.insert(0, str(Path(__file__).parent / "src"))

import uvicorn

if __name__ == "__main__":
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "adapters.rest.app:app",
        host=os.getenv("API_HOST", "127.0.0.1"),
        port=int(os.getenv("API_PORT", "8787")),
    )
