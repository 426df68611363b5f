"""
FastAPI application: REST adapter for the agent runtime.

Usage:
    python run_api.py

Or directly:
    uvicorn adapters.rest.app:app --host 127.0.0.1 --port 8787
"""

from __future__ import annotations

import sys
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Ensure src/ is on sys.path when invoked via uvicorn directly
_src_dir = Path(__file__).resolve().parent.parent.parent
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

from infrastructure.config import Settings
from factory import ServiceFactory
from adapters.rest.dependencies import set_factory
from adapters.rest.routers import automation, chat, state

VERSION = "1.0.0"


def create_app(factory: ServiceFactory | None = None) -> FastAPI:
    """Build the app; tests pass a pre-configured factory."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        nonlocal factory
        if factory is None:
            config = Settings.from_env(project_root=_src_dir.parent)
            factory = ServiceFactory(config)
        await factory.initialize()
        set_factory(factory)
        yield
        # aiosqlite connections are per-operation

    application = FastAPI(
        title="Agent Runtime",
        version=VERSION,
        description="Tool-using agent with layered memory.",
        lifespan=lifespan,
    )

    # CORS: permissive for local use
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(chat.router)
    application.include_router(state.router)
    application.include_router(automation.router)

    @application.get("/health", tags=["health"])
    async def health():
        return {"status": "ok", "version": VERSION}

    return application


app = create_app()
