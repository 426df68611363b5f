"""Read-only views of the agent's persisted state."""

from fastapi import APIRouter, Depends, Query

from factory import ServiceFactory
from application.services.mood import mood_context, relationship_tier
from adapters.rest.dependencies import SessionRegistry, get_factory, get_sessions
from adapters.rest.schemas import MessageOut, StatusOut

router = APIRouter(prefix="/api", tags=["state"])


@router.get("/status", response_model=StatusOut)
async def status(
    factory: ServiceFactory = Depends(get_factory),
    sessions: SessionRegistry = Depends(get_sessions),
):
    config = await factory.runtime_config.get()
    mood = await factory.mood.state()
    return StatusOut(
        model=config.default_model,
        provider=factory.config.llm_provider,
        api_key_configured=factory.config.api_key_configured,
        max_iterations=config.max_iterations,
        auto_upgrade=config.auto_upgrade,
        memory_items=len(await factory.memory.keys()),
        history_messages=len(await factory.history.messages()),
        mood=mood.snapshot(),
        sessions=len(sessions),
    )


@router.get("/memory")
async def memory(factory: ServiceFactory = Depends(get_factory)):
    entries = await factory.memory.entries()
    return {key: entry.to_dict() for key, entry in entries.items()}


@router.get("/history", response_model=list[MessageOut])
async def history(
    limit: int = Query(50, ge=1, le=200),
    factory: ServiceFactory = Depends(get_factory),
):
    messages = await factory.history.recent(limit)
    return [
        MessageOut(role=m.get("role", ""), content=m.get("content", ""), time=m.get("time"))
        for m in messages
    ]


@router.get("/consciousness")
async def consciousness(factory: ServiceFactory = Depends(get_factory)):
    state = await factory.mood.state()
    profile = await factory.profiles.profile()
    payload = state.to_dict()
    payload["context"] = mood_context(state)
    payload["relationship"] = {
        "tier": relationship_tier(profile.total_interactions).value,
        "interactions": profile.total_interactions,
        "userName": profile.display_name,
    }
    return payload
