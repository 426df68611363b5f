"""Chat endpoint: one agent-loop run per request."""

import logging

from fastapi import APIRouter, Depends

from factory import ServiceFactory
from infrastructure.llm.gateway import resolve_model
from adapters.rest.dependencies import SessionRegistry, get_factory, get_sessions
from adapters.rest.schemas import ChatBody, ChatOut, ToolInvocationOut

router = APIRouter(prefix="/api", tags=["chat"])
logger = logging.getLogger(__name__)


@router.post("/chat", response_model=ChatOut)
async def chat(
    body: ChatBody,
    factory: ServiceFactory = Depends(get_factory),
    sessions: SessionRegistry = Depends(get_sessions),
):
    agent = factory.create_agent()
    async with sessions.exclusive(body.conversation_id) as ctx:
        logger.info("Chat conv=%s | %s", ctx.conversation_id, body.message[:200])
        result = await agent.run(
            ctx, body.message, model=resolve_model(body.model) if body.model else None,
        )
    return ChatOut(
        conversation_id=ctx.conversation_id,
        reply=result.reply,
        tools_executed=[
            ToolInvocationOut(
                tool=inv.tool,
                args=inv.args,
                result=inv.result,
                success=inv.success,
                timestamp=inv.timestamp,
            )
            for inv in result.tools_executed
        ],
        iterations=result.iterations,
        model=result.model,
        outcome=result.outcome.value,
        usage=result.usage,
        mood=result.mood,
    )
