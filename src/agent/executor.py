"""
agent.executor - Agent execution engine.

The single class that runs the model + tool loop for one request:

    Start -> gateway call -> tool calls -> gateway call -> ... -> final reply

Tool calls from one model turn run sequentially in request order, and every
result (including failures) is fed back as a tool message. The loop ends on
the first model turn without tool calls, on a gateway failure, or when the
iteration budget runs out.

No component construction, no global state. Everything per-conversation
flows through SessionContext; everything persistent goes through services.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage

from application.context import SessionContext
from application.dto import AgentOutcome, AgentResult, ToolInvocation
from application.services.chat_history import ConversationHistoryService
from application.services.memory_store import MemoryStore
from application.services.mood import MoodTracker, classify_turn
from application.services.profile import ProfileService
from application.services.runtime_config import RuntimeConfigService
from agent.prompt import build_system_prompt, format_relevant_memories
from agent.tools.registry import ToolRegistry
from domain.exceptions import GatewayError
from domain.models import GatewayResponse, is_failure, now_ms
from domain.ports import ModelGatewayPort

logger = logging.getLogger(__name__)

MAX_ITERATIONS_REPLY = "Reached maximum iterations. Task may be incomplete."
INVOCATION_RESULT_LIMIT = 2000
ARCHIVE_MESSAGE_THRESHOLD = 100


class AgentExecutor:
    """Runs the model + tool selection loop.

    Constructed by factory.py with all dependencies injected.
    Stateless per call; all state flows through SessionContext.
    """

    def __init__(
        self,
        gateway: ModelGatewayPort,
        tools: ToolRegistry,
        memory: MemoryStore,
        mood: MoodTracker,
        profiles: ProfileService,
        history: ConversationHistoryService,
        runtime_config: RuntimeConfigService,
    ):
        self._gateway = gateway
        self._tools = tools
        self._memory = memory
        self._mood = mood
        self._profiles = profiles
        self._history = history
        self._runtime_config = runtime_config

    async def _initial_transcript(self, ctx: SessionContext, message: str) -> list[Any]:
        relevant = await self._memory.search(message)
        system_prompt = build_system_prompt(
            self._tools,
            ctx,
            mood=await self._mood.state(),
            profile=await self._profiles.profile(),
            memory_keys=await self._memory.keys(),
        ) + format_relevant_memories(relevant)
        return [SystemMessage(content=system_prompt), HumanMessage(content=message)]

    async def run(
        self,
        ctx: SessionContext,
        message: str,
        model: Optional[str] = None,
    ) -> AgentResult:
        """Process one user message and return the structured result.

        Args:
            ctx:     Session context of the conversation.
            message: The user's message text.
            model:   Model id for this request only; defaults to the
                     runtime config's default model.
        """
        ctx.new_request()
        config = await self._runtime_config.get()
        use_model = model or config.default_model
        ctx.last_model = use_model

        logger.info(
            "Agent processing (conversation=%s, model=%s): %s",
            ctx.conversation_id, use_model, message[:80],
        )

        transcript = await self._initial_transcript(ctx, message)
        invocations: list[ToolInvocation] = []
        iterations = 0

        while iterations < config.max_iterations:
            iterations += 1
            logger.info("Agent iteration %d", iterations)

            try:
                response = await self._gateway.complete(
                    transcript, self._tools.to_openai_tools(), use_model,
                )
            except GatewayError as exc:
                return await self._failed(ctx, message, str(exc), invocations, iterations, use_model)
            except Exception as exc:
                logger.exception("Unexpected gateway failure")
                return await self._failed(ctx, message, str(exc), invocations, iterations, use_model)

            ctx.record_usage(response.usage, response.cost)
            transcript.append(_assistant_message(response))

            if not response.wants_tools:
                reply, outcome = response.content, AgentOutcome.COMPLETED
                break

            logger.info("Executing %d tool call(s)", len(response.tool_calls))
            for call in response.tool_calls:
                result = await self._tools.execute(call.name, call.arguments, ctx)
                transcript.append(ToolMessage(content=result, tool_call_id=call.id))
                invocations.append(ToolInvocation(
                    tool=call.name,
                    args=call.arguments,
                    result=result[:INVOCATION_RESULT_LIMIT],
                    success=not is_failure(result),
                    timestamp=now_ms(),
                ))
        else:
            logger.warning("Iteration budget (%d) exhausted", config.max_iterations)
            reply, outcome = MAX_ITERATIONS_REPLY, AgentOutcome.INCOMPLETE

        mood = await self._bookkeeping(ctx, message, reply, invocations)
        return AgentResult(
            reply=reply,
            tools_executed=invocations,
            iterations=iterations,
            model=use_model,
            outcome=outcome,
            usage=_usage(ctx),
            mood=mood,
        )

    async def _bookkeeping(
        self,
        ctx: SessionContext,
        message: str,
        reply: str,
        invocations: list[ToolInvocation],
    ) -> dict[str, Any]:
        """Commit everything a finished turn changes: profile, mood, archive, history."""
        succeeded = sum(1 for inv in invocations if inv.success)
        failed = len(invocations) - succeeded

        await self._profiles.record_message(message)
        await self._mood.record_message()
        for inv in invocations:
            if inv.success:
                await self._mood.record_tool_success(inv.tool)

        events = classify_turn(message, succeeded, failed, ctx.uptime_seconds)
        state = await self._mood.apply_many(events)

        if invocations or len(message) > ARCHIVE_MESSAGE_THRESHOLD:
            await self._memory.add_to_archive(
                f'User asked: "{message[:200]}" - Result: {succeeded} tools succeeded',
                "conversation",
            )
        await self._history.append_turn(message, reply)

        logger.info(
            "Agent finished: %d tool call(s), %d failed, mood=%s",
            len(invocations), failed, state.current,
        )
        return state.snapshot()

    async def _failed(
        self,
        ctx: SessionContext,
        message: str,
        error: str,
        invocations: list[ToolInvocation],
        iterations: int,
        model: str,
    ) -> AgentResult:
        """Gateway failure: log to the session and change nothing persistent."""
        logger.error("Agent run failed on iteration %d: %s", iterations, error)
        ctx.log_error(error, message=message)
        state = await self._mood.state()
        return AgentResult(
            reply=f"Error: {error}",
            tools_executed=invocations,
            iterations=iterations,
            model=model,
            outcome=AgentOutcome.FAILED,
            usage=_usage(ctx),
            mood=state.snapshot(),
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _assistant_message(response: GatewayResponse) -> AIMessage:
    """Rebuild the model turn for the transcript, unparseable calls included."""
    tool_calls = []
    invalid_tool_calls = []
    for call in response.tool_calls:
        if call.arguments is None:
            invalid_tool_calls.append({
                "type": "invalid_tool_call",
                "id": call.id,
                "name": call.name,
                "args": call.raw_arguments,
                "error": "Arguments are not valid JSON",
            })
        else:
            tool_calls.append({
                "type": "tool_call",
                "id": call.id,
                "name": call.name,
                "args": call.arguments,
            })
    return AIMessage(
        content=response.content,
        tool_calls=tool_calls,
        invalid_tool_calls=invalid_tool_calls,
    )


def _usage(ctx: SessionContext) -> dict[str, Any]:
    return {"total_tokens": ctx.total_tokens, "total_cost": round(ctx.total_cost, 6)}
