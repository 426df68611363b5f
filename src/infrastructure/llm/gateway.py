"""
infrastructure.llm.gateway - Model gateway over LangChain chat models.

Sends the transcript plus the live tool catalog to the backend and maps the
reply into a GatewayResponse. Every failure (missing credentials, transport,
malformed reply) surfaces as GatewayError; nothing is retried here.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage

from domain.exceptions import GatewayError
from domain.models import GatewayResponse, TokenUsage, ToolCallRequest

logger = logging.getLogger(__name__)

# USD per 1M tokens (approximate)
MODEL_COSTS: dict[str, dict[str, float]] = {
    "openai/gpt-4o": {"input": 2.50, "output": 10.00},
    "openai/gpt-4o-mini": {"input": 0.15, "output": 0.60},
    "anthropic/claude-3.5-sonnet": {"input": 3.00, "output": 15.00},
    "anthropic/claude-3-haiku": {"input": 0.25, "output": 1.25},
}
_DEFAULT_COST = {"input": 0.5, "output": 1.5}

# Named shortcuts accepted by the "model" command
MODEL_ALIASES: dict[str, str] = {
    "chat": "openai/gpt-4o-mini",
    "code": "openai/gpt-4o",
    "fast": "openai/gpt-4o-mini",
    "best": "anthropic/claude-3.5-sonnet",
    "default": "openai/gpt-4o-mini",
}


def estimate_cost(model: str, prompt_tokens: int, completion_tokens: int) -> float:
    costs = MODEL_COSTS.get(model, _DEFAULT_COST)
    return (prompt_tokens * costs["input"] + completion_tokens * costs["output"]) / 1_000_000


def resolve_model(name: str) -> str:
    """Map an alias ("code", "best", ...) to a model id; pass ids through."""
    return MODEL_ALIASES.get(name.strip(), name.strip())


class LangChainModelGateway:
    """ModelGatewayPort implementation backed by a LangChain chat model.

    model_factory builds a chat model for a model id; instances are cached
    so switching models at run time does not rebuild clients on every call.
    """

    def __init__(self, model_factory: Callable[[str], BaseChatModel]):
        self._model_factory = model_factory
        self._models: dict[str, BaseChatModel] = {}

    def _chat_model(self, model: str) -> BaseChatModel:
        if model not in self._models:
            self._models[model] = self._model_factory(model)
        return self._models[model]

    async def complete(
        self,
        transcript: Sequence[BaseMessage],
        tools: list[dict[str, Any]],
        model: str,
    ) -> GatewayResponse:
        try:
            llm = self._chat_model(model)
            runnable = llm.bind_tools(tools) if tools else llm
            message = await runnable.ainvoke(list(transcript))
        except Exception as exc:
            logger.error("Gateway call failed (model=%s): %s", model, exc)
            raise GatewayError(f"{type(exc).__name__}: {exc}") from exc

        if not isinstance(message, AIMessage):
            raise GatewayError(
                f"Malformed response: expected AIMessage, got {type(message).__name__}"
            )
        return to_gateway_response(message, model)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def to_gateway_response(message: AIMessage, model: str) -> GatewayResponse:
    """Translate a LangChain AIMessage into the runtime's GatewayResponse."""
    usage = _extract_usage(message)
    return GatewayResponse(
        content=_text_content(message.content),
        tool_calls=_extract_tool_calls(message),
        usage=usage,
        model=model,
        cost=estimate_cost(model, usage.prompt_tokens, usage.completion_tokens),
    )


def _text_content(content: Any) -> str:
    if isinstance(content, str):
        return content
    # Content-block lists: keep only the text parts
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def _extract_tool_calls(message: AIMessage) -> list[ToolCallRequest]:
    """Collect parsed and unparseable tool calls in the order the model sent them."""
    calls: list[ToolCallRequest] = []
    for i, tc in enumerate(message.tool_calls):
        args = tc.get("args") or {}
        calls.append(ToolCallRequest(
            id=tc.get("id") or f"call_{i}",
            name=tc.get("name", ""),
            arguments=dict(args),
            raw_arguments=json.dumps(args),
        ))
    for i, tc in enumerate(message.invalid_tool_calls):
        calls.append(ToolCallRequest(
            id=tc.get("id") or f"invalid_call_{i}",
            name=tc.get("name") or "",
            arguments=None,
            raw_arguments=tc.get("args") or "",
        ))

    # Valid and invalid calls arrive in separate lists; restore wire order
    # from the raw provider payload when it is available.
    raw = message.additional_kwargs.get("tool_calls") or []
    order = {tc.get("id"): pos for pos, tc in enumerate(raw) if isinstance(tc, dict)}
    if order:
        calls.sort(key=lambda c: order.get(c.id, len(order)))
    return calls


def _extract_usage(message: AIMessage) -> TokenUsage:
    meta = message.usage_metadata
    if meta:
        return TokenUsage(
            prompt_tokens=int(meta.get("input_tokens", 0) or 0),
            completion_tokens=int(meta.get("output_tokens", 0) or 0),
        )
    token_usage = (message.response_metadata or {}).get("token_usage") or {}
    return TokenUsage(
        prompt_tokens=int(token_usage.get("prompt_tokens", 0) or 0),
        completion_tokens=int(token_usage.get("completion_tokens", 0) or 0),
    )
