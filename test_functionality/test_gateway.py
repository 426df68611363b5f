"""LangChain gateway: tool-call mapping, usage and failure translation."""

from typing import Any

import pytest
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, HumanMessage
from langchain_core.outputs import ChatGeneration, ChatResult
from pydantic import Field

from domain.exceptions import GatewayError
from infrastructure.llm.gateway import (
    LangChainModelGateway,
    estimate_cost,
    resolve_model,
    to_gateway_response,
)


class ScriptedChatModel(BaseChatModel):
    """Chat model that returns queued AIMessages (or raises queued errors)."""

    responses: list[Any] = Field(default_factory=list)
    bound_tools: list[Any] = Field(default_factory=list)

    @property
    def _llm_type(self) -> str:
        return "scripted"

    def bind_tools(self, tools, **kwargs):
        self.bound_tools = list(tools)
        return self

    def _generate(self, messages, stop=None, run_manager=None, **kwargs) -> ChatResult:
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return ChatResult(generations=[ChatGeneration(message=item)])


TOOLS = [{"type": "function", "function": {"name": "read_file", "parameters": {}}}]


class TestGateway:

    async def test_plain_reply(self):
        model = ScriptedChatModel(responses=[AIMessage(content="hello there")])
        gateway = LangChainModelGateway(lambda name: model)
        response = await gateway.complete([HumanMessage(content="hi")], TOOLS, "openai/gpt-4o")
        assert response.content == "hello there"
        assert not response.wants_tools
        assert response.model == "openai/gpt-4o"
        assert model.bound_tools == TOOLS

    async def test_tool_calls_and_unparseable_arguments(self):
        message = AIMessage(
            content="",
            tool_calls=[{"name": "read_file", "args": {"path": "a.txt"}, "id": "c1"}],
            invalid_tool_calls=[{
                "name": "write_file", "args": "{broken", "id": "c2", "error": None,
            }],
        )
        model = ScriptedChatModel(responses=[message])
        gateway = LangChainModelGateway(lambda name: model)
        response = await gateway.complete([HumanMessage(content="go")], TOOLS, "m")

        assert response.wants_tools
        first, second = response.tool_calls
        assert (first.id, first.name, first.arguments) == ("c1", "read_file", {"path": "a.txt"})
        assert (second.id, second.name, second.arguments) == ("c2", "write_file", None)
        assert second.raw_arguments == "{broken"

    async def test_backend_error_becomes_gateway_error(self):
        model = ScriptedChatModel(responses=[ConnectionError("refused")])
        gateway = LangChainModelGateway(lambda name: model)
        with pytest.raises(GatewayError, match="refused"):
            await gateway.complete([HumanMessage(content="hi")], TOOLS, "m")

    async def test_model_factory_error_becomes_gateway_error(self):
        def factory(name):
            raise ValueError("OPENROUTER_API_KEY is not set")

        gateway = LangChainModelGateway(factory)
        with pytest.raises(GatewayError, match="OPENROUTER_API_KEY"):
            await gateway.complete([HumanMessage(content="hi")], [], "m")

    async def test_models_are_cached(self):
        built = []

        def factory(name):
            built.append(name)
            return ScriptedChatModel(responses=[AIMessage(content="a"), AIMessage(content="b")])

        gateway = LangChainModelGateway(factory)
        await gateway.complete([HumanMessage(content="1")], [], "m")
        await gateway.complete([HumanMessage(content="2")], [], "m")
        assert built == ["m"]


class TestResponseMapping:

    def test_usage_and_cost(self):
        message = AIMessage(
            content="ok",
            usage_metadata={"input_tokens": 1000, "output_tokens": 500, "total_tokens": 1500},
        )
        response = to_gateway_response(message, "openai/gpt-4o-mini")
        assert response.usage.prompt_tokens == 1000
        assert response.usage.total_tokens == 1500
        assert response.cost == pytest.approx(estimate_cost("openai/gpt-4o-mini", 1000, 500))

    def test_content_blocks_keep_text(self):
        message = AIMessage(content=[
            {"type": "text", "text": "Hello "},
            {"type": "image_url", "image_url": {"url": "x"}},
            {"type": "text", "text": "world"},
        ])
        assert to_gateway_response(message, "m").content == "Hello world"

    def test_unknown_model_uses_default_rate(self):
        assert estimate_cost("some/new-model", 1_000_000, 0) == pytest.approx(0.5)

    def test_aliases(self):
        assert resolve_model("code") == "openai/gpt-4o"
        assert resolve_model(" anthropic/claude-3-haiku ") == "anthropic/claude-3-haiku"
