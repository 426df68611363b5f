"""
infrastructure.llm.llm_builder - Centralized chat model construction.

Single source of truth for building tool-calling chat models. The provider
is controlled by the LLM_PROVIDER environment variable.

Supported providers:
    - "openrouter" → langchain_openai.ChatOpenAI pointed at OpenRouter
    - "openai"     → langchain_openai.ChatOpenAI
    - "groq"       → langchain_groq.ChatGroq
    - "ollama"     → langchain_ollama.ChatOllama
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from langchain_core.language_models import BaseChatModel

logger = logging.getLogger(__name__)


def build_chat_model(
    *,
    provider: str,
    model: str,
    temperature: float = 0.7,
    max_tokens: Optional[int] = None,
    openrouter_api_key: str = "",
    openrouter_base_url: str = "https://openrouter.ai/api/v1",
    openai_api_key: str = "",
    groq_api_key: str = "",
    ollama_base_url: str = "http://localhost:11434/",
) -> BaseChatModel:
    """Build a chat model for the given provider.

    Args:
        provider: One of "openrouter", "openai", "groq", "ollama".
        model: Model identifier for the selected provider
               (OpenRouter ids look like "openai/gpt-4o-mini").
        temperature: Sampling temperature.
        max_tokens: Maximum completion tokens.
        openrouter_api_key: API key for OpenRouter.
        openrouter_base_url: OpenRouter's OpenAI-compatible endpoint.
        openai_api_key: API key for OpenAI.
        groq_api_key: API key for Groq.
        ollama_base_url: Ollama server URL (only used when provider="ollama").

    Returns:
        A configured LangChain chat model supporting bind_tools().

    Raises:
        ValueError: If the provider is unknown or required credentials are missing.
    """
    provider = provider.lower().strip()

    if provider in ("openrouter", "openai"):
        from langchain_openai import ChatOpenAI

        kwargs: Dict[str, Any] = {"model": model, "temperature": temperature}
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        if provider == "openrouter":
            if not openrouter_api_key:
                raise ValueError("OPENROUTER_API_KEY is required when LLM_PROVIDER='openrouter'")
            kwargs["api_key"] = openrouter_api_key
            kwargs["base_url"] = openrouter_base_url
            kwargs["default_headers"] = {"X-Title": "agent-runtime"}
        else:
            if not openai_api_key:
                raise ValueError("OPENAI_API_KEY is required when LLM_PROVIDER='openai'")
            kwargs["api_key"] = openai_api_key

        logger.info("Building %s chat model (model=%s)", provider, model)
        return ChatOpenAI(**kwargs)

    elif provider == "groq":
        from langchain_groq import ChatGroq

        if not groq_api_key:
            raise ValueError("GROQ_API_KEY is required when LLM_PROVIDER='groq'")

        logger.info("Building Groq chat model (model=%s)", model)
        return ChatGroq(
            model=model,
            temperature=temperature,
            groq_api_key=groq_api_key,
            max_tokens=max_tokens if max_tokens is not None else 512,
        )

    elif provider == "ollama":
        from langchain_ollama import ChatOllama

        logger.info("Building ChatOllama (model=%s)", model)
        return ChatOllama(
            model=model,
            temperature=temperature,
            base_url=ollama_base_url,
        )

    else:
        raise ValueError(
            f"Unsupported LLM_PROVIDER: '{provider}'. "
            "Must be 'openrouter', 'openai', 'groq', or 'ollama'."
        )
