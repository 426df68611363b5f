"""Pydantic models for REST API request/response validation."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


# --- Chat ---

class ChatBody(BaseModel):
    message: str = Field(..., min_length=1)
    model: Optional[str] = None
    conversation_id: Optional[str] = None


class ToolInvocationOut(BaseModel):
    tool: str
    args: Optional[dict[str, Any]] = None
    result: str
    success: bool
    timestamp: int


class ChatOut(BaseModel):
    conversation_id: str
    reply: str
    tools_executed: list[ToolInvocationOut]
    iterations: int
    model: str
    outcome: str
    usage: dict[str, Any]
    mood: dict[str, Any]


# --- Status ---

class StatusOut(BaseModel):
    model: str
    provider: str
    api_key_configured: bool
    max_iterations: int
    auto_upgrade: bool
    memory_items: int
    history_messages: int
    mood: dict[str, Any]
    sessions: int


class MessageOut(BaseModel):
    role: str
    content: str
    time: Optional[int] = None


# --- Automation ---

class StopBody(BaseModel):
    conversation_id: str = Field(..., min_length=1)


class RecipeStepBody(BaseModel):
    tool: str = Field(..., min_length=1)
    args: dict[str, Any] = Field(default_factory=dict)
    delay_ms: int = Field(default=500, ge=0)


class RecipeBody(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    steps: list[RecipeStepBody] = Field(default_factory=list)


class RunRecipeBody(BaseModel):
    id: str = Field(..., min_length=1)
    conversation_id: Optional[str] = None


class RecipeStepResultOut(BaseModel):
    step: str
    success: bool
    result: str


class RecipeRunOut(BaseModel):
    recipe_id: str
    stopped: bool
    results: list[RecipeStepResultOut]
