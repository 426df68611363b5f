"""
agent.tools.introspection - Session context, self-awareness and user info.
"""

from __future__ import annotations

import json
from typing import Optional

from pydantic import BaseModel, Field

from application.context import SessionContext
from application.services.mood import MoodTracker, relationship_tier
from application.services.profile import ProfileService
from agent.tools.base import BaseTool, ToolResult


class EmptyInput(BaseModel):
    """No arguments."""


class GetContextTool(BaseTool):

    name = "get_context"
    description = (
        "Get the current session context: recent actions, last created path, "
        "recent errors, uptime and token usage."
    )

    def get_schema(self) -> type[BaseModel]:
        return EmptyInput

    async def execute(self, ctx: SessionContext, **kwargs) -> ToolResult:
        return ToolResult(output=json.dumps({
            "lastCreatedPath": ctx.last_created_path,
            "recentActions": [a.to_dict() for a in ctx.short_term.recent(10)],
            "recentErrors": ctx.errors[-5:],
            "uptime": f"{ctx.uptime_seconds}s",
            "tokensUsed": ctx.total_tokens,
            "cost": f"${ctx.total_cost:.4f}",
        }, indent=2))


class GetSelfAwarenessTool(BaseTool):

    name = "get_self_awareness"
    description = (
        "Get the agent's self-awareness state: mood, energy, stats, favourite "
        "activities and relationship with the user."
    )

    def __init__(self, mood: MoodTracker, profiles: ProfileService):
        self._mood = mood
        self._profiles = profiles

    def get_schema(self) -> type[BaseModel]:
        return EmptyInput

    async def execute(self, ctx: SessionContext, **kwargs) -> ToolResult:
        state = await self._mood.state()
        profile = await self._profiles.profile()
        payload = state.to_dict()
        payload["userRelationship"] = {
            "interactions": profile.total_interactions,
            "tier": relationship_tier(profile.total_interactions).value,
            "firstMet": profile.relationship.get("firstInteraction"),
            "userName": profile.display_name,
        }
        return ToolResult(output=json.dumps(payload, indent=2))


class SetUserInfoInput(BaseModel):
    name: Optional[str] = Field(default=None, description="User's name")
    preferred_name: Optional[str] = Field(default=None, description="What to call them")
    timezone: Optional[str] = Field(default=None, description="User's timezone")
    preference: Optional[str] = Field(
        default=None,
        description="A preference to remember, in key=value format",
    )


class SetUserInfoTool(BaseTool):

    name = "set_user_info"
    description = "Store information about the user (name, preferred name, preferences)."

    def __init__(self, profiles: ProfileService):
        self._profiles = profiles

    def get_schema(self) -> type[BaseModel]:
        return SetUserInfoInput

    async def execute(
        self,
        ctx: SessionContext,
        name: Optional[str] = None,
        preferred_name: Optional[str] = None,
        timezone: Optional[str] = None,
        preference: Optional[str] = None,
        **kwargs,
    ) -> ToolResult:
        key = value = None
        if preference:
            key, sep, value = (part.strip() for part in preference.partition("="))
            if not sep or not key or not value:
                return ToolResult(output="Error: preference must be in key=value format")

        await self._profiles.set_user_info(
            name=name,
            preferred_name=preferred_name,
            timezone=timezone,
            preference_key=key,
            preference_value=value,
        )
        return ToolResult(output="Updated user profile")
