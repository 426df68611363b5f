"""
agent.tools.skills - Write a new skill into the skill library.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from application.context import SessionContext
from application.services.skills import SkillLibrary
from agent.tools.base import BaseTool, ToolResult


class AddSkillInput(BaseModel):
    name: str = Field(min_length=1, description="Skill name")
    description: str = Field(description="What the skill does")
    code: str = Field(description="Code for the skill")


class AddSkillTool(BaseTool):

    name = "add_skill"
    description = (
        "Save a new skill (name, description and code) to the skill library. "
        "Saved skills are kept for the user to review; they are not run automatically."
    )

    def __init__(self, skills: SkillLibrary):
        self._skills = skills

    def get_schema(self) -> type[BaseModel]:
        return AddSkillInput

    async def execute(
        self,
        ctx: SessionContext,
        name: str = "",
        description: str = "",
        code: str = "",
        **kwargs,
    ) -> ToolResult:
        await self._skills.add(name, description, code)
        await ctx.record_action("added_skill", name=name)
        return ToolResult(
            output=f"Added skill: {name}. It is stored for review and not run automatically.",
        )
