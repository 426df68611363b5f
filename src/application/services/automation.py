"""
application.services.automation - Replayable automation recipes.

A recipe is a named list of tool calls. Running one dispatches each step
through the tool registry, pausing between steps, and stops early when the
session's automation flag is cleared (the "stop automation" command).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any, Optional
from uuid import uuid4

from application.context import SessionContext
from application.dto import RecipeRunResult, RecipeStepResult
from domain.exceptions import RecipeNotFoundError
from domain.models import AutomationRecipe, RecipeStep, is_failure
from domain.ports import DocumentStorePort, ToolExecutorPort

logger = logging.getLogger(__name__)

RECIPES_DOCUMENT = "recipes"
RESULT_PREVIEW = 200


class AutomationService:

    def __init__(self, store: DocumentStorePort, tools: ToolExecutorPort):
        self._store = store
        self._tools = tools
        self._lock = asyncio.Lock()

    async def recipes(self) -> list[AutomationRecipe]:
        document = await self._store.load(RECIPES_DOCUMENT, {"recipes": []})
        return [AutomationRecipe.from_dict(r) for r in document.get("recipes") or []]

    async def _save(self, recipes: list[AutomationRecipe]) -> None:
        await self._store.save(RECIPES_DOCUMENT, {"recipes": [r.to_dict() for r in recipes]})

    async def get(self, recipe_id: str) -> AutomationRecipe:
        for recipe in await self.recipes():
            if recipe.id == recipe_id:
                return recipe
        raise RecipeNotFoundError(f"Recipe not found: {recipe_id}")

    async def create(
        self,
        name: str,
        steps: list[dict[str, Any]],
        description: str = "",
    ) -> AutomationRecipe:
        recipe = AutomationRecipe(
            id=uuid4().hex,
            name=name,
            description=description,
            steps=[
                RecipeStep(
                    tool=s["tool"],
                    args=dict(s.get("args") or {}),
                    delay_ms=int(s.get("delay_ms", s.get("delay", 500))),
                )
                for s in steps
            ],
        )
        async with self._lock:
            recipes = await self.recipes()
            recipes.append(recipe)
            await self._save(recipes)
        logger.info("Created recipe '%s' with %d step(s)", name, len(recipe.steps))
        return recipe

    async def run(self, recipe_id: str, ctx: SessionContext) -> RecipeRunResult:
        """Execute a recipe's steps in order until done or stopped.

        Raises:
            RecipeNotFoundError: No recipe has this id.
        """
        recipe = await self.get(recipe_id)
        ctx.automation_active = True
        results: list[RecipeStepResult] = []
        stopped = False

        logger.info("Running recipe '%s' (%d steps)", recipe.name, len(recipe.steps))
        try:
            for step in recipe.steps:
                if not ctx.automation_active:
                    stopped = True
                    break
                result = await self._tools.execute(step.tool, dict(step.args), ctx)
                preview = result[:RESULT_PREVIEW]
                results.append(RecipeStepResult(
                    step=step.tool, success=not is_failure(result), result=preview,
                ))
                ctx.log_automation(tool=step.tool, args=dict(step.args), result=preview)
                await asyncio.sleep(step.delay_ms / 1000)
            else:
                stopped = not ctx.automation_active
        finally:
            ctx.automation_active = False

        await self._bump_usage(recipe.id)
        return RecipeRunResult(recipe_id=recipe.id, results=results, stopped=stopped)

    async def _bump_usage(self, recipe_id: str) -> Optional[AutomationRecipe]:
        async with self._lock:
            recipes = await self.recipes()
            for i, recipe in enumerate(recipes):
                if recipe.id == recipe_id:
                    bumped = replace(recipe, times_used=recipe.times_used + 1)
                    recipes[i] = bumped
                    await self._save(recipes)
                    return bumped
        return None

    @staticmethod
    def stop(ctx: SessionContext) -> None:
        ctx.automation_active = False
        ctx.log_automation(tool="SYSTEM", args={}, result="Automation stopped by user")
        logger.info("Automation stopped for conversation %s", ctx.conversation_id)
