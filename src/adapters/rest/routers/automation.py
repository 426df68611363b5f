"""Automation control and recipe endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from factory import ServiceFactory
from domain.exceptions import RecipeNotFoundError
from adapters.rest.dependencies import SessionRegistry, get_factory, get_sessions
from adapters.rest.schemas import (
    RecipeBody,
    RecipeRunOut,
    RecipeStepResultOut,
    RunRecipeBody,
    StopBody,
)

router = APIRouter(prefix="/api", tags=["automation"])


@router.post("/automation/stop")
async def stop_automation(
    body: StopBody,
    factory: ServiceFactory = Depends(get_factory),
    sessions: SessionRegistry = Depends(get_sessions),
):
    ctx = sessions.get(body.conversation_id)
    if ctx is None:
        raise HTTPException(status_code=404, detail="Unknown conversation.")
    factory.create_automation_service().stop(ctx)
    return {"success": True, "message": "Automation stopped"}


@router.get("/recipes")
async def list_recipes(factory: ServiceFactory = Depends(get_factory)):
    recipes = await factory.create_automation_service().recipes()
    return {"recipes": [r.to_dict() for r in recipes]}


@router.post("/recipes")
async def create_recipe(
    body: RecipeBody,
    factory: ServiceFactory = Depends(get_factory),
):
    recipe = await factory.create_automation_service().create(
        name=body.name,
        description=body.description,
        steps=[s.model_dump() for s in body.steps],
    )
    return {"success": True, "recipe": recipe.to_dict()}


@router.post("/recipes/run", response_model=RecipeRunOut)
async def run_recipe(
    body: RunRecipeBody,
    factory: ServiceFactory = Depends(get_factory),
    sessions: SessionRegistry = Depends(get_sessions),
):
    try:
        async with sessions.exclusive(body.conversation_id) as ctx:
            result = await factory.create_automation_service().run(body.id, ctx)
    except RecipeNotFoundError:
        raise HTTPException(status_code=404, detail="Recipe not found.")
    return RecipeRunOut(
        recipe_id=result.recipe_id,
        stopped=result.stopped,
        results=[
            RecipeStepResultOut(step=r.step, success=r.success, result=r.result)
            for r in result.results
        ],
    )
