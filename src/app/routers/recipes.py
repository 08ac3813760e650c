# src/app/routers/recipes.py
"""
Recipe lifecycle routes: generate, stage, modify, approve and search.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from src.app.deps import CurrentUser, get_current_user, get_lifecycle_manager, get_search_engine
from src.app.domain.errors import (
    DraftStorageError,
    NotFoundError,
    PersistenceError,
    RateLimitedError,
    RecipeError,
    SerializationError,
    TransportError,
    UpstreamTimeoutError,
    ValidationError,
)
from src.app.domain.models import PersistedRecipe, Recipe, RecipePatch
from src.app.schemas.recipes import (
    DraftResponse,
    GenerateRequest,
    ModifyWithAIRequest,
    Pagination,
    RecipeListResponse,
    RecipeResponse,
    SearchResponse,
    StagedRecipeResponse,
)
from src.app.services.recipe_lifecycle import DEFAULT_PAGE_SIZE, RecipeLifecycleManager
from src.app.services.recipe_search import HybridRetrievalEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recipes", tags=["recipes"])

# Checked in order; subclasses before their parents.
_STATUS_BY_ERROR: tuple[tuple[type[RecipeError], int], ...] = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (RateLimitedError, status.HTTP_429_TOO_MANY_REQUESTS),
    (UpstreamTimeoutError, status.HTTP_504_GATEWAY_TIMEOUT),
    (TransportError, status.HTTP_502_BAD_GATEWAY),
    (SerializationError, status.HTTP_502_BAD_GATEWAY),
    (PersistenceError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (DraftStorageError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def _http_error(error: RecipeError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            break
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    if status_code >= 500:
        logger.error("Request failed: %s", error)
    return HTTPException(status_code=status_code, detail=str(error))


def _as_persisted(recipe: Recipe) -> PersistedRecipe:
    if isinstance(recipe, PersistedRecipe):
        return recipe
    return PersistedRecipe.model_validate(recipe.model_dump())


@router.post("/generate", response_model=StagedRecipeResponse)
async def generate_recipe(
    payload: GenerateRequest,
    manager: RecipeLifecycleManager = Depends(get_lifecycle_manager),
) -> StagedRecipeResponse:
    try:
        draft_id, recipe = await manager.generate(payload.query)
    except RecipeError as e:
        raise _http_error(e) from e
    return StagedRecipeResponse(draft_id=draft_id, recipe=recipe, status="pending_approval")


@router.get("/search", response_model=SearchResponse)
async def search_recipes(
    q: str = Query(..., min_length=1, description="Search text"),
    engine: HybridRetrievalEngine = Depends(get_search_engine),
) -> SearchResponse:
    try:
        result = await engine.search(q)
    except RecipeError as e:
        raise _http_error(e) from e
    return SearchResponse(
        exact_matches=result.exact_matches,
        similar_matches=result.similar_matches,
        message=result.message,
    )


@router.get("", response_model=RecipeListResponse)
async def list_recipes(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=100),
    manager: RecipeLifecycleManager = Depends(get_lifecycle_manager),
) -> RecipeListResponse:
    try:
        result = await manager.list_recipes(page, limit)
    except RecipeError as e:
        raise _http_error(e) from e
    return RecipeListResponse(
        recipes=result.recipes,
        pagination=Pagination(
            total=result.total,
            page=result.page,
            limit=result.limit,
            pages=result.pages,
            offset=result.offset,
        ),
    )


@router.get("/drafts/{draft_id}", response_model=DraftResponse)
async def get_draft(
    draft_id: str,
    manager: RecipeLifecycleManager = Depends(get_lifecycle_manager),
) -> DraftResponse:
    try:
        draft = await manager.get_draft(draft_id)
    except RecipeError as e:
        raise _http_error(e) from e
    return DraftResponse(
        draft_id=draft.draft_id,
        status=draft.status.value,
        modification_count=draft.modification_count,
        last_modified=draft.last_modified,
        source_recipe_id=draft.source_recipe_id,
        original=draft.original,
        current=draft.current,
        versions_count=len(draft.versions),
    )


@router.patch("/drafts/{draft_id}", response_model=StagedRecipeResponse)
async def modify_draft(
    draft_id: str,
    patch: RecipePatch,
    manager: RecipeLifecycleManager = Depends(get_lifecycle_manager),
) -> StagedRecipeResponse:
    try:
        recipe = await manager.modify(draft_id, patch)
    except RecipeError as e:
        raise _http_error(e) from e
    return StagedRecipeResponse(draft_id=draft_id, recipe=recipe)


@router.delete("/drafts/{draft_id}", status_code=status.HTTP_204_NO_CONTENT)
async def discard_draft(
    draft_id: str,
    manager: RecipeLifecycleManager = Depends(get_lifecycle_manager),
) -> Response:
    try:
        await manager.discard_draft(draft_id)
    except RecipeError as e:
        raise _http_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/drafts/{draft_id}/approve", response_model=RecipeResponse)
async def approve_draft(
    draft_id: str,
    user: CurrentUser = Depends(get_current_user),
    manager: RecipeLifecycleManager = Depends(get_lifecycle_manager),
) -> RecipeResponse:
    try:
        recipe = await manager.approve(draft_id, user.id)
    except RecipeError as e:
        raise _http_error(e) from e
    return RecipeResponse(recipe=recipe)


@router.post("/{recipe_id}/modify-ai", response_model=StagedRecipeResponse)
async def modify_with_ai(
    recipe_id: str,
    payload: ModifyWithAIRequest,
    manager: RecipeLifecycleManager = Depends(get_lifecycle_manager),
) -> StagedRecipeResponse:
    """`recipe_id` may name a draft or a persisted recipe."""
    try:
        draft_id, recipe = await manager.modify_with_ai(
            recipe_id, payload.modification_type, payload.notes
        )
    except RecipeError as e:
        raise _http_error(e) from e
    return StagedRecipeResponse(draft_id=draft_id, recipe=recipe)


@router.post("/{recipe_id}/start-modification", response_model=StagedRecipeResponse)
async def start_modification(
    recipe_id: str,
    user: CurrentUser = Depends(get_current_user),
    manager: RecipeLifecycleManager = Depends(get_lifecycle_manager),
) -> StagedRecipeResponse:
    try:
        draft_id, recipe = await manager.start_modification(recipe_id, user.id)
    except RecipeError as e:
        raise _http_error(e) from e
    return StagedRecipeResponse(draft_id=draft_id, recipe=recipe, status="ready_for_modification")


@router.get("/{recipe_id}", response_model=RecipeResponse)
async def get_recipe(
    recipe_id: str,
    manager: RecipeLifecycleManager = Depends(get_lifecycle_manager),
) -> RecipeResponse:
    try:
        recipe = await manager.get_recipe(recipe_id)
    except RecipeError as e:
        raise _http_error(e) from e
    return RecipeResponse(recipe=_as_persisted(recipe))
