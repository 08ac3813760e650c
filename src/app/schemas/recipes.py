from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.app.domain.models import PersistedRecipe, Recipe


class GenerateRequest(BaseModel):
    query: str = Field(..., min_length=1, description="What to cook, e.g. 'spicy vegan chili'")


class ModifyWithAIRequest(BaseModel):
    modification_type: str = Field(..., min_length=1, description="e.g. 'make it gluten free'")
    notes: str = ""


class StagedRecipeResponse(BaseModel):
    draft_id: str
    recipe: Recipe
    status: Optional[str] = None


class RecipeResponse(BaseModel):
    recipe: PersistedRecipe


class DraftResponse(BaseModel):
    draft_id: str
    status: str
    modification_count: int
    last_modified: datetime
    source_recipe_id: Optional[str] = None
    original: Recipe
    current: Recipe
    versions_count: int


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int
    offset: int


class RecipeListResponse(BaseModel):
    recipes: list[PersistedRecipe]
    pagination: Pagination


class SearchResponse(BaseModel):
    exact_matches: list[PersistedRecipe]
    similar_matches: list[PersistedRecipe]
    message: str
