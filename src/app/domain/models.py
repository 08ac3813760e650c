# src/app/domain/models.py
"""
Domain models for the recipe lifecycle.

Ingredient, Instruction, Nutrition and Recipe are the single canonical value
types used by the generator, the draft cache and the persistence layer. Row
encoding lives in src/app/services/converters.py.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


def _number_as_text(value: Any) -> Any:
    """LLMs send amounts as 2, 0.5, "1/2" or "to taste"; keep them all as text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else str(value)
    if isinstance(value, int):
        return str(value)
    return value


class DraftStatus(str, Enum):
    """
    Status of a draft that still exists in the cache.

    Generated recipes are staged immediately. Approved or expired drafts are
    gone from the cache, so neither has a status here.
    """
    STAGED = "STAGED"
    MODIFIED = "MODIFIED"


class Ingredient(BaseModel):
    item: str
    amount: str = ""
    unit: str = ""

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, value: Any) -> Any:
        return _number_as_text(value)


class Instruction(BaseModel):
    step: int
    description: str


class Nutrition(BaseModel):
    calories: int = 0
    protein: str = ""
    carbs: str = ""
    fat: str = ""

    @field_validator("protein", "carbs", "fat", mode="before")
    @classmethod
    def coerce_macros(cls, value: Any) -> Any:
        return _number_as_text(value)


class Recipe(BaseModel):
    id: str = ""
    title: str
    description: str = ""
    servings: int = 0
    prep_time_minutes: int = 0
    cook_time_minutes: int = 0
    total_time_minutes: int = 0
    ingredients: list[Ingredient] = Field(default_factory=list)
    instructions: list[Instruction] = Field(default_factory=list)
    nutrition: Nutrition = Field(default_factory=Nutrition)
    tags: list[str] = Field(default_factory=list)
    difficulty: str = ""
    user_id: str = ""

    def ingredient_items(self) -> list[str]:
        return [ingredient.item for ingredient in self.ingredients]


# Fields whose change invalidates the stored embedding.
EMBEDDED_FIELDS = frozenset({"title", "description", "tags", "ingredients"})


class RecipePatch(BaseModel):
    """Partial update. Only fields sent with a non-null value are applied."""
    title: Optional[str] = None
    description: Optional[str] = None
    servings: Optional[int] = None
    prep_time_minutes: Optional[int] = None
    cook_time_minutes: Optional[int] = None
    total_time_minutes: Optional[int] = None
    ingredients: Optional[list[Ingredient]] = None
    instructions: Optional[list[Instruction]] = None
    nutrition: Optional[Nutrition] = None
    tags: Optional[list[str]] = None
    difficulty: Optional[str] = None

    def provided_fields(self) -> set[str]:
        return {name for name in self.model_fields_set if getattr(self, name) is not None}

    def touches_embedding(self) -> bool:
        return bool(self.provided_fields() & EMBEDDED_FIELDS)

    def apply_to(self, recipe: Recipe) -> Recipe:
        updates = {name: getattr(self, name) for name in self.provided_fields()}
        return recipe.model_copy(update=updates, deep=True)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class Draft(BaseModel):
    """Staging envelope stored in the draft cache."""
    original: Recipe
    current: Recipe
    versions: list[Recipe] = Field(default_factory=list)
    modification_count: int = 0
    last_modified: datetime = Field(default_factory=_now_utc)
    source_recipe_id: Optional[str] = None

    @property
    def draft_id(self) -> str:
        return self.current.id

    @property
    def status(self) -> DraftStatus:
        return DraftStatus.MODIFIED if self.modification_count > 0 else DraftStatus.STAGED

    @property
    def is_persisted_copy(self) -> bool:
        """True when the draft was staged from an existing persisted recipe."""
        return bool(self.source_recipe_id)


class PersistedRecipe(Recipe):
    average_rating: float = 0.0
    rating_count: int = 0
    approved: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    similarity: Optional[float] = None


@dataclass
class RecipeParseResult:
    """Tagged result of decoding an LLM response: either a recipe or an error."""
    recipe: Optional[Recipe] = None
    error: Optional[str] = None
    raw: str = ""

    @property
    def ok(self) -> bool:
        return self.recipe is not None and self.error is None


@dataclass
class SearchResult:
    exact_matches: list[PersistedRecipe] = field(default_factory=list)
    similar_matches: list[PersistedRecipe] = field(default_factory=list)
    message: str = ""


@dataclass
class RecipePage:
    recipes: list[PersistedRecipe]
    total: int
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def pages(self) -> int:
        if self.limit <= 0:
            return 0
        return -(-self.total // self.limit)
