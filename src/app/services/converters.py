"""
Mappers between the three recipe representations:

- the JSON document returned by the LLM (GeneratedRecipe),
- the canonical Recipe held in a draft,
- the row stored in the `recipes` table.

Everything here is pure: no I/O, no clients.
"""
from __future__ import annotations

import json
import logging
import math
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from src.app.domain.errors import SerializationError
from src.app.domain.models import (
    Ingredient,
    Instruction,
    Nutrition,
    PersistedRecipe,
    Recipe,
    RecipeParseResult,
)

logger = logging.getLogger(__name__)

# Columns written from a Recipe. `id`, `user_id` and `embedding` are handled separately.
RECIPE_COLUMNS = (
    "title",
    "description",
    "servings",
    "prep_time_minutes",
    "cook_time_minutes",
    "total_time_minutes",
    "ingredients",
    "instructions",
    "nutrition",
    "tags",
    "difficulty",
)


class GeneratedRecipe(BaseModel):
    """Wire format the LLM must return. Every field is required."""
    model_config = ConfigDict(extra="ignore")

    title: str
    description: str
    servings: int
    prep_time_minutes: int
    cook_time_minutes: int
    total_time_minutes: int
    ingredients: list[Ingredient]
    instructions: list[Instruction]
    nutrition: Nutrition
    tags: list[str]
    difficulty: str

    def to_recipe(self) -> Recipe:
        return Recipe(**self.model_dump())


def parse_generated_recipe(text: str | None) -> RecipeParseResult:
    raw = text or ""
    if not raw.strip():
        return RecipeParseResult(error="Model returned an empty response", raw=raw)

    try:
        generated = GeneratedRecipe.model_validate_json(raw)
    except PydanticValidationError as err:
        return RecipeParseResult(error=f"Invalid recipe JSON: {err}", raw=raw)

    recipe = generated.to_recipe()
    if not recipe.title.strip():
        return RecipeParseResult(error="Recipe JSON has an empty title", raw=raw)
    return RecipeParseResult(recipe=recipe, raw=raw)


def build_embedding_text(recipe: Recipe) -> str:
    return "\n".join(
        [
            recipe.title,
            recipe.description,
            ", ".join(recipe.tags),
            ", ".join(recipe.ingredient_items()),
        ]
    )


# ---------------------------------------------------------------------------
# Row encoding
# ---------------------------------------------------------------------------

def encode_embedding(embedding: Sequence[float]) -> str:
    """pgvector literal, e.g. [0.1,0.2]."""
    values: list[str] = []
    for value in embedding:
        number = float(value)
        if not math.isfinite(number):
            raise SerializationError("Embedding contains a non-finite value")
        values.append(repr(number))
    if not values:
        raise SerializationError("Embedding is empty")
    return "[" + ",".join(values) + "]"


def _encode_json_field(name: str, value: Any) -> Any:
    try:
        json.dumps(value, allow_nan=False)
    except (TypeError, ValueError) as err:
        raise SerializationError(f"Failed to encode {name}: {err}") from err
    return value


def _encode_column(recipe: Recipe, column: str) -> Any:
    if column == "tags":
        return list(recipe.tags)
    if column == "ingredients":
        return _encode_json_field(column, [i.model_dump() for i in recipe.ingredients])
    if column == "instructions":
        return _encode_json_field(column, [i.model_dump() for i in recipe.instructions])
    if column == "nutrition":
        return _encode_json_field(column, recipe.nutrition.model_dump())
    return getattr(recipe, column)


def recipe_to_row(
    recipe: Recipe,
    *,
    user_id: str,
    embedding: Sequence[float],
    approved: bool = True,
) -> dict[str, Any]:
    """Encode every column up front so a failure never reaches the database."""
    row: dict[str, Any] = {"id": recipe.id, "user_id": user_id, "approved": approved}
    for column in RECIPE_COLUMNS:
        row[column] = _encode_column(recipe, column)
    row["embedding"] = encode_embedding(embedding)
    return row


def recipe_changes_to_row(
    recipe: Recipe,
    fields: Iterable[str],
    embedding: Optional[Sequence[float]] = None,
) -> dict[str, Any]:
    row = {column: _encode_column(recipe, column) for column in fields if column in RECIPE_COLUMNS}
    if embedding is not None:
        row["embedding"] = encode_embedding(embedding)
    return row


# ---------------------------------------------------------------------------
# Row decoding
# ---------------------------------------------------------------------------

def decode_tags(value: Any) -> list[str]:
    """PostgREST returns text[] columns as JSON arrays."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise SerializationError(f"Unsupported tags value: {value!r}")
    return [str(tag) for tag in value]


def _load_json_field(name: str, value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        try:
            return json.loads(value) if value else None
        except json.JSONDecodeError as err:
            raise SerializationError(f"Stored {name} is not valid JSON: {err}") from err
    return value


def _parse_datetime(value: str | datetime | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    try:
        normalized = value.replace("Z", "+00:00") if value.endswith("Z") else value
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


def row_to_persisted(row: Mapping[str, Any]) -> PersistedRecipe:
    ingredients = _load_json_field("ingredients", row.get("ingredients")) or []
    instructions = _load_json_field("instructions", row.get("instructions")) or []
    nutrition = _load_json_field("nutrition", row.get("nutrition")) or {}

    try:
        return PersistedRecipe(
            id=str(row["id"]),
            title=str(row.get("title") or ""),
            description=str(row.get("description") or ""),
            servings=int(row.get("servings") or 0),
            prep_time_minutes=int(row.get("prep_time_minutes") or 0),
            cook_time_minutes=int(row.get("cook_time_minutes") or 0),
            total_time_minutes=int(row.get("total_time_minutes") or 0),
            ingredients=ingredients,
            instructions=instructions,
            nutrition=nutrition,
            tags=decode_tags(row.get("tags")),
            difficulty=str(row.get("difficulty") or ""),
            user_id=str(row.get("user_id") or ""),
            average_rating=float(row.get("average_rating") or 0),
            rating_count=int(row.get("rating_count") or 0),
            approved=bool(row.get("approved")),
            created_at=_parse_datetime(row.get("created_at")),
            updated_at=_parse_datetime(row.get("updated_at")),
            similarity=float(row["similarity"]) if row.get("similarity") is not None else None,
        )
    except (KeyError, TypeError, ValueError, PydanticValidationError) as err:
        raise SerializationError(f"Malformed recipe row {row.get('id')!r}: {err}") from err


def persisted_to_recipe(persisted: PersistedRecipe) -> Recipe:
    return Recipe(**persisted.model_dump(include=set(Recipe.model_fields)))


def rows_to_persisted(rows: Iterable[Mapping[str, Any]]) -> list[PersistedRecipe]:
    """Decode many rows; a malformed row is logged and skipped, never fatal to a listing."""
    recipes: list[PersistedRecipe] = []
    for row in rows:
        try:
            recipes.append(row_to_persisted(row))
        except SerializationError as err:
            logger.warning("Skipping unreadable recipe row: %s", err)
    return recipes
