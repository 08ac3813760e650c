from __future__ import annotations

import logging
import os
from typing import Any, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client

from src.app.domain.errors import PersistenceError, RecipeNotFoundError
from src.app.infra.db.base import RecipeRepository

logger = logging.getLogger(__name__)

# Never select the embedding column back; it is large and unused by readers.
SELECT_COLUMNS = (
    "id, user_id, title, description, servings, prep_time_minutes, cook_time_minutes, "
    "total_time_minutes, ingredients, instructions, nutrition, tags, difficulty, "
    "average_rating, rating_count, approved, created_at, updated_at"
)

_NETWORK_ERRORS = (APIError, httpx.HTTPError, ConnectionError, TimeoutError)


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user text only ever matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _create_supabase_client() -> Client:
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY required")
    return create_client(url, key)


class SupabaseRecipeRepository(RecipeRepository):
    TABLE_NAME = "recipes"

    def __init__(self, client: Client | None = None):
        self._client = client or _create_supabase_client()
        logger.info("SupabaseRecipeRepository initialized")

    def insert_recipe(self, row: dict[str, Any]) -> dict[str, Any]:
        try:
            result = self._client.table(self.TABLE_NAME).insert(row).execute()
        except _NETWORK_ERRORS as error:
            logger.error("Failed to insert recipe %s: %s", row.get("id"), error)
            raise PersistenceError("insert", str(error)) from error

        if not result.data:
            raise PersistenceError("insert", f"no row returned for recipe {row.get('id')}")

        logger.info("Inserted recipe: id=%s, user=%s", row.get("id"), row.get("user_id"))
        return result.data[0]

    def update_recipe(
        self,
        recipe_id: str,
        changes: dict[str, Any],
        user_id: Optional[str] = None,
    ) -> dict[str, Any]:
        try:
            query = self._client.table(self.TABLE_NAME).update(changes).eq("id", recipe_id)
            if user_id:
                query = query.eq("user_id", user_id)
            result = query.execute()
        except _NETWORK_ERRORS as error:
            logger.error("Failed to update recipe %s: %s", recipe_id, error)
            raise PersistenceError("update", str(error)) from error

        if not result.data:
            raise RecipeNotFoundError(recipe_id)

        logger.info("Updated recipe: id=%s, columns=%s", recipe_id, sorted(changes))
        return result.data[0]

    def get_recipe(self, recipe_id: str) -> Optional[dict[str, Any]]:
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .select(SELECT_COLUMNS)
                .eq("id", recipe_id)
                .limit(1)
                .execute()
            )
        except _NETWORK_ERRORS as error:
            logger.error("Failed to fetch recipe %s: %s", recipe_id, error)
            raise PersistenceError("get", str(error)) from error

        return result.data[0] if result.data else None

    def list_recipes(self, limit: int, offset: int) -> tuple[list[dict[str, Any]], int]:
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .select(SELECT_COLUMNS, count="exact")
                .order("created_at", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )
        except _NETWORK_ERRORS as error:
            logger.error("Failed to list recipes: %s", error)
            raise PersistenceError("list", str(error)) from error

        rows = result.data or []
        total = result.count if result.count is not None else len(rows)
        return rows, total

    def search_lexical(self, query: str) -> list[dict[str, Any]]:
        pattern = f"%{escape_like(query)}%"
        try:
            result = self._client.rpc("search_recipes_lexical", {"p_pattern": pattern}).execute()
        except _NETWORK_ERRORS as error:
            logger.error("Lexical search failed: %s", error)
            raise PersistenceError("search_lexical", str(error)) from error

        return result.data or []

    def search_similar(
        self,
        query_embedding: list[float],
        match_threshold: float,
        match_count: int,
    ) -> list[dict[str, Any]]:
        params = {
            "query_embedding": query_embedding,
            "match_threshold": match_threshold,
            "match_count": match_count,
        }
        try:
            result = self._client.rpc("match_recipes", params).execute()
        except _NETWORK_ERRORS as error:
            logger.error("Similarity search failed: %s", error)
            raise PersistenceError("search_similar", str(error)) from error

        return result.data or []
