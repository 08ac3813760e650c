# src/app/infra/db/base.py
"""
Abstract base class for the durable recipe store.
This interface allows swapping the Postgres/pgvector backend in tests.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional


class RecipeRepository(ABC):
    """
    Abstract interface for persisted recipes.

    Rows are plain dictionaries already encoded by src.app.services.converters;
    implementations never serialize nested fields themselves.

    Implementations:
    - SupabaseRecipeRepository: Postgres + pgvector through Supabase
    """

    @abstractmethod
    def insert_recipe(self, row: dict[str, Any]) -> dict[str, Any]:
        """
        Insert one approved recipe row in a single atomic write.

        Args:
            row: Fully encoded row including `id`, `user_id` and `embedding`

        Returns:
            The stored row

        Raises:
            PersistenceError: If the write fails; nothing is stored
        """
        pass

    @abstractmethod
    def update_recipe(
        self,
        recipe_id: str,
        changes: dict[str, Any],
        user_id: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Update columns of an existing row in place, atomically.

        Args:
            recipe_id: The row to update
            changes: Encoded columns to overwrite
            user_id: If provided, only update a row owned by this user

        Returns:
            The updated row

        Raises:
            RecipeNotFoundError: If no matching row exists
            PersistenceError: If the write fails
        """
        pass

    @abstractmethod
    def get_recipe(self, recipe_id: str) -> Optional[dict[str, Any]]:
        """
        Fetch one row (without its embedding) or None.
        """
        pass

    @abstractmethod
    def list_recipes(self, limit: int, offset: int) -> tuple[list[dict[str, Any]], int]:
        """
        Page through rows, newest first.

        Returns:
            Tuple of (rows, total row count)
        """
        pass

    @abstractmethod
    def search_lexical(self, query: str) -> list[dict[str, Any]]:
        """
        Case-insensitive substring match on title, description or tags,
        in storage order.
        """
        pass

    @abstractmethod
    def search_similar(
        self,
        query_embedding: list[float],
        match_threshold: float,
        match_count: int,
    ) -> list[dict[str, Any]]:
        """
        Cosine nearest neighbours above `match_threshold`, most similar first.
        Each row carries a `similarity` column.
        """
        pass
