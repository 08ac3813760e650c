# src/app/infra/cache/base.py
"""
Abstract base class for the recipe draft cache.
Drafts are short-lived, versioned envelopes that exist until approval or expiry.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from src.app.domain.models import Draft, Recipe


class DraftStore(ABC):
    """
    Abstract interface for draft staging.

    Implementations:
    - RedisDraftStore: Redis keys with a sliding expiry
    """

    @abstractmethod
    def cache(self, recipe: Recipe, source_recipe_id: Optional[str] = None) -> str:
        """
        Stage a recipe as a new draft.

        Args:
            recipe: The recipe to stage; its id is replaced by the new draft id
            source_recipe_id: Persisted recipe this draft was copied from, if any

        Returns:
            The new draft id

        Raises:
            DraftStorageError: If the cache write fails
        """
        pass

    @abstractmethod
    def get(self, draft_id: str) -> Draft:
        """
        Load a staged draft.

        Raises:
            DraftNotFoundError: If the draft is absent or expired
        """
        pass

    @abstractmethod
    def update(self, draft_id: str, recipe: Recipe) -> Draft:
        """
        Replace the current recipe of a draft and bump its modification count.
        Resets the expiry to a full TTL window.

        Raises:
            DraftNotFoundError: If the draft is absent or expired
        """
        pass

    @abstractmethod
    def delete(self, draft_id: str) -> None:
        """
        Remove a draft. Deleting an absent draft succeeds silently.
        """
        pass
