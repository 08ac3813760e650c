"""
Recipe lifecycle: generate -> stage -> modify -> approve.

Drafts live in the DraftStore until a user approves them; only approval (and the
first edit of a draft staged from an existing recipe) writes to the repository.
Blocking store/repository calls run in the threadpool like the rest of the app.
"""
from __future__ import annotations

import logging
from typing import Optional

from starlette.concurrency import run_in_threadpool

from src.app.domain.errors import (
    DraftNotFoundError,
    DraftStorageError,
    RecipeNotFoundError,
    SerializationError,
    ValidationError,
)
from src.app.domain.models import Draft, PersistedRecipe, Recipe, RecipePage, RecipePatch
from src.app.infra.ai.base import EmbeddingProvider, LLMGateway
from src.app.infra.cache.base import DraftStore
from src.app.infra.db.base import RecipeRepository
from src.app.services.converters import (
    RECIPE_COLUMNS,
    build_embedding_text,
    parse_generated_recipe,
    persisted_to_recipe,
    recipe_changes_to_row,
    recipe_to_row,
    row_to_persisted,
    rows_to_persisted,
)
from src.app.services.recipe_prompts import (
    RECIPE_SYSTEM_PROMPT,
    build_generation_prompt,
    build_modification_prompt,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def _require(value: Optional[str], name: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{name} is required")
    return value.strip()


class RecipeLifecycleManager:
    def __init__(
        self,
        draft_store: DraftStore,
        repository: RecipeRepository,
        llm: LLMGateway,
        embedder: EmbeddingProvider,
    ):
        self.draft_store = draft_store
        self.repository = repository
        self.llm = llm
        self.embedder = embedder

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def _ask_for_recipe(self, user_prompt: str) -> Recipe:
        raw = await self.llm.complete_json(RECIPE_SYSTEM_PROMPT, user_prompt)
        result = parse_generated_recipe(raw)
        if not result.ok:
            logger.warning("Discarding malformed recipe response: %s", result.error)
            raise SerializationError(result.error or "Invalid recipe JSON", raw=result.raw)
        return result.recipe

    async def _stage(self, recipe: Recipe, source_recipe_id: Optional[str] = None) -> tuple[str, Recipe]:
        draft_id = await run_in_threadpool(self.draft_store.cache, recipe, source_recipe_id)
        return draft_id, recipe.model_copy(update={"id": draft_id}, deep=True)

    async def generate(self, query: str) -> tuple[str, Recipe]:
        query = _require(query, "query")
        recipe = await self._ask_for_recipe(build_generation_prompt(query))
        draft_id, staged = await self._stage(recipe)
        logger.info("Generated recipe %r for query %r as draft %s", staged.title, query, draft_id)
        return draft_id, staged

    async def modify_with_ai(
        self,
        draft_id: str,
        modification_type: str,
        notes: str = "",
    ) -> tuple[str, Recipe]:
        """
        Ask the model for a variant of a draft (or of a persisted recipe when no
        draft exists under that id) and stage it as a brand-new draft.

        The source is never touched; the variant starts at modification_count 0.
        """
        modification_type = _require(modification_type, "modification_type")
        source = await self._load_source(draft_id)

        variant = await self._ask_for_recipe(
            build_modification_prompt(source, modification_type, notes or "")
        )
        if variant.title.strip().casefold() == source.title.strip().casefold():
            logger.warning("Model kept the title %r; suffixing the modification", source.title)
            variant.title = f"{source.title} ({modification_type})"

        new_id, staged = await self._stage(variant)
        logger.info("Staged %r variant of %s as draft %s", modification_type, draft_id, new_id)
        return new_id, staged

    async def _load_source(self, recipe_id: str) -> Recipe:
        try:
            draft = await run_in_threadpool(self.draft_store.get, recipe_id)
            return draft.current
        except DraftNotFoundError:
            row = await run_in_threadpool(self.repository.get_recipe, recipe_id)
            if row is None:
                raise
            return persisted_to_recipe(row_to_persisted(row))

    # ------------------------------------------------------------------
    # Drafts
    # ------------------------------------------------------------------

    async def get_draft(self, draft_id: str) -> Draft:
        return await run_in_threadpool(self.draft_store.get, _require(draft_id, "draft_id"))

    async def discard_draft(self, draft_id: str) -> None:
        await run_in_threadpool(self.draft_store.delete, _require(draft_id, "draft_id"))
        logger.info("Discarded draft %s", draft_id)

    async def start_modification(self, recipe_id: str, user_id: str) -> tuple[str, Recipe]:
        """Stage a persisted recipe owned by `user_id` as an editable draft."""
        user_id = _require(user_id, "user_id")
        row = await run_in_threadpool(self.repository.get_recipe, _require(recipe_id, "recipe_id"))
        if row is None:
            raise RecipeNotFoundError(recipe_id)

        persisted = row_to_persisted(row)
        if persisted.user_id and persisted.user_id != user_id:
            # Other users' recipes are reported as missing.
            raise RecipeNotFoundError(recipe_id)

        draft_id, staged = await self._stage(persisted_to_recipe(persisted), source_recipe_id=recipe_id)
        logger.info("Recipe %s ready for modification as draft %s", recipe_id, draft_id)
        return draft_id, staged

    async def modify(self, draft_id: str, patch: RecipePatch) -> Recipe:
        fields = patch.provided_fields()
        if not fields:
            raise ValidationError("No fields to update")

        draft = await self.get_draft(draft_id)
        updated = patch.apply_to(draft.current)

        # Only the first edit of a draft staged from a stored recipe is mirrored.
        mirror = draft.modification_count == 0 and draft.is_persisted_copy
        changes = None
        if mirror:
            embedding = None
            if patch.touches_embedding():
                embedding = await self.embedder.embed_document(build_embedding_text(updated))
            changes = recipe_changes_to_row(updated, fields, embedding)

        # A failed mirror write leaves the draft unchanged.
        if changes is not None:
            await run_in_threadpool(
                self.repository.update_recipe,
                draft.source_recipe_id,
                changes,
                draft.current.user_id or None,
            )
            logger.info("Mirrored %s into recipe %s", sorted(fields), draft.source_recipe_id)

        new_draft = await run_in_threadpool(self.draft_store.update, draft_id, updated)
        return new_draft.current

    # ------------------------------------------------------------------
    # Approval
    # ------------------------------------------------------------------

    async def approve(self, draft_id: str, user_id: str) -> PersistedRecipe:
        """
        Persist the current version of a draft for `user_id`.

        The row, including the embedding, is fully encoded before the single
        write. On any failure the draft stays staged so the call can be retried.
        """
        user_id = _require(user_id, "user_id")
        draft = await self.get_draft(draft_id)
        recipe = draft.current.model_copy(update={"user_id": user_id}, deep=True)

        embedding = await self.embedder.embed_document(build_embedding_text(recipe))

        target_id = draft.source_recipe_id
        if target_id is None:
            existing = await run_in_threadpool(self.repository.get_recipe, draft_id)
            if existing is not None:
                target_id = draft_id

        if target_id is not None:
            changes = recipe_changes_to_row(recipe, RECIPE_COLUMNS, embedding)
            changes["approved"] = True
            stored = await run_in_threadpool(self.repository.update_recipe, target_id, changes, user_id)
        else:
            row = recipe_to_row(recipe, user_id=user_id, embedding=embedding)
            stored = await run_in_threadpool(self.repository.insert_recipe, row)

        persisted = row_to_persisted(stored)
        logger.info("Approved draft %s as recipe %s for user %s", draft_id, persisted.id, user_id)

        try:
            await run_in_threadpool(self.draft_store.delete, draft_id)
        except DraftStorageError as err:
            logger.warning("Approved draft %s could not be removed: %s", draft_id, err)

        return persisted

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_recipe(self, recipe_id: str) -> Recipe:
        recipe_id = _require(recipe_id, "recipe_id")
        try:
            draft = await run_in_threadpool(self.draft_store.get, recipe_id)
            return draft.current
        except DraftNotFoundError:
            pass

        row = await run_in_threadpool(self.repository.get_recipe, recipe_id)
        if row is None:
            raise RecipeNotFoundError(recipe_id)
        return row_to_persisted(row)

    async def list_recipes(self, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> RecipePage:
        page = max(page, 1)
        if limit < 1:
            limit = DEFAULT_PAGE_SIZE
        limit = min(limit, MAX_PAGE_SIZE)

        offset = (page - 1) * limit
        rows, total = await run_in_threadpool(self.repository.list_recipes, limit, offset)
        return RecipePage(recipes=rows_to_persisted(rows), total=total, page=page, limit=limit)
