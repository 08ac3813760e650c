from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional
from uuid import uuid4

import redis
from pydantic import ValidationError as PydanticValidationError

from src.app.domain.errors import DraftNotFoundError, DraftStorageError, SerializationError
from src.app.domain.models import Draft, Recipe
from src.app.infra.cache.base import DraftStore

logger = logging.getLogger(__name__)

KEY_PREFIX = "recipe_draft"
DEFAULT_TTL_SECONDS = 3600


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def draft_key(draft_id: str) -> str:
    return f"{KEY_PREFIX}:{draft_id}"


class RedisDraftStore(DraftStore):
    def __init__(
        self,
        client: redis.Redis,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], datetime] = _now_utc,
    ):
        self._client = client
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def cache(self, recipe: Recipe, source_recipe_id: Optional[str] = None) -> str:
        draft_id = str(uuid4())
        staged = recipe.model_copy(update={"id": draft_id}, deep=True)
        draft = Draft(
            original=staged,
            current=staged.model_copy(deep=True),
            modification_count=0,
            last_modified=self._clock(),
            source_recipe_id=source_recipe_id,
        )

        try:
            self._client.set(draft_key(draft_id), draft.model_dump_json(), ex=self.ttl_seconds)
        except redis.RedisError as error:
            logger.error("Failed to cache draft %s: %s", draft_id, error)
            raise DraftStorageError("cache", str(error)) from error

        logger.info("Staged draft: id=%s, title=%s, source=%s", draft_id, staged.title, source_recipe_id)
        return draft_id

    def get(self, draft_id: str) -> Draft:
        try:
            raw = self._client.get(draft_key(draft_id))
        except redis.RedisError as error:
            logger.error("Failed to read draft %s: %s", draft_id, error)
            raise DraftStorageError("get", str(error)) from error

        if raw is None:
            raise DraftNotFoundError(draft_id)
        return self._decode(draft_id, raw)

    def update(self, draft_id: str, recipe: Recipe) -> Draft:
        draft = self.get(draft_id)

        new_current = recipe.model_copy(update={"id": draft_id}, deep=True)
        draft.versions.append(draft.current)
        draft.current = new_current
        draft.modification_count += 1
        draft.last_modified = self._clock()

        try:
            # xx: only overwrite a key that still exists, so an expired draft stays expired.
            written = self._client.set(
                draft_key(draft_id),
                draft.model_dump_json(),
                ex=self.ttl_seconds,
                xx=True,
            )
        except redis.RedisError as error:
            logger.error("Failed to update draft %s: %s", draft_id, error)
            raise DraftStorageError("update", str(error)) from error

        if not written:
            raise DraftNotFoundError(draft_id)

        logger.info("Updated draft: id=%s, modification_count=%d", draft_id, draft.modification_count)
        return draft

    def delete(self, draft_id: str) -> None:
        try:
            removed = self._client.delete(draft_key(draft_id))
        except redis.RedisError as error:
            logger.error("Failed to delete draft %s: %s", draft_id, error)
            raise DraftStorageError("delete", str(error)) from error

        if not removed:
            logger.debug("Draft %s already absent", draft_id)

    def _decode(self, draft_id: str, raw: str | bytes) -> Draft:
        try:
            draft = Draft.model_validate_json(raw)
        except PydanticValidationError as error:
            raise SerializationError(f"Stored draft {draft_id} is corrupt: {error}") from error
        draft.current.id = draft_id
        return draft
