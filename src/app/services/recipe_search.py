from __future__ import annotations

import asyncio
import logging

from starlette.concurrency import run_in_threadpool

from src.app.domain.errors import ValidationError
from src.app.domain.models import PersistedRecipe, SearchResult
from src.app.infra.ai.base import EmbeddingProvider
from src.app.infra.db.base import RecipeRepository
from src.app.services.converters import rows_to_persisted

logger = logging.getLogger(__name__)

SEARCH_HINT = "If you don't find what you're looking for, you can generate a new recipe"
DEFAULT_SIMILARITY_THRESHOLD = 0.5
DEFAULT_MATCH_COUNT = 5


class HybridRetrievalEngine:
    """Lexical substring search combined with embedding similarity."""

    def __init__(
        self,
        repository: RecipeRepository,
        embedder: EmbeddingProvider,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
        match_count: int = DEFAULT_MATCH_COUNT,
    ):
        self.repository = repository
        self.embedder = embedder
        self.similarity_threshold = similarity_threshold
        self.match_count = match_count

    async def search(self, query: str) -> SearchResult:
        query = (query or "").strip()
        if not query:
            raise ValidationError("query is required")

        exact_rows, embedding = await asyncio.gather(
            run_in_threadpool(self.repository.search_lexical, query),
            self.embedder.embed_query(query),
        )
        similar_rows = await run_in_threadpool(
            self.repository.search_similar,
            embedding,
            self.similarity_threshold,
            self.match_count,
        )

        exact = rows_to_persisted(exact_rows)
        similar = self._merge(exact, rows_to_persisted(similar_rows))

        logger.info("Search %r: exact=%d, similar=%d", query, len(exact), len(similar))
        return SearchResult(exact_matches=exact, similar_matches=similar, message=SEARCH_HINT)

    def _merge(
        self,
        exact: list[PersistedRecipe],
        similar: list[PersistedRecipe],
    ) -> list[PersistedRecipe]:
        exact_ids = {recipe.id for recipe in exact}
        kept = [
            recipe for recipe in similar
            if recipe.id not in exact_ids
            and (recipe.similarity or 0.0) > self.similarity_threshold
        ]
        kept.sort(key=lambda recipe: recipe.similarity or 0.0, reverse=True)
        return kept[: self.match_count]
