# src/app/deps.py (clients are process-wide singletons, exposed as dependencies)

from __future__ import annotations

import logging

import redis
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from supabase import Client, create_client

from src.app.config import get_settings
from src.app.infra.cache.redis_draft_store import RedisDraftStore
from src.app.infra.db.supabase_recipes_repo import SupabaseRecipeRepository
from src.app.services.recipe_lifecycle import RecipeLifecycleManager
from src.app.services.recipe_search import HybridRetrievalEngine
from src.services.embedding import GeminiEmbeddingProvider
from src.services.gemini_client import GeminiClient

logger = logging.getLogger(__name__)

_client: Client | None = None
_redis: redis.Redis | None = None
_llm: GeminiClient | None = None
_embedder: GeminiEmbeddingProvider | None = None


def get_supabase() -> Client:
    global _client
    if _client is None:
        settings = get_settings()
        _client = create_client(str(settings.SUPABASE_URL),
                                settings.SUPABASE_SERVICE_ROLE_KEY)
    return _client


def get_redis() -> redis.Redis:
    global _redis
    if _redis is None:
        _redis = redis.Redis.from_url(get_settings().REDIS_URL, decode_responses=True)
    return _redis


def get_llm() -> GeminiClient:
    global _llm
    if _llm is None:
        settings = get_settings()
        _llm = GeminiClient(
            api_key=settings.GEMINI_API_KEY.get_secret_value(),
            model_name=settings.GEMINI_MODEL,
            timeout_seconds=settings.LLM_TIMEOUT_SECONDS,
        )
    return _llm


def get_embedder() -> GeminiEmbeddingProvider:
    global _embedder
    if _embedder is None:
        settings = get_settings()
        _embedder = GeminiEmbeddingProvider(
            api_key=settings.GEMINI_API_KEY.get_secret_value(),
            model_name=settings.EMBEDDING_MODEL,
            dimensions=settings.EMBEDDING_DIMENSIONS,
            timeout_seconds=settings.LLM_TIMEOUT_SECONDS,
        )
    return _embedder


def get_draft_store(client: redis.Redis = Depends(get_redis)) -> RedisDraftStore:
    return RedisDraftStore(client, ttl_seconds=get_settings().DRAFT_TTL_SECONDS)


def get_recipe_repository(supa: Client = Depends(get_supabase)) -> SupabaseRecipeRepository:
    return SupabaseRecipeRepository(supa)


def get_lifecycle_manager(
    draft_store: RedisDraftStore = Depends(get_draft_store),
    repository: SupabaseRecipeRepository = Depends(get_recipe_repository),
    llm: GeminiClient = Depends(get_llm),
    embedder: GeminiEmbeddingProvider = Depends(get_embedder),
) -> RecipeLifecycleManager:
    return RecipeLifecycleManager(draft_store, repository, llm, embedder)


def get_search_engine(
    repository: SupabaseRecipeRepository = Depends(get_recipe_repository),
    embedder: GeminiEmbeddingProvider = Depends(get_embedder),
) -> HybridRetrievalEngine:
    settings = get_settings()
    return HybridRetrievalEngine(
        repository,
        embedder,
        similarity_threshold=settings.SEARCH_SIMILARITY_THRESHOLD,
        match_count=settings.SEARCH_MATCH_COUNT,
    )


auth_scheme = HTTPBearer(auto_error=False)

class CurrentUser(BaseModel):
    id: str
    email: str | None = None
    name: str | None = None

async def get_current_user(
    cred: HTTPAuthorizationCredentials | None = Depends(auth_scheme),
    supa: Client = Depends(get_supabase),
) -> CurrentUser:
    """
    Takes Authorization: Bearer <access_token> issued by Supabase,
    validates it against GoTrue and returns the minimal user data.
    """
    if cred is None or cred.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")

    token = cred.credentials
    try:
        res = supa.auth.get_user(token)
        user = res.user
        if not user:
            raise HTTPException(status_code=401, detail="Invalid token")

        name = None
        meta = getattr(user, "user_metadata", None) or {}
        if isinstance(meta, dict):
            name = meta.get("name")

        return CurrentUser(id=str(user.id), email=user.email, name=name)
    except HTTPException:
        raise
    except Exception as exc:
        logger.warning("Token validation failed: %s", exc)
        raise HTTPException(status_code=401, detail="Invalid/expired token")
