from __future__ import annotations

import pytest

from src.app.infra.cache.redis_draft_store import RedisDraftStore
from tests.unit.stubs import EmbedderStub, FakeClock, RecipeRepositoryStub, RedisStub


@pytest.fixture
def redis_stub() -> RedisStub:
    return RedisStub()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def draft_store(redis_stub: RedisStub, clock: FakeClock) -> RedisDraftStore:
    return RedisDraftStore(redis_stub, ttl_seconds=3600, clock=clock)


@pytest.fixture
def repository() -> RecipeRepositoryStub:
    return RecipeRepositoryStub()


@pytest.fixture
def embedder() -> EmbedderStub:
    return EmbedderStub()
