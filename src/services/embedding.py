from __future__ import annotations

import asyncio
import logging
from typing import Any

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from starlette.concurrency import run_in_threadpool

from src.app.domain.errors import ConfigurationError, SerializationError, UpstreamTimeoutError
from src.app.infra.ai.base import EmbeddingProvider
from src.services.gemini_client import DEFAULT_TIMEOUT_SECONDS, classify_google_error

logger = logging.getLogger(__name__)

SERVICE_NAME = "gemini-embedding"
DEFAULT_EMBEDDING_MODEL = "models/text-embedding-004"
DEFAULT_DIMENSIONS = 768


class GeminiEmbeddingProvider(EmbeddingProvider):
    def __init__(
        self,
        api_key: str,
        model_name: str = DEFAULT_EMBEDDING_MODEL,
        dimensions: int = DEFAULT_DIMENSIONS,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        if not api_key:
            raise ConfigurationError(["Missing Google API key."])
        self.model_name = model_name
        self.dimensions = dimensions
        self.timeout_seconds = timeout_seconds
        genai.configure(api_key=api_key)

    def _embed(self, text: str, task_type: str) -> list[float]:
        try:
            result = genai.embed_content(
                model=self.model_name,
                content=text,
                task_type=task_type,
                request_options={"timeout": self.timeout_seconds},
            )
        except (google_exceptions.GoogleAPIError, ConnectionError, OSError) as err:
            logger.error("Embedding request failed: %s", err)
            raise classify_google_error(err, self.timeout_seconds) from err

        return self._validate(result)

    def _validate(self, result: Any) -> list[float]:
        try:
            embedding = [float(value) for value in result["embedding"]]
        except (KeyError, TypeError, ValueError) as err:
            raise SerializationError(f"Malformed embedding response: {err}") from err

        if len(embedding) != self.dimensions:
            raise SerializationError(
                f"Embedding has {len(embedding)} dimensions, expected {self.dimensions}"
            )
        return embedding

    async def _embed_with_deadline(self, text: str, task_type: str) -> list[float]:
        try:
            return await asyncio.wait_for(
                run_in_threadpool(self._embed, text, task_type),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as err:
            logger.error("Embedding call exceeded %.0fs", self.timeout_seconds)
            raise UpstreamTimeoutError(SERVICE_NAME, self.timeout_seconds) from err

    async def embed_document(self, text: str) -> list[float]:
        return await self._embed_with_deadline(text, "RETRIEVAL_DOCUMENT")

    async def embed_query(self, text: str) -> list[float]:
        return await self._embed_with_deadline(text, "RETRIEVAL_QUERY")
