from __future__ import annotations

import asyncio
import logging

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from starlette.concurrency import run_in_threadpool

from src.app.domain.errors import (
    ConfigurationError,
    RateLimitedError,
    SerializationError,
    TransportError,
    UpstreamTimeoutError,
)
from src.app.infra.ai.base import LLMGateway

logger = logging.getLogger(__name__)

SERVICE_NAME = "gemini"
DEFAULT_TIMEOUT_SECONDS = 90.0


def is_rate_limited_error(exc: Exception) -> bool:
    if isinstance(exc, google_exceptions.ResourceExhausted):
        return True
    status_code = getattr(exc, "status_code", None) or getattr(exc, "code", None)
    if status_code == 429:
        return True
    return "RESOURCE_EXHAUSTED" in str(exc)


def classify_google_error(exc: Exception, timeout_seconds: float) -> Exception:
    """Map a Gemini SDK failure onto the transport error family."""
    if isinstance(exc, google_exceptions.DeadlineExceeded):
        return UpstreamTimeoutError(SERVICE_NAME, timeout_seconds)
    if is_rate_limited_error(exc):
        return RateLimitedError(SERVICE_NAME, str(exc))
    return TransportError(SERVICE_NAME, str(exc))


class GeminiClient(LLMGateway):
    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-2.5-flash",
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        temperature: float = 0.7,
        max_output_tokens: int = 2048,
    ) -> None:
        self.api_key = api_key
        self.model_name = model_name
        self.timeout_seconds = timeout_seconds
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self._configure_api()

    def _configure_api(self) -> None:
        if not self.api_key:
            raise ConfigurationError(["Missing Google API key."])
        genai.configure(api_key=self.api_key)

    def generate_content(self, user_prompt: str, system_instruction: str) -> str:
        """Blocking call; returns the text of the first candidate."""
        model = genai.GenerativeModel(
            model_name=self.model_name,
            system_instruction=system_instruction,
            generation_config={
                "response_mime_type": "application/json",
                "temperature": self.temperature,
                "max_output_tokens": self.max_output_tokens,
            },
        )

        try:
            response = model.generate_content(
                user_prompt,
                request_options={"timeout": self.timeout_seconds},
            )
        except (google_exceptions.GoogleAPIError, ConnectionError, OSError) as err:
            logger.error("Gemini request failed: %s", err)
            raise classify_google_error(err, self.timeout_seconds) from err

        try:
            text = response.text
        except ValueError as err:
            # Raised by the SDK when the answer has no candidates or was blocked.
            raise SerializationError(f"Gemini returned no usable content: {err}") from err

        usage = getattr(response, "usage_metadata", None)
        if usage is not None:
            logger.info(
                "Gemini usage: prompt_tokens=%s, candidate_tokens=%s, total_tokens=%s",
                getattr(usage, "prompt_token_count", None),
                getattr(usage, "candidates_token_count", None),
                getattr(usage, "total_token_count", None),
            )

        if not text:
            raise SerializationError("Gemini returned an empty response")
        return text

    async def complete_json(self, system_instruction: str, user_prompt: str) -> str:
        try:
            return await asyncio.wait_for(
                run_in_threadpool(self.generate_content, user_prompt, system_instruction),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as err:
            logger.error("Gemini call exceeded %.0fs", self.timeout_seconds)
            raise UpstreamTimeoutError(SERVICE_NAME, self.timeout_seconds) from err
