from __future__ import annotations

import time
from types import SimpleNamespace

import pytest
from google.api_core import exceptions as google_exceptions

from src.app.domain.errors import (
    ConfigurationError,
    RateLimitedError,
    SerializationError,
    TransportError,
    UpstreamTimeoutError,
)
from src.services import embedding as embedding_module
from src.services import gemini_client
from src.services.embedding import GeminiEmbeddingProvider
from src.services.gemini_client import GeminiClient, classify_google_error, is_rate_limited_error


class FakeResponse:
    def __init__(self, text: str | None = None, error: Exception | None = None) -> None:
        self._text = text
        self._error = error
        self.usage_metadata = SimpleNamespace(
            prompt_token_count=10, candidates_token_count=20, total_token_count=30
        )

    @property
    def text(self) -> str:
        if self._error is not None:
            raise self._error
        return self._text


class FakeModel:
    instances: list["FakeModel"] = []
    outcome: object = None
    delay: float = 0.0

    def __init__(self, model_name: str, system_instruction: str, generation_config: dict) -> None:
        self.model_name = model_name
        self.system_instruction = system_instruction
        self.generation_config = generation_config
        self.calls: list[tuple[str, dict]] = []
        FakeModel.instances.append(self)

    def generate_content(self, payload: str, request_options: dict) -> FakeResponse:
        self.calls.append((payload, request_options))
        if FakeModel.delay:
            time.sleep(FakeModel.delay)
        if isinstance(FakeModel.outcome, Exception):
            raise FakeModel.outcome
        return FakeModel.outcome


@pytest.fixture
def fake_genai(monkeypatch):
    FakeModel.instances = []
    FakeModel.outcome = FakeResponse('{"title": "Soup"}')
    FakeModel.delay = 0.0
    configured: list[str] = []
    monkeypatch.setattr(gemini_client.genai, "configure", lambda api_key: configured.append(api_key))
    monkeypatch.setattr(gemini_client.genai, "GenerativeModel", FakeModel)
    return configured


class TestErrorClassification:
    def test_resource_exhausted_is_rate_limited(self) -> None:
        error = google_exceptions.ResourceExhausted("quota")
        assert is_rate_limited_error(error) is True
        assert isinstance(classify_google_error(error, 90), RateLimitedError)

    def test_message_marker_is_rate_limited(self) -> None:
        assert is_rate_limited_error(RuntimeError("429 RESOURCE_EXHAUSTED")) is True

    def test_deadline_is_timeout(self) -> None:
        error = classify_google_error(google_exceptions.DeadlineExceeded("slow"), 90)
        assert isinstance(error, UpstreamTimeoutError)
        assert error.timeout_seconds == 90

    def test_other_errors_are_transport(self) -> None:
        error = classify_google_error(google_exceptions.ServiceUnavailable("down"), 90)
        assert type(error) is TransportError
        assert error.retryable is True


class TestGeminiClient:
    def test_requires_api_key(self, fake_genai) -> None:
        with pytest.raises(ConfigurationError):
            GeminiClient(api_key="")

    def test_configures_sdk(self, fake_genai) -> None:
        GeminiClient(api_key="secret")
        assert fake_genai == ["secret"]

    def test_generate_content_requests_json(self, fake_genai) -> None:
        client = GeminiClient(api_key="secret", model_name="gemini-test", timeout_seconds=30)

        text = client.generate_content("Generate a recipe", "Respond in JSON")

        model = FakeModel.instances[0]
        assert text == '{"title": "Soup"}'
        assert model.model_name == "gemini-test"
        assert model.system_instruction == "Respond in JSON"
        assert model.generation_config["response_mime_type"] == "application/json"
        assert model.calls == [("Generate a recipe", {"timeout": 30})]

    def test_blocked_response(self, fake_genai) -> None:
        FakeModel.outcome = FakeResponse(error=ValueError("no candidates"))
        client = GeminiClient(api_key="secret")

        with pytest.raises(SerializationError):
            client.generate_content("prompt", "system")

    def test_empty_response(self, fake_genai) -> None:
        FakeModel.outcome = FakeResponse("")
        client = GeminiClient(api_key="secret")

        with pytest.raises(SerializationError):
            client.generate_content("prompt", "system")

    def test_rate_limit(self, fake_genai) -> None:
        FakeModel.outcome = google_exceptions.ResourceExhausted("quota")
        client = GeminiClient(api_key="secret")

        with pytest.raises(RateLimitedError):
            client.generate_content("prompt", "system")

    def test_connection_error(self, fake_genai) -> None:
        FakeModel.outcome = ConnectionError("reset by peer")
        client = GeminiClient(api_key="secret")

        with pytest.raises(TransportError) as exc_info:
            client.generate_content("prompt", "system")
        assert "reset by peer" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_complete_json(self, fake_genai) -> None:
        client = GeminiClient(api_key="secret")
        assert await client.complete_json("system", "prompt") == '{"title": "Soup"}'

    @pytest.mark.asyncio
    async def test_complete_json_deadline(self, fake_genai) -> None:
        FakeModel.delay = 0.5
        client = GeminiClient(api_key="secret", timeout_seconds=0.05)

        with pytest.raises(UpstreamTimeoutError):
            await client.complete_json("system", "prompt")


class TestGeminiEmbeddingProvider:
    @pytest.fixture
    def embed_calls(self, monkeypatch):
        calls: list[dict] = []
        result = {"embedding": [0.1, 0.2, 0.3]}

        def fake_embed_content(**kwargs):
            calls.append(kwargs)
            if isinstance(result.get("error"), Exception):
                raise result["error"]
            return result

        monkeypatch.setattr(embedding_module.genai, "configure", lambda api_key: None)
        monkeypatch.setattr(embedding_module.genai, "embed_content", fake_embed_content)
        return calls, result

    def test_requires_api_key(self, embed_calls) -> None:
        with pytest.raises(ConfigurationError):
            GeminiEmbeddingProvider(api_key="")

    @pytest.mark.asyncio
    async def test_document_and_query_task_types(self, embed_calls) -> None:
        calls, _ = embed_calls
        provider = GeminiEmbeddingProvider(api_key="secret", dimensions=3)

        assert await provider.embed_document("Soup") == [0.1, 0.2, 0.3]
        await provider.embed_query("soup")

        assert [call["task_type"] for call in calls] == ["RETRIEVAL_DOCUMENT", "RETRIEVAL_QUERY"]
        assert calls[0]["model"] == "models/text-embedding-004"
        assert calls[0]["content"] == "Soup"

    @pytest.mark.asyncio
    async def test_wrong_dimension(self, embed_calls) -> None:
        provider = GeminiEmbeddingProvider(api_key="secret", dimensions=768)

        with pytest.raises(SerializationError):
            await provider.embed_document("Soup")

    @pytest.mark.asyncio
    async def test_malformed_response(self, embed_calls) -> None:
        _, result = embed_calls
        del result["embedding"]
        provider = GeminiEmbeddingProvider(api_key="secret", dimensions=3)

        with pytest.raises(SerializationError):
            await provider.embed_query("soup")

    @pytest.mark.asyncio
    async def test_api_error(self, embed_calls) -> None:
        _, result = embed_calls
        result["error"] = google_exceptions.ServiceUnavailable("down")
        provider = GeminiEmbeddingProvider(api_key="secret", dimensions=3)

        with pytest.raises(TransportError):
            await provider.embed_query("soup")
