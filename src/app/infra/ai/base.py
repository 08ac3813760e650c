# src/app/infra/ai/base.py
"""
Abstract interfaces for the language model and embedding services.
The lifecycle and search services depend only on these.
"""
from __future__ import annotations

from abc import ABC, abstractmethod


class LLMGateway(ABC):
    """
    Implementations:
    - GeminiClient: Google Gemini via google-generativeai
    """

    @abstractmethod
    async def complete_json(self, system_instruction: str, user_prompt: str) -> str:
        """
        Ask the model for a single JSON document.

        Args:
            system_instruction: Instruction describing the required JSON schema
            user_prompt: The natural-language task

        Returns:
            The raw text content of the model's answer

        Raises:
            UpstreamTimeoutError: If the call exceeded its deadline
            TransportError: If the call failed before an answer was received
            SerializationError: If the answer carried no usable content
        """
        pass


class EmbeddingProvider(ABC):
    """
    Implementations:
    - GeminiEmbeddingProvider: Gemini text-embedding-004
    """

    @abstractmethod
    async def embed_document(self, text: str) -> list[float]:
        """Embedding used for stored recipes."""
        pass

    @abstractmethod
    async def embed_query(self, text: str) -> list[float]:
        """Embedding used for search queries."""
        pass
