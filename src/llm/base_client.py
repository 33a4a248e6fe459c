# src/llm/base_client.py - v2
"""Abstract provider adapter interface.

An adapter only talks to the model backend. Rate limiting, cost and
usage logging belong to the gateway.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from storegen.llm.models import GenerationRequest, GenerationResult, JSONRequest, JSONResult


class BaseProviderAdapter(ABC):
    """Unified interface for all model providers."""

    @abstractmethod
    async def generate_text(self, request: GenerationRequest) -> GenerationResult:
        """Chat completion."""

    @abstractmethod
    async def generate_json(self, request: JSONRequest) -> JSONResult:
        """Structured completion parsed as JSON."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (gemini, openai, forge)."""

    @property
    @abstractmethod
    def model(self) -> str:
        """Default model used for requests."""

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Whether credentials are present."""
