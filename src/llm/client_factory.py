# src/llm/client_factory.py - v3
"""Factory: instantiate a provider adapter from the configured provider name.

Called once per process by the service wiring (api/facade.py).
"""

from __future__ import annotations

import importlib
import logging

from storegen.config.settings import Settings
from storegen.llm.base_client import BaseProviderAdapter
from storegen.llm.config import resolve_provider

logger = logging.getLogger(__name__)

# Registry of provider name -> adapter class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    "gemini": "storegen.llm.adapters.chat_completions_adapter.ChatCompletionsAdapter",
    "forge": "storegen.llm.adapters.chat_completions_adapter.ChatCompletionsAdapter",
    "openai": "storegen.llm.adapters.chat_completions_adapter.ChatCompletionsAdapter",
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def create_provider_adapter(
    settings: Settings,
    provider: str | None = None,
    **kwargs: object,
) -> BaseProviderAdapter:
    """Instantiate the adapter for a provider.

    Args:
        settings: Application settings (credentials and call policy).
        provider: Provider override; defaults to settings.ai_provider.
        **kwargs: Extra adapter arguments (http_client, sleep).

    Returns:
        Configured BaseProviderAdapter instance.

    Raises:
        UnsupportedProviderError: If provider is not registered.
    """
    name = provider or settings.ai_provider
    if name not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported AI provider: {name!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )

    adapter_cls = _import_class(_PROVIDER_REGISTRY[name])
    config = resolve_provider(settings, name)

    logger.debug(
        "Creating provider adapter: provider=%s, model=%s, source=%s",
        name, config.model, config.source,
    )
    return adapter_cls(config=config, **kwargs)


def register_provider(name: str, class_path: str) -> None:
    """Register a custom provider adapter.

    The class must accept ``config: ProviderConfig`` as its first argument.
    """
    _PROVIDER_REGISTRY[name] = class_path
    logger.info("Registered AI provider: %s -> %s", name, class_path)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
