"""
LLM provider registry: map provider name -> build client from config dict.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict

from cogc_planning.clients.llm.base import BaseLLMClient

logger = logging.getLogger(__name__)


class LLMRegistry:
    """Maps provider id to a builder that takes config dict and returns BaseLLMClient."""

    def __init__(self) -> None:
        self._builders: Dict[str, Callable[[Dict[str, Any]], BaseLLMClient]] = {}

    def register(self, provider: str, builder: Callable[[Dict[str, Any]], BaseLLMClient]) -> None:
        """Register a builder for this provider. builder(config_dict) -> BaseLLMClient."""
        self._builders[provider] = builder

    def get(self, provider: str) -> Callable[[Dict[str, Any]], BaseLLMClient] | None:
        return self._builders.get(provider)

    def build(self, provider: str, config: Dict[str, Any]) -> BaseLLMClient:
        """Build a client for this provider with the given config. Raises KeyError if unknown provider."""
        builder = self._builders.get(provider)
        if builder is None:
            raise KeyError(f"Unknown LLM provider: {provider!r}. Registered: {list(self._builders)}")
        return builder(config)


# Default registry with all built-in providers pre-registered.
default_registry = LLMRegistry()

from cogc_planning.clients.llm.providers.openai import mistral_builder, openai_builder  # noqa: E402

default_registry.register("openai", openai_builder)
default_registry.register("mistral", mistral_builder)


def build_llm_client(provider: str, config: Dict[str, Any]) -> BaseLLMClient:
    """Build the configured client, or the no-op client when no API key is set."""
    from cogc_planning.clients.llm.providers.noop import NoOpLLMClient

    if not config.get("api_key"):
        logger.warning("No API key for LLM provider %r, using no-op client", provider)
        return NoOpLLMClient()
    return default_registry.build(provider, config)
