"""
LLM clients: base, registry.

Provider registration: default_registry.register(provider, builder).
Built from AssistantConfig.llm_client_config() in the API lifespan.
"""
from cogc_planning.clients.llm.base import BaseLLMClient, LLMMessage
from cogc_planning.clients.llm.registry import LLMRegistry, build_llm_client, default_registry

__all__ = [
    "BaseLLMClient",
    "LLMMessage",
    "LLMRegistry",
    "build_llm_client",
    "default_registry",
]
