"""No-op LLM client when no provider is configured. Returns a friendly message."""
from __future__ import annotations

from typing import List

from cogc_planning.clients.llm.base import BaseLLMClient, LLMMessage


NOOP_MESSAGE = (
    "Le modèle de langage n'est pas configuré (clé MISTRAL_API_KEY ou LLM_API_KEY manquante). "
    "Contactez l'administrateur."
)


class NoOpLLMClient(BaseLLMClient):
    """Placeholder client when no API key is configured."""

    @property
    def provider(self) -> str:
        return "noop"

    async def complete(self, prompt: str, *, model: str | None = None) -> str:
        return NOOP_MESSAGE

    async def chat(self, messages: List[LLMMessage], *, json_mode: bool = False) -> str:
        return NOOP_MESSAGE
