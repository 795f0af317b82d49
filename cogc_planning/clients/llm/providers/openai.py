"""OpenAI-compatible LLM provider (OpenAI, Mistral La Plateforme): BaseLLMClient + registry builders."""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from cogc_planning.clients.llm.base import BaseLLMClient, LLMMessage

logger = logging.getLogger(__name__)

MISTRAL_BASE_URL = "https://api.mistral.ai/v1"


class OpenAILLMClient(BaseLLMClient):
    """
    Chat-completions client. Mistral exposes the same API, so the Mistral
    provider is this class pointed at its base URL.

    The SDK's own retry loop is disabled (``max_retries=0``); retries are the
    caller's RetryPolicy.
    """

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 0.0,
        max_tokens: Optional[int] = None,
        provider_name: str = "openai",
    ) -> None:
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._provider = provider_name
        self._client = AsyncOpenAI(
            api_key=api_key or os.environ.get("OPENAI_API_KEY"),
            base_url=base_url,
            max_retries=0,
        )

    @property
    def provider(self) -> str:
        return self._provider

    async def complete(self, prompt: str, *, model: Optional[str] = None) -> str:
        return await self._create(
            [{"role": "user", "content": prompt}], model=model or self._model, json_mode=False
        )

    async def chat(self, messages: List[LLMMessage], *, json_mode: bool = False) -> str:
        """Native multi-turn chat with system-prompt support."""
        return await self._create(list(messages), model=self._model, json_mode=json_mode)

    async def _create(self, messages: List[Dict[str, Any]], *, model: str, json_mode: bool) -> str:
        kwargs: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": self._temperature,
        }
        if self._max_tokens is not None:
            kwargs["max_tokens"] = self._max_tokens
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        response = await self._client.chat.completions.create(**kwargs)
        content = response.choices[0].message.content or ""
        logger.debug("%s chat completion: %d chars", self._provider, len(content))
        return content


def openai_builder(config: Dict[str, Any]) -> OpenAILLMClient:
    return OpenAILLMClient(
        model=config.get("model", "gpt-4o-mini"),
        api_key=config.get("api_key"),
        base_url=config.get("base_url"),
        temperature=float(config.get("temperature", 0.0)),
        max_tokens=config.get("max_tokens"),
    )


def mistral_builder(config: Dict[str, Any]) -> OpenAILLMClient:
    return OpenAILLMClient(
        model=config.get("model", "mistral-small-latest"),
        api_key=config.get("api_key") or os.environ.get("MISTRAL_API_KEY"),
        base_url=config.get("base_url") or MISTRAL_BASE_URL,
        temperature=float(config.get("temperature", 0.1)),
        max_tokens=config.get("max_tokens", 4096),
        provider_name="mistral",
    )
