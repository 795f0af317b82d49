from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Literal, TypedDict


class LLMMessage(TypedDict):
    role: Literal["system", "user", "assistant"]
    content: str


class BaseLLMClient(ABC):
    @property
    @abstractmethod
    def provider(self) -> str:
        ...

    @abstractmethod
    async def complete(self, prompt: str, *, model: str | None = None) -> str:
        ...

    async def chat(self, messages: List[LLMMessage], *, json_mode: bool = False) -> str:
        """Send a multi-turn conversation with an optional system message.

        ``json_mode`` asks providers that support it for a JSON object
        response; callers still validate the output themselves.

        Default implementation concatenates all messages into a single prompt
        and calls ``complete()``.  Override in providers that support native
        multi-turn / system-prompt APIs.
        """
        parts: List[str] = []
        for msg in messages:
            role = msg.get("role", "user")
            content = (msg.get("content") or "").strip()
            if not content:
                continue
            if role == "system":
                parts.insert(0, f"[System instructions]\n{content}\n")
            else:
                parts.append(f"{role}: {content}")
        return await self.complete("\n".join(parts))
