from __future__ import annotations

from abc import ABC, abstractmethod


class BaseOCRClient(ABC):
    @property
    @abstractmethod
    def provider(self) -> str:
        ...

    @abstractmethod
    async def extract(self, pdf_bytes: bytes) -> str:
        """Return the document text. Raises ExtractionError when nothing was read."""
        ...

    async def aclose(self) -> None:
        return None
