"""No-op OCR client when no API key is configured."""
from __future__ import annotations

from cogc_planning.clients.ocr.base import BaseOCRClient
from cogc_planning.core.exceptions import ConfigurationError


class NoOpOCRClient(BaseOCRClient):
    @property
    def provider(self) -> str:
        return "noop"

    async def extract(self, pdf_bytes: bytes) -> str:
        raise ConfigurationError(
            "OCR is not configured (MISTRAL_API_KEY or OCR_API_KEY missing)",
            user_message="La lecture des PDF n'est pas configurée. Contactez l'administrateur.",
        )
