"""
Document extraction (OCR) clients: PDF bytes in, raw text out.
"""
from cogc_planning.clients.ocr.base import BaseOCRClient
from cogc_planning.clients.ocr.providers.mistral import MistralOCRClient
from cogc_planning.clients.ocr.providers.noop import NoOpOCRClient

__all__ = ["BaseOCRClient", "MistralOCRClient", "NoOpOCRClient", "build_ocr_client"]


def build_ocr_client(*, api_key: str | None, url: str, model: str) -> BaseOCRClient:
    """Mistral OCR when a key is configured, the no-op client otherwise."""
    if not api_key:
        return NoOpOCRClient()
    return MistralOCRClient(api_key=api_key, url=url, model=model)
