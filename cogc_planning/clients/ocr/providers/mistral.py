"""Mistral OCR provider over httpx: POST /v1/ocr with the PDF as a base64 data URL."""
from __future__ import annotations

import base64
import logging
from typing import Any, Dict, List, Optional

import httpx

from cogc_planning.clients.ocr.base import BaseOCRClient
from cogc_planning.core.exceptions import ExtractionError

logger = logging.getLogger(__name__)


class MistralOCRClient(BaseOCRClient):
    """
    One HTTP call per document. Status errors are raised as
    ``httpx.HTTPStatusError`` so the caller's RetryPolicy can tell 5xx/429
    from other 4xx.
    """

    def __init__(
        self,
        *,
        api_key: str,
        url: str = "https://api.mistral.ai/v1/ocr",
        model: str = "mistral-ocr-latest",
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._api_key = api_key
        self._url = url
        self._model = model
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(120.0, connect=10.0))

    @property
    def provider(self) -> str:
        return "mistral"

    async def extract(self, pdf_bytes: bytes) -> str:
        payload = {
            "model": self._model,
            "document": {
                "type": "document_url",
                "document_url": "data:application/pdf;base64," + base64.b64encode(pdf_bytes).decode("ascii"),
            },
        }
        response = await self._client.post(
            self._url,
            json=payload,
            headers={"Authorization": f"Bearer {self._api_key}"},
        )
        response.raise_for_status()
        text = join_pages(response.json())
        if not text.strip():
            raise ExtractionError("OCR returned no text", details={"provider": self.provider})
        logger.info("OCR extracted %d chars from %d bytes", len(text), len(pdf_bytes))
        return text

    async def aclose(self) -> None:
        await self._client.aclose()


def join_pages(data: Dict[str, Any]) -> str:
    """Pages' markdown (or plain text) joined with blank lines; falls back to a top-level ``text``."""
    pages: List[Dict[str, Any]] = data.get("pages") or []
    if pages:
        parts = [(p.get("markdown") or p.get("text") or "").strip() for p in pages]
        return "\n\n".join(p for p in parts if p)
    return str(data.get("text") or "")
