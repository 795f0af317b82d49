"""Structuring adapter: OCR text / corrections -> structured candidate entries via the LLM."""
from __future__ import annotations

import datetime as dt
import json
import logging
import re
from typing import TYPE_CHECKING, Any, List, Optional, Sequence

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from cogc_planning.bulletin.types import (
    BulletinMetadata,
    CandidateEntry,
    EntryConfidence,
    Question,
    QuestionOption,
    StructuredResponse,
)
from cogc_planning.core.exceptions import ParseError

if TYPE_CHECKING:
    from cogc_planning.clients.llm.base import BaseLLMClient, LLMMessage
    from cogc_planning.clients.retry import RetryPolicy

logger = logging.getLogger(__name__)

_NULLS = ("", "null", "none", "-null-")


def _none_if_blank(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str) and value.strip().lower() in _NULLS:
        return None
    return value


def _lenient_date(value: Any) -> Optional[dt.date]:
    value = _none_if_blank(value)
    if value is None or isinstance(value, dt.date):
        return value
    try:
        return dt.date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


# ── Response schema ─────────────────────────────────────────────────


class ServicePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    date: dt.date
    code: str = ""
    service_code: str = ""
    poste_code: Optional[str] = None
    horaires: Optional[str] = None
    confidence: EntryConfidence = EntryConfidence.HIGH
    note: Optional[str] = None

    @field_validator("code", "service_code", mode="before")
    @classmethod
    def _code(cls, v: Any) -> str:
        return "" if _none_if_blank(v) is None else str(v).strip().upper()

    @field_validator("poste_code", "horaires", "note", mode="before")
    @classmethod
    def _blank(cls, v: Any) -> Any:
        v = _none_if_blank(v)
        return str(v).strip() if v is not None else None

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, v: Any) -> Any:
        try:
            return EntryConfidence(str(v).strip().lower())
        except ValueError:
            return EntryConfidence.LOW

    @model_validator(mode="after")
    def _has_code(self) -> "ServicePayload":
        if not self.code and not self.service_code:
            raise ValueError("service without code")
        return self

    def to_entry(self) -> CandidateEntry:
        return CandidateEntry(
            date=self.date,
            displayed_date=self.date,
            raw_code=self.code or self.service_code,
            service_code=self.service_code or self.code,
            poste_code=self.poste_code,
            confidence=self.confidence,
            note=self.note,
            horaires=self.horaires,
        )


class OptionPayload(BaseModel):
    label: str
    value: str

    @field_validator("label", "value", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return "" if v is None else str(v)


class QuestionPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    index: int = 0
    text: str
    options: List[OptionPayload] = Field(default_factory=list)

    def to_question(self) -> Question:
        return Question(
            index=self.index,
            text=self.text,
            options=tuple(QuestionOption(label=o.label or o.value, value=o.value) for o in self.options),
        )


class MetadataPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    agent_name: Optional[str] = None
    numero_cp: Optional[str] = None
    periode_debut: Optional[dt.date] = None
    periode_fin: Optional[dt.date] = None

    @field_validator("agent_name", "numero_cp", mode="before")
    @classmethod
    def _blank(cls, v: Any) -> Any:
        v = _none_if_blank(v)
        return str(v).strip() if v is not None else None

    @field_validator("periode_debut", "periode_fin", mode="before")
    @classmethod
    def _date(cls, v: Any) -> Optional[dt.date]:
        return _lenient_date(v)


class StructuringPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: str = ""
    services: List[ServicePayload] = Field(default_factory=list)
    questions: List[QuestionPayload] = Field(default_factory=list)
    ready_to_import: bool = False
    metadata: MetadataPayload = Field(default_factory=MetadataPayload)

    @field_validator("services", "questions", mode="before")
    @classmethod
    def _list(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata(cls, v: Any) -> Any:
        return {} if v is None else v


# ── Parsing ─────────────────────────────────────────────────────────


def _extract_json(raw: str) -> Any:
    text = re.sub(r"<thinking>.*?</thinking>", "", raw or "", flags=re.DOTALL).strip()
    if text.startswith("```"):
        text = "\n".join(line for line in text.splitlines() if not line.strip().startswith("```")).strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        # Fallback: outermost {...} anywhere in the answer
        match = re.search(r"\{.*\}", text, re.DOTALL)
        if match:
            try:
                return json.loads(match.group())
            except json.JSONDecodeError:
                pass
    raise ParseError("Structuring response is not JSON", details={"raw": (raw or "")[:500]})


def parse_structured_response(raw: str) -> StructuredResponse:
    """Validate a model answer. Raises ParseError when it does not match the schema."""
    data = _extract_json(raw)
    if not isinstance(data, dict):
        raise ParseError("Structuring response is not a JSON object", details={"raw": raw[:500]})
    try:
        payload = StructuringPayload.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ParseError(
            "Structuring response does not match the schema",
            details={"errors": exc.errors(include_url=False, include_context=False)[:10], "raw": raw[:500]},
            cause=exc,
        ) from exc
    metadata = payload.metadata
    return StructuredResponse(
        message=payload.message.strip(),
        services=[s.to_entry() for s in payload.services],
        questions=[q.to_question() for q in payload.questions],
        ready_to_import=payload.ready_to_import,
        metadata=BulletinMetadata(
            agent_name=metadata.agent_name,
            numero_cp=metadata.numero_cp,
            periode_debut=metadata.periode_debut,
            periode_fin=metadata.periode_fin,
        ),
        raw=raw,
    )


class StructuringAdapter:
    """One structuring call: system prompt (with catalog) + replayed history + user prompt."""

    def __init__(self, llm: "BaseLLMClient", retry: "RetryPolicy") -> None:
        self._llm = llm
        self._retry = retry

    async def structure(
        self,
        system_prompt: str,
        history: Sequence["LLMMessage"],
        user_prompt: str,
    ) -> StructuredResponse:
        messages: List["LLMMessage"] = [{"role": "system", "content": system_prompt}]
        messages.extend(history)
        messages.append({"role": "user", "content": user_prompt})
        raw = await self._retry.run(lambda: self._llm.chat(messages, json_mode=True), name="structuring")
        response = parse_structured_response(raw)
        logger.info(
            "structuring: %d services, %d questions, ready=%s",
            len(response.services), len(response.questions), response.ready_to_import,
        )
        return response
