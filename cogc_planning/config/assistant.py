"""
cogc_planning.config.assistant – bulletin import and Q&A settings (dataclass + validators).

Env vars: LLM_PROVIDER, LLM_MODEL, LLM_API_KEY / MISTRAL_API_KEY, LLM_BASE_URL,
OCR_MODEL, OCR_URL, LLM_TIMEOUT, OCR_TIMEOUT, TURN_TIMEOUT, RETRY_MAX_ATTEMPTS,
RETRY_BASE_DELAY, RETRY_MAX_DELAY, NEXT_SERVICE_LIMIT, MAX_PDF_BYTES,
PLANNING_TIMEZONE, QA_CONVERSATIONAL_FALLBACK, HISTORY_WINDOW.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from cogc_planning.core.exceptions import ConfigurationError

MISTRAL_BASE_URL = "https://api.mistral.ai/v1"
MISTRAL_OCR_URL = "https://api.mistral.ai/v1/ocr"


def _positive(value: float, name: str) -> None:
    if value <= 0:
        raise ConfigurationError(f"{name} must be > 0, got {value!r}", details={"field": name})


def _flag(raw: Optional[str], default: bool) -> bool:
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class AssistantConfig:
    """
    Settings for the bulletin import pipeline and the Q&A resolver.

    Timeouts are per adapter call (one attempt); ``turn_timeout`` bounds a
    whole turn including retries.
    """

    llm_provider: str = "mistral"
    llm_model: str = "mistral-small-latest"
    llm_api_key: Optional[str] = None
    llm_base_url: Optional[str] = MISTRAL_BASE_URL
    llm_temperature: float = 0.1
    llm_max_tokens: int = 4096

    ocr_model: str = "mistral-ocr-latest"
    ocr_url: str = MISTRAL_OCR_URL
    ocr_api_key: Optional[str] = None

    llm_timeout: float = 60.0
    ocr_timeout: float = 120.0
    turn_timeout: float = 300.0

    retry_max_attempts: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 8.0

    next_service_limit: int = 5
    max_pdf_bytes: int = 10 * 1024 * 1024
    timezone: str = "Europe/Paris"
    conversational_fallback: bool = True
    # Number of past turns replayed to the structuring model
    history_window: int = 20

    def __post_init__(self) -> None:
        if not self.llm_provider.strip():
            raise ConfigurationError("llm_provider must be non-empty")
        for name in ("llm_timeout", "ocr_timeout", "turn_timeout", "retry_base_delay", "retry_max_delay"):
            _positive(getattr(self, name), name)
        for name in ("retry_max_attempts", "next_service_limit", "max_pdf_bytes", "history_window"):
            _positive(getattr(self, name), name)
        if self.retry_max_delay < self.retry_base_delay:
            raise ConfigurationError("retry_max_delay must be >= retry_base_delay")
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigurationError(f"Unknown timezone {self.timezone!r}", cause=exc) from exc

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def llm_client_config(self) -> Dict[str, Any]:
        """Config dict for clients.llm.default_registry.build()."""
        return {
            "model": self.llm_model,
            "api_key": self.llm_api_key,
            "base_url": self.llm_base_url,
            "temperature": self.llm_temperature,
            "max_tokens": self.llm_max_tokens,
        }

    @classmethod
    def from_env(cls, **overrides: Any) -> AssistantConfig:
        """
        Build config from environment variables. Overrides (keyword args)
        take precedence over env. The Mistral key serves both the LLM and
        the OCR endpoint unless LLM_API_KEY / OCR_API_KEY are set.
        """
        env = os.environ
        mistral_key = env.get("MISTRAL_API_KEY") or None

        def _str(attr: str, var: str, default: Optional[str]) -> Optional[str]:
            if attr in overrides:
                return overrides[attr]
            return env.get(var) or default

        def _num(attr: str, var: str, default: float, cast=float):
            if attr in overrides:
                return cast(overrides[attr])
            raw = env.get(var)
            try:
                return cast(raw) if raw not in (None, "") else default
            except ValueError as exc:
                raise ConfigurationError(f"{var} must be a number, got {raw!r}", cause=exc) from exc

        provider = _str("llm_provider", "LLM_PROVIDER", "mistral") or "mistral"
        default_base = MISTRAL_BASE_URL if provider == "mistral" else None
        return cls(
            llm_provider=provider,
            llm_model=_str("llm_model", "LLM_MODEL", "mistral-small-latest") or "mistral-small-latest",
            llm_api_key=_str("llm_api_key", "LLM_API_KEY", mistral_key),
            llm_base_url=_str("llm_base_url", "LLM_BASE_URL", default_base),
            ocr_model=_str("ocr_model", "OCR_MODEL", "mistral-ocr-latest") or "mistral-ocr-latest",
            ocr_url=_str("ocr_url", "OCR_URL", MISTRAL_OCR_URL) or MISTRAL_OCR_URL,
            ocr_api_key=_str("ocr_api_key", "OCR_API_KEY", mistral_key),
            llm_timeout=_num("llm_timeout", "LLM_TIMEOUT", 60.0),
            ocr_timeout=_num("ocr_timeout", "OCR_TIMEOUT", 120.0),
            turn_timeout=_num("turn_timeout", "TURN_TIMEOUT", 300.0),
            retry_max_attempts=_num("retry_max_attempts", "RETRY_MAX_ATTEMPTS", 3, int),
            retry_base_delay=_num("retry_base_delay", "RETRY_BASE_DELAY", 1.0),
            retry_max_delay=_num("retry_max_delay", "RETRY_MAX_DELAY", 8.0),
            next_service_limit=_num("next_service_limit", "NEXT_SERVICE_LIMIT", 5, int),
            max_pdf_bytes=_num("max_pdf_bytes", "MAX_PDF_BYTES", 10 * 1024 * 1024, int),
            timezone=_str("timezone", "PLANNING_TIMEZONE", "Europe/Paris") or "Europe/Paris",
            conversational_fallback=overrides.get(
                "conversational_fallback",
                _flag(env.get("QA_CONVERSATIONAL_FALLBACK"), True),
            ),
            history_window=_num("history_window", "HISTORY_WINDOW", 20, int),
        )


def load_assistant_config(**overrides: Any) -> AssistantConfig:
    """Load and validate assistant config from environment (with optional overrides)."""
    return AssistantConfig.from_env(**overrides)
