"""
Logger setup: console and rotating JSON file handlers on the package root logger.
"""
from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Any, MutableMapping, Optional

from cogc_planning.core.logger.config import LoggerConfig
from cogc_planning.core.logger.formatters import JsonFormatter, PlainConsoleFormatter


def configure(config: Optional[LoggerConfig] = None) -> logging.Logger:
    """Configure the package root logger (LoggerConfig.from_env() by default). Safe to call again."""
    config = config or LoggerConfig.from_env()
    level = getattr(logging, config.level.upper(), logging.INFO)
    root = logging.getLogger(config.root_name)
    root.setLevel(level)
    root.handlers.clear()
    root.propagate = False

    if config.console:
        console = logging.StreamHandler()
        console.setFormatter(JsonFormatter() if config.console_json else PlainConsoleFormatter())
        root.addHandler(console)

    if config.file_rotating and config.log_dir:
        try:
            os.makedirs(config.log_dir, exist_ok=True)
        except OSError as exc:
            root.warning("Log dir %s unusable (%s), file logging disabled", config.log_dir, exc)
        else:
            handler = RotatingFileHandler(
                os.path.join(config.log_dir, f"{config.log_file_basename}.log"),
                maxBytes=config.max_bytes,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
            handler.setFormatter(JsonFormatter())
            root.addHandler(handler)
    return root


class ConversationLoggerAdapter(logging.LoggerAdapter):
    """Prefixes messages with the turn's ids and passes them as ``record.extra`` for JSON output."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra["extra"] = {**self.extra, **extra.get("extra", {})}
        kwargs["extra"] = extra
        ids = " ".join(f"{k}={v}" for k, v in self.extra.items())
        return (f"[{ids}] {msg}" if ids else msg), kwargs


def conversation_logger(logger: logging.Logger, **ids: Any) -> ConversationLoggerAdapter:
    return ConversationLoggerAdapter(logger, {k: str(v) for k, v in ids.items() if v is not None})
