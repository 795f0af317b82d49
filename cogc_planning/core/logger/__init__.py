"""
Project logger: rotating file (JSON) + console, configured once at startup.

Usage:
    from cogc_planning.core.logger import configure, LoggerConfig, conversation_logger

    configure()  # LoggerConfig.from_env(): LOG_LEVEL, LOG_DIR, LOG_FILE_BASENAME, ...

    logger = logging.getLogger(__name__)
    logger.info("Started")

    # Tag every record of a turn with its conversation / agent ids
    log = conversation_logger(logger, conversation_id=session.id, agent_id=session.agent_id)
    log.info("status %s -> %s", old, new)
"""
from cogc_planning.core.logger.config import LoggerConfig
from cogc_planning.core.logger.formatters import JsonFormatter, PlainConsoleFormatter
from cogc_planning.core.logger.setup import (
    ConversationLoggerAdapter,
    configure,
    conversation_logger,
)

__all__ = [
    "LoggerConfig",
    "JsonFormatter",
    "PlainConsoleFormatter",
    "ConversationLoggerAdapter",
    "configure",
    "conversation_logger",
]
