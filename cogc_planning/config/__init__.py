"""
Application config: load from env.

Load from env: load_postgres_config(), load_assistant_config().
"""
from cogc_planning.config.assistant import AssistantConfig, load_assistant_config
from cogc_planning.config.postgres import PostgresConfig, load_postgres_config

__all__ = [
    "PostgresConfig",
    "load_postgres_config",
    "AssistantConfig",
    "load_assistant_config",
]
