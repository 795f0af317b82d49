"""LLM provider implementations; built-ins are registered by clients.llm.registry."""
