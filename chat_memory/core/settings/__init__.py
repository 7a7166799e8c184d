"""Domain-specific configuration models."""

from chat_memory.core.settings.app_config import AppConfig
from chat_memory.core.settings.auth_config import AuthConfig
from chat_memory.core.settings.database_config import DatabaseConfig
from chat_memory.core.settings.llm_config import LLMConfig
from chat_memory.core.settings.memory_config import MemoryConfig

__all__ = [
    "AppConfig",
    "AuthConfig",
    "DatabaseConfig",
    "LLMConfig",
    "MemoryConfig",
]
