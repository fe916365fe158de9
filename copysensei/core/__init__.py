"""Core infrastructure modules"""

from copysensei.core.config import settings
from copysensei.core.database import get_db, AsyncSessionLocal
from copysensei.core.cache import LocalCacheStore, RedisCache
from copysensei.core.llm_clients import LLMClient

__all__ = ["settings", "get_db", "AsyncSessionLocal", "LocalCacheStore", "RedisCache", "LLMClient"]
