"""
Local cache store for user, project, document, message and generation records.

Each entity kind lives under its own key and holds a serialized collection that
is read and written wholesale on every mutation. Lookups are linear scans by id.
The backend is Redis in deployment and an in-process dict in tests.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Optional

import redis.asyncio as redis
import structlog

from copysensei.core.config import settings
from copysensei.models.records import (
    DocumentRecord,
    GenerationRecord,
    MessageRecord,
    ProjectRecord,
    UserRecord,
)

logger = structlog.get_logger(__name__)


class CacheBackend(ABC):
    """Minimal async key/value capability used by the store."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...


class RedisCache(CacheBackend):
    """Redis-backed cache with JSON values."""

    def __init__(self):
        self._client: Optional[redis.Redis] = None

    async def connect(self) -> None:
        """Establish Redis connection."""
        if self._client is None:
            self._client = redis.from_url(
                str(settings.redis_url),
                encoding="utf-8",
                decode_responses=True,
            )

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> redis.Redis:
        """Get Redis client, raising if not connected."""
        if self._client is None:
            raise RuntimeError("Redis not connected. Call connect() first.")
        return self._client

    async def get(self, key: str) -> Optional[Any]:
        data = await self.client.get(key)
        return json.loads(data) if data else None

    async def set(self, key: str, value: Any) -> None:
        await self.client.set(key, json.dumps(value))

    async def delete(self, key: str) -> None:
        await self.client.delete(key)


class MemoryCache(CacheBackend):
    """Process-local backend. Values are stored as JSON text like Redis does."""

    def __init__(self):
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> Optional[Any]:
        data = self._data.get(key)
        return json.loads(data) if data else None

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)


class LocalCacheStore:
    """
    Per-user record store over a cache backend.

    Key Patterns ({prefix}:{scope}:{kind}):
    - user - the signed-in user with credit balance
    - projects - all projects
    - documents - all documents
    - messages - all chat messages, append-only
    - generations - copy generation ledger
    - current_project - id of the selected project
    """

    USER = "user"
    PROJECTS = "projects"
    DOCUMENTS = "documents"
    MESSAGES = "messages"
    GENERATIONS = "generations"
    CURRENT_PROJECT = "current_project"

    def __init__(self, backend: CacheBackend, scope: str, prefix: Optional[str] = None):
        self.backend = backend
        self.scope = scope
        self.prefix = prefix or settings.cache_key_prefix

    def _key(self, kind: str) -> str:
        return f"{self.prefix}:{self.scope}:{kind}"

    async def _load(self, kind: str) -> list[dict]:
        return await self.backend.get(self._key(kind)) or []

    async def _store(self, kind: str, items: list[dict]) -> None:
        await self.backend.set(self._key(kind), items)

    # User
    async def get_user(self) -> Optional[UserRecord]:
        data = await self.backend.get(self._key(self.USER))
        return UserRecord.model_validate(data) if data else None

    async def set_user(self, user: UserRecord) -> None:
        await self.backend.set(self._key(self.USER), user.to_cache())

    async def update_user_credits(self, credits: int) -> Optional[UserRecord]:
        user = await self.get_user()
        if user is None:
            return None
        user.credits = credits
        await self.set_user(user)
        return user

    # Projects
    async def get_projects(self) -> list[ProjectRecord]:
        return [ProjectRecord.model_validate(p) for p in await self._load(self.PROJECTS)]

    async def get_project(self, project_id: str) -> Optional[ProjectRecord]:
        for project in await self.get_projects():
            if project.id == project_id:
                return project
        return None

    async def save_project(self, project: ProjectRecord) -> None:
        """Insert or replace a project by id."""
        items = await self._load(self.PROJECTS)
        for index, item in enumerate(items):
            if item.get("id") == project.id:
                items[index] = project.to_cache()
                break
        else:
            items.append(project.to_cache())
        await self._store(self.PROJECTS, items)

    async def delete_project(self, project_id: str) -> None:
        """Remove a project with its messages, documents and generations."""
        projects = [p for p in await self._load(self.PROJECTS) if p.get("id") != project_id]
        await self._store(self.PROJECTS, projects)

        for kind in (self.MESSAGES, self.DOCUMENTS, self.GENERATIONS):
            items = [i for i in await self._load(kind) if i.get("projectId") != project_id]
            await self._store(kind, items)

        if await self.get_current_project_id() == project_id:
            await self.backend.delete(self._key(self.CURRENT_PROJECT))

    async def get_current_project_id(self) -> Optional[str]:
        return await self.backend.get(self._key(self.CURRENT_PROJECT))

    async def set_current_project_id(self, project_id: str) -> None:
        await self.backend.set(self._key(self.CURRENT_PROJECT), project_id)

    # Documents
    async def get_documents(self) -> list[DocumentRecord]:
        return [DocumentRecord.model_validate(d) for d in await self._load(self.DOCUMENTS)]

    async def get_project_documents(self, project_id: str) -> list[DocumentRecord]:
        return [d for d in await self.get_documents() if d.project_id == project_id]

    async def save_document(self, document: DocumentRecord) -> None:
        items = await self._load(self.DOCUMENTS)
        items.append(document.to_cache())
        await self._store(self.DOCUMENTS, items)

    async def delete_document(self, document_id: str) -> None:
        items = [d for d in await self._load(self.DOCUMENTS) if d.get("id") != document_id]
        await self._store(self.DOCUMENTS, items)

    # Messages
    async def get_messages(self) -> list[MessageRecord]:
        return [MessageRecord.model_validate(m) for m in await self._load(self.MESSAGES)]

    async def get_project_messages(self, project_id: str) -> list[MessageRecord]:
        return [m for m in await self.get_messages() if m.project_id == project_id]

    async def save_message(self, message: MessageRecord) -> None:
        items = await self._load(self.MESSAGES)
        items.append(message.to_cache())
        await self._store(self.MESSAGES, items)

    # Copy generations
    async def get_generations(self) -> list[GenerationRecord]:
        return [GenerationRecord.model_validate(g) for g in await self._load(self.GENERATIONS)]

    async def save_generation(self, generation: GenerationRecord) -> None:
        items = await self._load(self.GENERATIONS)
        items.append(generation.to_cache())
        await self._store(self.GENERATIONS, items)


# Global cache instance
cache = RedisCache()
