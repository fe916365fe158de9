"""
Pytest configuration and fixtures.
"""

import json
from typing import AsyncGenerator, Optional

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from copysensei.api.deps import get_cache_backend, get_remote_data_service
from copysensei.api.main import app
from copysensei.core.cache import LocalCacheStore, MemoryCache
from copysensei.core.config import settings
from copysensei.core.database import Base, get_db
from copysensei.models.project import ToneOfVoice
from copysensei.models.records import ProjectRecord, UserRecord
from copysensei.services.chat_orchestrator import chat_sessions
from copysensei.services.functions_client import FunctionsClient
from copysensei.services.remote_data import RemoteDataService


class FunctionsStub:
    """
    Stands in for the remote functions behind an httpx.MockTransport.

    Records every request body; `fail_with` makes the next calls answer
    HTTP 500 with an error body.
    """

    def __init__(self):
        self.generated_copy = "Fresh from our oven to your table."
        self.research_data: object = {"page_snapshot": {"headline": "Corner Bakery"}}
        self.fail_with: Optional[str] = None
        self.calls: list[tuple[str, dict]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        name = request.url.path.rsplit("/", 1)[-1]
        body = json.loads(request.content)
        self.calls.append((name, body))

        if self.fail_with:
            return httpx.Response(500, json={"error": self.fail_with})
        if name == "generate-copy":
            return httpx.Response(200, json={"generatedCopy": self.generated_copy})
        if name == "fetch-research":
            return httpx.Response(200, json={"researchData": self.research_data})
        return httpx.Response(404, json={"error": "Unknown function"})

    def client(self) -> FunctionsClient:
        return FunctionsClient(
            base_url="http://functions.test/functions/v1",
            api_key="test-key",
            transport=httpx.MockTransport(self.handler),
        )

    def calls_to(self, name: str) -> list[dict]:
        return [body for called, body in self.calls if called == name]


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory over a throwaway SQLite database."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def test_db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def functions_stub() -> FunctionsStub:
    return FunctionsStub()


@pytest.fixture
def memory_cache() -> MemoryCache:
    return MemoryCache()


@pytest.fixture
def remote(functions_stub, session_factory) -> RemoteDataService:
    return RemoteDataService(functions=functions_stub.client(), session_factory=session_factory)


@pytest.fixture
def offline_remote(functions_stub) -> RemoteDataService:
    """Functions only, no database."""
    return RemoteDataService(functions=functions_stub.client())


@pytest.fixture
def mock_user_id() -> str:
    """Return mock user ID for testing."""
    return settings.dev_user_id


@pytest_asyncio.fixture
async def store(memory_cache, mock_user_id) -> LocalCacheStore:
    return LocalCacheStore(memory_cache, scope=mock_user_id)


@pytest.fixture
def sample_project(mock_user_id) -> ProjectRecord:
    return ProjectRecord(
        user_id=mock_user_id,
        name="Corner Bakery",
        website_url="https://cornerbakery.example",
        tone_of_voice=ToneOfVoice.FRIENDLY,
        research_data={"audience": "Local families who love fresh bread"},
        custom_notes="Mention the sourdough.",
    )


@pytest_asyncio.fixture
async def seeded_store(store, sample_project, mock_user_id) -> LocalCacheStore:
    """Store holding a user with one credit and a selected project."""
    await store.set_user(UserRecord(id=mock_user_id, email="dev@copysensei.local", credits=1))
    await store.save_project(sample_project)
    await store.set_current_project_id(sample_project.id)
    return store


@pytest_asyncio.fixture
async def client(session_factory, memory_cache, remote) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client wired to the test database, cache and functions."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache_backend] = lambda: memory_cache
    app.dependency_overrides[get_remote_data_service] = lambda: remote
    chat_sessions.clear()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    chat_sessions.clear()


@pytest.fixture
def sample_project_request() -> dict:
    """Return sample create project request."""
    return {
        "name": "Corner Bakery",
        "website_url": "https://cornerbakery.example",
        "tone_of_voice": "friendly",
    }
