"""pytest fixtures for imagegen tests.

Provides:
- engine: Function-scoped SQLite database (file in tmp_path) with all tables created
- session: Function-scoped database session
- uow_factory: Function-scoped UnitOfWork factory bound to the test database
- provider: Scripted nano-banana provider served through httpx.MockTransport
"""

import os

# Must be set before any imagegen module builds Settings()
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import json  # noqa: E402
from typing import Any, AsyncGenerator, Callable  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel  # noqa: E402

import imagegen.models  # noqa: E402, F401
from imagegen.services.image_generation.provider_client import NanoBananaClient  # noqa: E402
from imagegen.uow import create_uow_factory  # noqa: E402

API_BASE = "https://provider.test"
API_KEY = "test-key"


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Provide a fresh SQLite database with the schema created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'imagegen.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Provide function-scoped database session."""
    session_factory = async_sessionmaker(bind=engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def uow_factory(engine):
    """Provide function-scoped UnitOfWork factory."""
    session_factory = async_sessionmaker(bind=engine, expire_on_commit=False)
    return create_uow_factory(session_factory)


class RecordingByteStream(httpx.AsyncByteStream):
    """Event-stream body that records how many chunks were pulled."""

    def __init__(self, chunks: list[str]):
        self.chunks = chunks
        self.yielded = 0
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            self.yielded += 1
            yield chunk.encode("utf-8")

    async def aclose(self) -> None:
        self.closed = True


def event_stream_response(chunks: list[str], status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        headers={"content-type": "text/event-stream"},
        stream=RecordingByteStream(chunks),
    )


class ScriptedProvider:
    """Fake nano-banana API.

    ``submit`` builds the submission response. ``results`` is consumed one
    entry per poll; the last entry repeats once the script runs out. Entries
    may be dicts (served as JSON), strings (served as raw text), or
    ``httpx.Response`` objects.
    """

    def __init__(self):
        self.submit: Callable[[], httpx.Response] = lambda: event_stream_response(
            ['data: {"id": "job-1"}\n\n']
        )
        self.results: list[Any] = [{"data": {"status": "succeeded", "results": [{"url": "X"}]}}]
        self.submit_bodies: list[dict] = []
        self.polled_ids: list[str] = []
        self.poll_error: Exception | None = None

    @property
    def poll_calls(self) -> int:
        return len(self.polled_ids)

    def handler(self, request: httpx.Request) -> httpx.Response:
        assert request.headers["authorization"] == f"Bearer {API_KEY}"

        if request.url.path == NanoBananaClient.SUBMIT_PATH:
            self.submit_bodies.append(json.loads(request.content))
            return self.submit()

        if request.url.path == NanoBananaClient.RESULT_PATH:
            self.polled_ids.append(json.loads(request.content)["id"])
            if self.poll_error is not None:
                raise self.poll_error
            index = min(len(self.polled_ids), len(self.results)) - 1
            entry = self.results[index]
            if isinstance(entry, httpx.Response):
                return entry
            if isinstance(entry, str):
                return httpx.Response(200, text=entry)
            return httpx.Response(200, json=entry)

        return httpx.Response(404, json={"error": "not found"})

    def client(self, **kwargs) -> NanoBananaClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return NanoBananaClient(
            api_base=API_BASE, api_key=API_KEY, http_client=http_client, **kwargs
        )


@pytest.fixture
def provider() -> ScriptedProvider:
    return ScriptedProvider()


def processing(status: str = "processing") -> dict:
    return {"data": {"status": status, "results": []}}


def succeeded(url: str) -> dict:
    return {"data": {"status": "succeeded", "results": [{"url": url}]}}
