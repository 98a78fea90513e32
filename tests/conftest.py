import os

# Settings are read at import time, so configure them before the app loads.
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("STUDIO_API_URL", "http://studio.test")
os.environ.setdefault("ADMIN_SYNC_SECRET", "test-sync-secret")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")
os.environ.setdefault("CLOUDINARY_CLOUD_NAME", "demo-cloud")
os.environ.setdefault("CLOUDINARY_API_KEY", "123456")
os.environ.setdefault("CLOUDINARY_API_SECRET", "cloud-secret")

from datetime import date, datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.http_client import get_http_client
from app.models import Client, Photo

STUDIO_GALLERY_URL = "http://studio.test/api/internal/legacy/gallery/{slug}"


class FakeUpstream:
    """
    Routes outbound requests to canned responses by exact URL.
    Unknown URLs answer 404. Every request is recorded.
    """

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, url, status_code=200, **kwargs):
        self.routes[url] = lambda request: httpx.Response(status_code, **kwargs)

    def add_handler(self, url, handler):
        self.routes[url] = handler

    def studio(self, slug, status_code=200, **kwargs):
        self.add(STUDIO_GALLERY_URL.format(slug=slug), status_code, **kwargs)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, text="not found")
        return route(request)

    def urls(self):
        return [str(r.url) for r in self.requests]


class BrokenStream(httpx.AsyncByteStream):
    """Body that fails after the first chunk."""

    async def __aiter__(self):
        yield b"partial-bytes"
        raise httpx.ReadError("connection reset by peer")


@pytest.fixture
def broken_stream():
    return BrokenStream


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest_asyncio.fixture
async def http_client(upstream):
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler)) as client:
        yield client


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def api(session_factory, http_client):
    from app.main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_http_client] = lambda: http_client

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def seed_gallery(session_factory):
    """
    Insert a client and its photos.

    photos: list of dicts with url/filename/public_id; created_at is spaced
    one minute apart in list order so the first photo is the oldest.
    """
    async def _seed(slug, name="Test Gallery", photos=(), **fields):
        async with session_factory() as session:
            client = Client(name=name, slug=slug, event_date=date(2024, 6, 1), **fields)
            session.add(client)
            await session.flush()
            base = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
            for i, photo in enumerate(photos):
                session.add(Photo(client_id=client.id, created_at=base + timedelta(minutes=i), **photo))
            await session.commit()
            return client.id

    return _seed
