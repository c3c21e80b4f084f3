import os

os.environ.setdefault("OTLP_ENDPOINT", "")
os.environ.setdefault("ADMIN_API_KEY", "test-admin")
os.environ.setdefault("BASE_URL", "")

import pytest
import httpx
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from app.models.base import Base
from app.models.listing import Listing  # noqa: F401

from app.core.config import settings
from app.main import app
from app.core.db import get_db
from app.services.storage import LocalDiskBackend, get_storage


@pytest.fixture
def project_root(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "project_root", tmp_path)
    monkeypatch.setattr(settings, "base_url", "")
    return tmp_path


@pytest.fixture
def local_storage(project_root):
    return LocalDiskBackend(project_root / "uploads")


@pytest.fixture(scope="session")
async def async_engine():
    url = os.getenv("DATABASE_URL_TEST")
    if not url:
        pytest.skip("DATABASE_URL_TEST is not set")
    engine = create_async_engine(url, future=True, pool_pre_ping=True)
    try:
        # Create schema once per test session
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
async def db_session(async_engine):
    """
    Transactional rollback per test:
    - Start an outer transaction
    - Service-level commits only release a SAVEPOINT inside it
    """
    async with async_engine.connect() as conn:
        trans = await conn.begin()

        session_factory = async_sessionmaker(
            bind=conn,
            expire_on_commit=False,
            class_=AsyncSession,
            join_transaction_mode="create_savepoint",
        )
        session = session_factory()

        try:
            yield session
        finally:
            await session.close()
            await trans.rollback()


@pytest.fixture
async def client(db_session: AsyncSession, local_storage):
    """
    HTTP client that uses the test DB session and a temporary uploads directory.
    """
    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_storage] = lambda: local_storage

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
