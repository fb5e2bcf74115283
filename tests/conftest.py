"""
Pytest configuration for the coupon claim service.

The environment is pinned before anything under ``app`` is imported, because
``app.core.config`` reads it at import time. Database fixtures build a fresh
engine per test: a temporary SQLite file by default, or the PostgreSQL
database named by ``TEST_DATABASE_URL`` when it is set.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import AsyncGenerator

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")

os.environ["APP_ENV"] = "development"
os.environ["DB_TYPE"] = "postgres" if TEST_DATABASE_URL else "sqlite"
os.environ["SQLITE_PATH"] = str(Path(tempfile.gettempdir()) / "coupon_claim_unused.db")
os.environ["DB_AUTO_CREATE"] = "false"
# Generous bounds: the concurrency scenarios queue on one SQLite write lock
os.environ["DB_OPERATION_TIMEOUT"] = "60"
os.environ["DB_POOL_TIMEOUT"] = "60"
os.environ.pop("LOG_PATH", None)
if TEST_DATABASE_URL:
    os.environ["DATABASE_URL"] = TEST_DATABASE_URL

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine  # noqa: E402

from app.core.db import Base, build_engine, build_sessionmaker, get_db  # noqa: E402


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """
    PostgreSQL when TEST_DATABASE_URL is set, otherwise a throwaway SQLite file.
    """
    if TEST_DATABASE_URL:
        return TEST_DATABASE_URL
    return f"sqlite+aiosqlite:///{tmp_path / 'coupons.db'}"


@pytest_asyncio.fixture
async def engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """
    Engine with an empty coupons schema, disposed after the test.
    """
    test_engine = build_engine(database_url)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield test_engine
    finally:
        async with test_engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine):
    return build_sessionmaker(engine)


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    HTTP client bound to the ASGI app, with get_db routed to the test engine.
    """
    from main import app

    async def _override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    try:
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
            yield http
    finally:
        app.dependency_overrides.pop(get_db, None)
