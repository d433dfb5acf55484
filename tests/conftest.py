"""Shared fixtures: an in-memory database per test and an HTTP client bound to it."""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from realms.infra.auth import issue_token
from realms.infra.config import settings
from realms.infra.db import get_db
from realms.infra.rate_limit import ALL_LIMITERS
from realms.main import app
from realms.models.db_models import Base


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(eng.sync_engine, "connect")
    def _fk_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def _reset_limiters():
    for limiter in ALL_LIMITERS:
        limiter.reset()
    yield
    for limiter in ALL_LIMITERS:
        limiter.reset()


@pytest.fixture
def admin_uid(monkeypatch):
    monkeypatch.setattr(settings, "admin_uids", ["admin-uid"])
    return "admin-uid"


def auth_headers(uid: str, **claims) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(uid, **claims)}"}


async def create_character(client: AsyncClient, uid: str, name: str = "Aria", **fields) -> str:
    resp = await client.post(
        "/api/characters", json={"name": name, **fields}, headers=auth_headers(uid),
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["id"]


async def create_campaign(client: AsyncClient, uid: str, name: str = "Shattered Isles") -> dict:
    resp = await client.post("/api/campaigns", json={"name": name}, headers=auth_headers(uid))
    assert resp.status_code == 200, resp.text
    return resp.json()
