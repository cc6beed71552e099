"""Pytest configuration and shared fixtures."""

import os
import tempfile
from pathlib import Path

# Settings are read at import time, so the environment must be ready first
_TEST_DIR = Path(tempfile.mkdtemp(prefix="sofia-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR / 'test.db'}"
os.environ["JWT_SECRET"] = "test_secret_key_12345"
os.environ["ENCRYPTION_KEY"] = "test_encryption_key"
os.environ["ENVIRONMENT"] = "test"
os.environ["CLINICIAN_WEBHOOK_URL"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from sofia.admin_cli import ADMIN_ROLE, set_role
from sofia.database import AuditLogEntry, Base, async_session_maker, engine
from sofia.server import app


# ============================================================================
# Database
# ============================================================================

@pytest.fixture
async def database():
    """Fresh schema for every test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture
async def db_session(database):
    async with async_session_maker() as session:
        yield session


# ============================================================================
# HTTP
# ============================================================================

@pytest.fixture
async def client(database):
    """Create an async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class AuthClient:
    """Client wrapper that sends the bearer token of one user."""

    def __init__(self, client, token, user):
        self.client = client
        self.token = token
        self.user = user
        self.headers = {"Authorization": f"Bearer {token}"}

    @property
    def user_id(self) -> str:
        return self.user["id"]

    async def get(self, url, **kwargs):
        kwargs.setdefault("headers", {}).update(self.headers)
        return await self.client.get(url, **kwargs)

    async def post(self, url, **kwargs):
        kwargs.setdefault("headers", {}).update(self.headers)
        return await self.client.post(url, **kwargs)

    async def put(self, url, **kwargs):
        kwargs.setdefault("headers", {}).update(self.headers)
        return await self.client.put(url, **kwargs)


async def sign_in(client, name, age=None) -> AuthClient:
    response = await client.post("/api/users/auth", json={"name": name, "age": age})
    assert response.status_code == 200
    data = response.json()
    return AuthClient(client, data["token"], data["user"])


async def promote_to_admin(name: str) -> None:
    await set_role(name, ADMIN_ROLE)


async def audit_entries(action=None):
    """Audit rows in insertion order, optionally for one action."""
    async with async_session_maker() as session:
        query = select(AuditLogEntry).order_by(AuditLogEntry.created_at)
        if action is not None:
            query = query.where(AuditLogEntry.action == action)
        result = await session.execute(query)
        return list(result.scalars().all())


@pytest.fixture
async def auth_client(client):
    """Authenticated client for a fresh user."""
    return await sign_in(client, "Alice", 72)


@pytest.fixture
async def admin_client(client):
    """Authenticated client whose user has the admin role."""
    admin = await sign_in(client, "Dr Admin")
    await promote_to_admin("Dr Admin")
    return admin


@pytest.fixture
def queue_dir(tmp_path):
    return tmp_path / "queues"
