"""Integration-test fixtures.

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool and Redis pool (both created at import time)
remain valid across the entire test session.

The owner account comes from the seed migration: export OWNER_EMAIL and
OWNER_SECRET before `alembic upgrade head` and before running the tests.
"""

import os

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.main import app


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client — keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture(scope="session")
def owner_credentials() -> dict[str, str]:
    email = os.environ.get("OWNER_EMAIL")
    secret = os.environ.get("OWNER_SECRET")
    if not email or not secret:
        pytest.skip("OWNER_EMAIL / OWNER_SECRET not set")
    return {"email": email, "secret": secret}


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def owner_token(client: AsyncClient, owner_credentials: dict[str, str]) -> str:
    """Owner skips the PIN step, so /auth/login hands out an access token."""
    resp = await client.post(
        "/api/v1/auth/login", json=owner_credentials, headers={"X-Forwarded-For": "10.0.0.1"}
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["requires_pin"] is False
    return str(data["token"])
