"""Integration-test fixtures (requires running PG + Redis).

Pre-condition: alembic upgrade head against DATABASE_URL.

All integration tests share a single event loop so that the module-level
SQLAlchemy async engine pool and Redis pool stay valid for the whole
session. When the database is unreachable every test here is skipped.
"""

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from src.main import app
from src.rp_common.database import engine
from src.rp_gateway.auth.jwt_handler import create_access_token


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client that keeps the engine pool alive."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (OSError, SQLAlchemyError) as exc:
        pytest.skip(f"database unavailable: {exc}")
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def open_account(client: AsyncClient):
    """Provision a fresh account and return (account_id, auth headers)."""

    async def _open(role: str = "INDIVIDUAL", region: str = "Austin, TX") -> tuple[str, dict]:
        account_id = f"it_{uuid.uuid4().hex[:10]}"
        headers = {"Authorization": f"Bearer {create_access_token(account_id)}"}
        resp = await client.post(
            "/api/v1/account",
            json={"role": role, "display_name": account_id, "region": region},
            headers=headers,
        )
        assert resp.status_code == 201, resp.text
        return account_id, headers

    return _open
