"""Shared pytest fixtures."""

from __future__ import annotations

import os
import tempfile
from collections.abc import AsyncIterator
from pathlib import Path

# Configuration is read at import time, so point it at a scratch database
# before anything from the app package is imported.
_DB_DIR = Path(tempfile.mkdtemp(prefix="role-policy-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR / 'test.db'}"
os.environ["ROLE_WRITE_RATE_LIMIT"] = "1000/minute"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from app.core.database.engine import AsyncSessionLocal, init_db  # noqa: E402
from app.features.permissions.registry import Action, ModuleRegistry, build_registry  # noqa: E402
from app.main import app  # noqa: E402


@pytest.fixture()
def registry() -> ModuleRegistry:
    """Two modules that both support every action."""

    return build_registry(
        [
            ("users", "Users", set(Action)),
            ("leads", "Leads", set(Action)),
        ]
    )


@pytest_asyncio.fixture()
async def database() -> AsyncIterator[None]:
    """Recreate every table so each test starts empty."""

    await init_db(reset=True)
    yield


@pytest_asyncio.fixture()
async def db_session(database: None) -> AsyncIterator[AsyncSession]:
    async with AsyncSessionLocal() as session:
        yield session


@pytest_asyncio.fixture()
async def async_client(database: None) -> AsyncIterator[AsyncClient]:
    """Provide an HTTPX async client bound to the FastAPI app."""

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
