"""Shared fixtures: an app with auth overridden and no live database."""

import os


# Settings are cached on first import, so the test environment is fixed here
os.environ["ENVIRONMENT"] = "test"
os.environ["AUTH_PROVIDER"] = "none"
os.environ["STORAGE_PROVIDER"] = "local"

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.auth.config import DEFAULT_USER_ID
from src.auth.context import AuthContext, get_auth_context
from src.main import create_app
from tests.factories import ORG_ID


@pytest.fixture
def db_session() -> AsyncMock:
    """AsyncSession stand-in; ``add``/``add_all`` are synchronous on the real one."""
    session = AsyncMock()
    session.add = MagicMock()
    session.add_all = MagicMock()
    return session


@pytest.fixture
def auth_context(db_session: AsyncMock) -> AuthContext:
    """Admin of ORG_ID; tests flip ``role`` to exercise member access."""
    return AuthContext(user_id=DEFAULT_USER_ID, organization_id=ORG_ID, role="admin", session=db_session)


@pytest_asyncio.fixture
async def client(auth_context: AuthContext) -> AsyncGenerator[AsyncClient, None]:
    app = create_app()
    app.dependency_overrides[get_auth_context] = lambda: auth_context

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
