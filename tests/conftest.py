import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Settings are read at import time, so the environment must be in place
# before anything from dispatch_api is imported
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["RATE_LIMIT_STORAGE_URI"] = "memory://"

from dispatch_api.config import settings  # noqa: E402
from dispatch_api.database import get_db  # noqa: E402
from dispatch_api.main import app  # noqa: E402
from dispatch_api.models import Base, Cad, Rank, User  # noqa: E402
from dispatch_api.services import socket  # noqa: E402
from dispatch_api.services.auth import create_access_token, hash_password  # noqa: E402


@pytest_asyncio.fixture(name="engine")
async def engine_fixture():
    """Fresh in-memory database per test. StaticPool keeps it on one connection."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(name="session")
async def session_fixture(engine) -> AsyncGenerator[AsyncSession, None]:
    async_session_maker = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session_maker() as session:
        yield session


@pytest_asyncio.fixture(name="client")
async def client_fixture(session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests share the test's database session."""

    async def get_db_override() -> AsyncGenerator[AsyncSession, None]:
        yield session

    app.dependency_overrides[get_db] = get_db_override

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://localhost") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def broadcasts(monkeypatch) -> list[tuple[str, dict]]:
    """Capture pub/sub broadcasts instead of talking to Redis."""
    published: list[tuple[str, dict]] = []

    async def fake_publish(channel: str, message: dict):
        published.append((channel, message))

    monkeypatch.setattr(socket, "publish_message", fake_publish)
    return published


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "public"
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(path))
    return path


@pytest.fixture(name="make_user")
def make_user_fixture(session: AsyncSession):
    async def make_user(
        username: str = "dispatcher",
        password: str | None = "correct-horse",
        rank: Rank = Rank.USER,
        **fields,
    ) -> User:
        # Mark the relationship as loaded so it is never lazy-loaded in async code
        fields.setdefault("sound_settings", None)
        user = User(
            username=username,
            password=hash_password(password) if password else "",
            rank=rank,
            **fields,
        )
        session.add(user)
        await session.commit()
        return user

    return make_user


@pytest_asyncio.fixture(name="user")
async def user_fixture(make_user) -> User:
    return await make_user()


@pytest_asyncio.fixture(name="cad")
async def cad_fixture(session: AsyncSession, user: User) -> Cad:
    cad = Cad(
        name="Los Santos CAD",
        owner_id=user.id,
        disabled_features=[],
        discord_roles={"admin_role_id": "1234"},
    )
    session.add(cad)
    await session.commit()
    return cad


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token({"sub": user.id})
    return {"Cookie": f"{settings.ACCESS_TOKEN_COOKIE}={token}"}


@pytest.fixture(name="headers")
def headers_fixture(user: User) -> dict[str, str]:
    return auth_headers(user)
