"""Shared fixtures: a fresh SQLite database per test and an ASGI client"""

import os
import tempfile

# Settings are read at import time, so configure before importing the app
_default_db = os.path.join(tempfile.mkdtemp(prefix="hostrefer-"), "app.db")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_default_db}")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-hostrefer")
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["PROMETHEUS_ENABLED"] = "false"

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database import build_engine, get_db
from app.core.security import SecurityUtils
from app.crud import listings as listing_store
from app.crud import users as user_store
from app.main import app
from app.models import Base, UserRole

PASSWORD = "Secret123!"
PASSWORD_HASH = SecurityUtils.hash_password(PASSWORD)


@pytest.fixture
async def engine(tmp_path):
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://testserver") as test_client:
        yield test_client
    app.dependency_overrides.clear()


async def _create_user(session_factory, email: str, role: UserRole, first_name: str):
    async with session_factory() as session:
        user = await user_store.create_user(
            session,
            email=email,
            password_hash=PASSWORD_HASH,
            first_name=first_name,
            last_name="Tester",
            role=role,
        )
        await session.commit()
        return user


@pytest.fixture
async def traveler(session_factory):
    return await _create_user(session_factory, "traveler@hostrefer.io", UserRole.TRAVELER, "Tara")


@pytest.fixture
async def other_traveler(session_factory):
    return await _create_user(session_factory, "other@hostrefer.io", UserRole.TRAVELER, "Omar")


@pytest.fixture
async def host(session_factory):
    return await _create_user(session_factory, "host@hostrefer.io", UserRole.HOST, "Hana")


@pytest.fixture
async def other_host(session_factory):
    return await _create_user(session_factory, "otherhost@hostrefer.io", UserRole.HOST, "Hugo")


@pytest.fixture
async def listing(session_factory, host):
    async with session_factory() as session:
        created = await listing_store.create_listing(
            session,
            host_id=host.id,
            title="Seaside Loft",
            city="Lisbon",
            country="Portugal",
            images=["https://img.example.com/loft-1.jpg", "https://img.example.com/loft-2.jpg"],
        )
        await session.commit()
        return created


def token_for(user) -> str:
    return SecurityUtils.create_access_token({
        "sub": str(user.id),
        "role": user.role.value,
        "email": user.email,
    })


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {token_for(user)}"}
