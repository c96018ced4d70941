"""Pytest configuration and fixtures for CartDrop tests.

Every test gets its own SQLite database file, a throwaway media
directory, and in-memory stand-ins for Redis (token revocation) and
the webhook notifier, wired in through app.dependency_overrides.
"""

from io import BytesIO
from typing import AsyncGenerator

import numpy as np
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

import cartdrop.models  # noqa: F401
from cartdrop.auth.jwt import create_access_token
from cartdrop.auth.password import hash_password
from cartdrop.auth.revocation import get_token_revocation
from cartdrop.database import Base, get_db, get_session_factory
from cartdrop.main import app
from cartdrop.models.user import User
from cartdrop.services.lifespan import get_notifier, get_storage
from cartdrop.services.storage import AssetStorage, LocalAssetStorage


# ── Fakes ────────────────────────────────────────────────────────

class InMemoryRevocation:
    """Token blacklist without Redis."""

    def __init__(self):
        self.revoked: dict[str, float] = {}

    async def revoke_token(self, token: str, expires_at: float) -> bool:
        self.revoked[token] = expires_at
        return True

    async def is_revoked(self, token: str) -> bool:
        return token in self.revoked


class RecordingNotifier:
    """Collects summaries instead of posting them."""

    def __init__(self, fail: bool = False):
        self.summaries = []
        self.fail = fail

    async def notify(self, summary):
        self.summaries.append(summary)
        if self.fail:
            raise RuntimeError("channel down")


class RecordingStorage(AssetStorage):
    """In-memory bucket that can be told to fail on the Nth upload."""

    def __init__(self, fail_on: int | None = None):
        self.bucket = "form-images"
        self.objects: dict[str, bytes] = {}
        self.fail_on = fail_on
        self.calls = 0

    async def upload(self, key: str, data: bytes, content_type: str) -> str:
        self.calls += 1
        if self.fail_on is not None and self.calls == self.fail_on:
            raise OSError("bucket quota exceeded")
        self.objects[key] = data
        return self.public_url(key)

    def public_url(self, key: str) -> str:
        return f"http://cdn.test/{self.bucket}/{key}"


class JobQueue:
    """Stand-in for BackgroundTasks.add_task that runs jobs on demand."""

    def __init__(self):
        self.jobs = []

    def __call__(self, func, *args, **kwargs):
        self.jobs.append((func, args, kwargs))

    async def run_all(self):
        for func, args, kwargs in self.jobs:
            await func(*args, **kwargs)


# ── Images ───────────────────────────────────────────────────────

def encode_image(img: Image.Image, fmt: str = "PNG") -> bytes:
    buf = BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def make_image():
    """Factory: encoded test image with a deterministic colour gradient."""

    def _make(size=(6, 4), mode="RGB", fmt="PNG") -> bytes:
        w, h = size
        ys, xs = np.mgrid[0:h, 0:w]
        rgb = np.stack(
            [(xs * 40) % 256, (ys * 60 + 30) % 256, ((xs + ys) * 25 + 7) % 256],
            axis=-1,
        ).astype(np.uint8)
        img = Image.fromarray(rgb)
        if mode == "RGBA":
            alpha = ((xs * 30 + ys * 10) % 256).astype(np.uint8)
            img = Image.fromarray(np.dstack([rgb, alpha]))
        elif mode != "RGB":
            img = img.convert(mode)
        return encode_image(img, fmt)

    return _make


# ── Database ─────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ── App wiring ───────────────────────────────────────────────────

@pytest.fixture
def storage(tmp_path) -> LocalAssetStorage:
    return LocalAssetStorage(tmp_path / "media", "form-images", "http://test/media")


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def revocation() -> InMemoryRevocation:
    return InMemoryRevocation()


@pytest_asyncio.fixture
async def client(session_factory, storage, notifier, revocation) -> AsyncGenerator[AsyncClient, None]:
    """Test client with the database, storage, notifier and Redis swapped out."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_token_revocation] = lambda: revocation

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ── Test Data Fixtures ───────────────────────────────────────────

@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    user = User(
        email="test@example.com",
        hashed_password=hash_password("testpassword123"),
        is_active=True,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    user = User(email="other@example.com", hashed_password=hash_password("otherpassword1"))
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    token = create_access_token(user_id=test_user.id, email=test_user.email)
    return {"Authorization": f"Bearer {token}"}
