"""Database engine, session factory, and declarative base.

The engine and session factory are built once at import time from
settings. Request handlers never touch them directly:

  - get_db()               → one session per request, committed on success
  - get_session_factory()  → the factory itself, for post-commit jobs that
                             outlive the request session
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from cartdrop.config import settings


def _engine_options(url: str) -> dict:
    # SQLite pools don't take sizing arguments
    if url.startswith("sqlite"):
        return {}
    return {"pool_size": 20, "max_overflow": 10}


engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    **_engine_options(settings.database_url),
)

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


class Base(DeclarativeBase):
    pass


# ── Session dependencies ────────────────────────────────────

async def get_db() -> AsyncSession:
    """Yield a request-scoped session."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the session factory for work that runs after the response."""
    return async_session


async def create_tables() -> None:
    """Create any missing tables (fresh databases without an Alembic run)."""
    import cartdrop.models  # noqa: F401  register all models on Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
