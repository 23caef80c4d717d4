"""
Database engine and session management for Errand Board.

Uses SQLAlchemy async engine with aiosqlite for non-blocking DB operations.
Only the SQL order store touches this module; tables are auto-created on
startup via init_db().
"""
import logging

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
    pass


# ── Engine ──────────────────────────────────────────────────────────

def make_engine(url: str | None = None, **kwargs) -> AsyncEngine:
    """Create an async engine; defaults to settings.database_url."""
    return create_async_engine(
        url or settings.async_database_url,
        echo=kwargs.pop("echo", False),
        future=True,
        **kwargs,
    )


def make_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


# ── Helpers ─────────────────────────────────────────────────────────

async def init_db(engine: AsyncEngine) -> None:
    """Create all tables. Called once on store startup."""
    # Import models so Base.metadata knows about them
    import db_models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database tables created (or already exist)")
