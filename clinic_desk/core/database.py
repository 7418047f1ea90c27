"""Database engine and async session factory."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from functools import lru_cache

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from clinic_desk.config import get_settings
from clinic_desk.core.models import Base, StaffRole, StaffUser

logger = logging.getLogger(__name__)


def get_database_url() -> str:
    return get_settings().database_url


@lru_cache
def _get_engine():
    settings = get_settings()
    url = get_database_url()
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=False)
    return create_async_engine(
        url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_pre_ping=True,
        echo=False,
    )


@lru_cache
def _get_session_factory():
    return async_sessionmaker(_get_engine(), class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an async session."""
    async with _get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def ping_db() -> bool:
    """Return True if the database answers a trivial query."""
    try:
        async with _get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning("Database ping failed: %s", e)
        return False


async def init_db() -> None:
    """Create all tables (dev only; production applies migrations)."""
    engine = _get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await seed_admin()


async def seed_admin() -> None:
    """Create the first receptionist account if configured and not yet present."""
    settings = get_settings()
    if not settings.first_admin_email or not settings.first_admin_password:
        return

    from clinic_desk.core.auth import hash_password

    async with _get_session_factory()() as session:
        result = await session.execute(
            select(StaffUser).where(StaffUser.email == settings.first_admin_email)
        )
        if result.scalar_one_or_none():
            return

        admin = StaffUser(
            name="Front Desk",
            email=settings.first_admin_email,
            role=StaffRole.receptionist.value,
            password_hash=hash_password(settings.first_admin_password),
        )
        session.add(admin)
        await session.commit()
        logger.info("Seeded staff user: %s", settings.first_admin_email)
