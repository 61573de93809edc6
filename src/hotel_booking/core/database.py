"""
Database configuration and async session management
"""
from typing import AsyncGenerator
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from hotel_booking.core.config import settings


def _install_sqlite_hooks(engine: AsyncEngine) -> None:
    """
    Make SQLite transactions take the write lock up front.

    pysqlite (and aiosqlite on top of it) defers BEGIN until the first write,
    so two transactions can both read "no conflict" and then race on insert.
    BEGIN IMMEDIATE serializes writers for the whole check-then-insert block.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        # stop the driver from emitting its own BEGIN
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine for the given URL (asyncpg or aiosqlite)"""
    if database_url.startswith("sqlite"):
        engine = create_async_engine(
            database_url,
            echo=echo,
            connect_args={"timeout": settings.SQLITE_BUSY_TIMEOUT_SECONDS},
        )
        _install_sqlite_hooks(engine)
        return engine

    # Using asyncpg driver for PostgreSQL
    return create_async_engine(
        database_url,
        echo=echo,  # Log SQL queries in debug mode
        pool_pre_ping=True,  # Verify connections before using
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Don't expire objects after commit
        autoflush=False,
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

AsyncSessionLocal = build_session_factory(engine)

# Create declarative base for models
Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for FastAPI to provide database sessions.

    Usage:
        @router.get("/bookings")
        async def list_bookings(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db(bind: AsyncEngine = engine):
    """
    Initialize database tables.
    Only for development - use Alembic migrations in production.
    """
    # Import all models to register them with Base
    from hotel_booking import models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db(bind: AsyncEngine = engine):
    """
    Drop all database tables.
    WARNING: Use only in development/testing!
    """
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
