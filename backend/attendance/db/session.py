"""
Async engine and session factory.

Every attendance transaction must be serializable: two joins racing for the
last slot may not both observe a free seat. PostgreSQL gets that from the
engine-wide isolation level. SQLite (tests, local dev) gets it by taking the
database write lock up front with BEGIN IMMEDIATE.
"""

from functools import lru_cache

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from attendance.core.config import get_settings


def _enable_sqlite_serializable(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        # disable the driver's own BEGIN handling so ours is the only one
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str) -> AsyncEngine:
    settings = get_settings()

    if url.startswith("sqlite"):
        engine = create_async_engine(
            url,
            echo=settings.DEBUG,
            connect_args={"timeout": 15},
        )
        _enable_sqlite_serializable(engine)
        return engine

    return create_async_engine(
        url,
        echo=settings.DEBUG,
        isolation_level=settings.DB_ISOLATION_LEVEL,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@lru_cache()
def get_engine() -> AsyncEngine:
    return build_engine(get_settings().DATABASE_URL)


@lru_cache()
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """FastAPI dependency: the injected store handle. Tests override this."""
    return build_session_factory(get_engine())
