"""Database connection and session management."""

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from tasktrack.config import settings
from tasktrack.observability.metrics import metrics

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


def engine_options(database_url: str, debug: bool = False) -> dict[str, Any]:
    """Driver-appropriate engine keyword arguments."""
    options: dict[str, Any] = {"echo": debug}
    if database_url.startswith("sqlite"):
        # In-memory SQLite must share one connection across sessions
        if ":memory:" in database_url or database_url.rstrip("/").endswith("aiosqlite:"):
            options["poolclass"] = StaticPool
        options["connect_args"] = {"check_same_thread": False}
    else:
        options.update(pool_pre_ping=True, pool_size=20, max_overflow=10)
    return options


def build_engine(database_url: str, debug: bool = False) -> AsyncEngine:
    new_engine = create_async_engine(database_url, **engine_options(database_url, debug))
    if database_url.startswith("sqlite"):
        _enable_sqlite_savepoints(new_engine)
    _attach_query_metrics(new_engine)
    return new_engine


def _enable_sqlite_savepoints(target_engine: AsyncEngine) -> None:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINT nests inside it."""
    sync_engine = target_engine.sync_engine

    @event.listens_for(sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


SLOW_QUERY_MS = 250.0


def _attach_query_metrics(target_engine: AsyncEngine) -> None:
    """Time each statement and count it under its leading SQL verb."""
    sync_engine = target_engine.sync_engine

    @event.listens_for(sync_engine, "before_cursor_execute")
    def start_timer(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault("tasktrack_timers", []).append(time.perf_counter())

    @event.listens_for(sync_engine, "after_cursor_execute")
    def record_timing(conn, cursor, statement, parameters, context, executemany):
        timers = conn.info.get("tasktrack_timers")
        if not timers:
            return
        elapsed_ms = (time.perf_counter() - timers.pop()) * 1000.0
        verb = statement.lstrip().split(" ", 1)[0].lower() or "unknown"
        metrics.inc_counter(f"db.{verb}.count")
        metrics.observe("db.statement_ms", elapsed_ms)
        if elapsed_ms >= SLOW_QUERY_MS:
            logger.warning(f"Slow {verb} took {elapsed_ms:.1f}ms")


# Create async engine
engine = build_engine(settings.database_url, settings.debug)

# Create async session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db() -> None:
    """Initialize database tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
