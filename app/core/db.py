# app/core/db.py

import ssl
import time
from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.exc import DisconnectionError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from app.core.config import (
    DATABASE_URL,
    DB_POOL_MIN_SIZE,
    DB_POOL_MAX_SIZE,
    DB_POOL_MAX_LIFETIME,
    DB_POOL_MAX_IDLE,
    DB_POOL_TIMEOUT,
    DB_OPERATION_TIMEOUT,
    DB_SSL,
    DB_SSL_VERIFY,
    DB_ECHO_POOL,
    APP_NAME,
)
from app.utils.logger import get_logger

logger = get_logger(__name__)

# =====================================================
# BASE
# =====================================================
Base = declarative_base()


# =====================================================
# CONNECTION CONFIG
# =====================================================
def _postgres_args() -> tuple[dict, dict]:
    connect_args: dict = {
        # asyncpg aborts any single statement running longer than this
        "command_timeout": DB_OPERATION_TIMEOUT,
        "server_settings": {"application_name": APP_NAME},
    }

    if DB_SSL:
        ssl_ctx = ssl.create_default_context()
        if not DB_SSL_VERIFY:
            ssl_ctx.check_hostname = False
            ssl_ctx.verify_mode = ssl.CERT_NONE
        connect_args["ssl"] = ssl_ctx

    pool_args = {
        "pool_size": DB_POOL_MIN_SIZE,
        "max_overflow": DB_POOL_MAX_SIZE - DB_POOL_MIN_SIZE,
        "pool_timeout": DB_POOL_TIMEOUT,
        "pool_recycle": DB_POOL_MAX_LIFETIME,
        "pool_pre_ping": True,
        "isolation_level": "READ COMMITTED",
    }
    return connect_args, pool_args


def _sqlite_args() -> tuple[dict, dict]:
    # Seconds a writer waits on the database lock before "database is locked"
    connect_args = {"check_same_thread": False, "timeout": DB_POOL_TIMEOUT}
    return connect_args, {}


def _install_idle_timeout(engine: AsyncEngine, max_idle: int) -> None:
    @event.listens_for(engine.sync_engine, "checkin")
    def _stamp_checkin(dbapi_connection, connection_record):
        connection_record.info["checked_in_at"] = time.monotonic()

    @event.listens_for(engine.sync_engine, "checkout")
    def _reject_stale(dbapi_connection, connection_record, connection_proxy):
        checked_in_at = connection_record.info.get("checked_in_at")
        if checked_in_at is not None and time.monotonic() - checked_in_at > max_idle:
            # The pool discards this connection and retries with a fresh one
            connection_record.info.pop("checked_in_at", None)
            raise DisconnectionError("connection idle for longer than %ss" % max_idle)


def _install_sqlite_locking(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _):
        # Stop the driver from issuing its own deferred BEGIN
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        # SQLite has no row locks: take the write lock when the transaction
        # opens so a claim's check-count-insert runs without interleaving.
        conn.exec_driver_sql("BEGIN IMMEDIATE")


# =====================================================
# ENGINE
# =====================================================
def build_engine(url: str = DATABASE_URL) -> AsyncEngine:
    is_sqlite = url.startswith("sqlite")
    connect_args, pool_args = _sqlite_args() if is_sqlite else _postgres_args()

    engine = create_async_engine(
        url,
        echo=False,                # NEVER enable in prod
        echo_pool=DB_ECHO_POOL,    # debugging only
        connect_args=connect_args,
        **pool_args,
    )

    if is_sqlite:
        _install_sqlite_locking(engine)
    else:
        _install_idle_timeout(engine, DB_POOL_MAX_IDLE)

    return engine


def build_sessionmaker(bind: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        bind=bind,
        class_=AsyncSession,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )


engine = build_engine(DATABASE_URL)

# =====================================================
# SESSION
# =====================================================
AsyncSessionLocal = build_sessionmaker(engine)


# =====================================================
# DEPENDENCY
# =====================================================
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


# =====================================================
# MODEL IMPORT
# =====================================================
import app.models  # noqa


# =====================================================
# SCHEMA / LIFECYCLE
# =====================================================
async def init_models(bind: AsyncEngine | None = None) -> None:
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ensured")


async def dispose_engine(bind: AsyncEngine | None = None) -> None:
    await (bind or engine).dispose()
    logger.info("Database pool closed")
