from sqlmodel import SQLModel
from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

import models  # noqa: F401  registers the bookings table on SQLModel.metadata


def _enable_wal(dbapi_connection, connection_record):
    # Readers keep working while a writer holds the lock
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def create_engine(database_url: str, lock_timeout: float = 5.0) -> AsyncEngine:
    connect_args = {}
    is_sqlite = make_url(database_url).get_backend_name() == "sqlite"
    if is_sqlite:
        # sqlite3 busy timeout: wait this long for a locked database, then fail
        connect_args["timeout"] = lock_timeout

    engine = create_async_engine(database_url, echo=False, future=True, connect_args=connect_args)

    if is_sqlite:
        event.listen(engine.sync_engine, "connect", _enable_wal)
    return engine


async def init_db(engine: AsyncEngine):
    async with engine.begin() as conn:
        # This creates the tables if they don't exist
        await conn.run_sync(SQLModel.metadata.create_all)


def get_sessionmaker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
