"""
Async engine construction for the supported dialects.

SQLite connections run with foreign keys enabled and with the driver's own
transaction handling switched off, so that ``engine.begin()`` emits a real
``BEGIN`` and DDL inside a migration is rolled back together with DML.
"""

from typing import Any

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from lemma.db.dialect import DBType
from lemma.logging_config import get_logger

logger = get_logger(__name__)


def _enable_sqlite_transactions(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")


def create_engine(db_type: DBType, data_source: str, echo: bool = False) -> AsyncEngine:
    """Create an AsyncEngine for ``data_source`` using the dialect's async driver."""
    url = db_type.sqlalchemy_url(data_source)

    if db_type is DBType.SQLITE:
        kwargs: dict[str, Any] = {}
        if data_source == ":memory:":
            # Every checkout must see the same in-memory database
            kwargs["poolclass"] = StaticPool
        engine = create_async_engine(url, echo=echo, **kwargs)
        _enable_sqlite_transactions(engine)
        return engine

    return create_async_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


async def check_connection(engine: AsyncEngine) -> None:
    """Round-trip a trivial statement. Raises on connection failure."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
