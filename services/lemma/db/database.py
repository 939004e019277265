"""
The SQL-backed ``Database``: every entity store over one async engine.

Usage:
    db = await init_database(DBType.SQLITE, "lemma.db", secrets)
    await db.migrate()
    user = await db.get_user_by_email("admin@example.com")
    ...
    await db.close()
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy.engine import Result
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from lemma.db.dialect import DBType
from lemma.db.errors import DatabaseError
from lemma.db.migrations import MigrationRunner
from lemma.db.scanner import Scanner
from lemma.db.session import check_connection, create_engine
from lemma.db.sessions import SessionStoreMixin
from lemma.db.system import SystemStoreMixin
from lemma.db.users import UserStoreMixin
from lemma.db.workspaces import WorkspaceReaderMixin, WorkspaceWriterMixin
from lemma.logging_config import get_logger

if TYPE_CHECKING:
    from importlib.resources.abc import Traversable
    from pathlib import Path

    from structlog.stdlib import BoundLogger

    from lemma.services.encryption_service import SecretsService

T = TypeVar("T")


class SQLDatabase(
    UserStoreMixin,
    WorkspaceReaderMixin,
    WorkspaceWriterMixin,
    SessionStoreMixin,
    SystemStoreMixin,
):
    def __init__(
        self,
        engine: AsyncEngine,
        db_type: DBType,
        secrets: "SecretsService | None" = None,
        logger: "BoundLogger | None" = None,
        migrations: "Traversable | Path | None" = None,
    ) -> None:
        self.db_type = db_type
        self._engine = engine
        self._secrets = secrets
        self._scanner = Scanner(secrets)
        self._log = logger or get_logger("lemma.db")
        self._migrations = migrations

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @asynccontextmanager
    async def begin(self) -> AsyncIterator[AsyncConnection]:
        """Transaction for use with the ``*_tx`` methods. Commits on clean exit."""
        async with self._engine.begin() as conn:
            yield conn

    def scan_struct(self, result: Result[Any], model: type[T]) -> T:
        return self._scanner.scan_one(result, model)

    def scan_structs(self, result: Result[Any], model: type[T]) -> list[T]:
        return self._scanner.scan_many(result, model)

    async def migrate(self) -> list[int]:
        runner = MigrationRunner(
            self._engine,
            self.db_type,
            scripts=self._migrations,
            logger=self._log.bind(store="migrations"),
        )
        return await runner.run()

    async def close(self) -> None:
        self._log.info("Closing database connection pool")
        await self._engine.dispose()


async def init_database(
    db_type: DBType,
    data_source: str,
    secrets: "SecretsService | None" = None,
    logger: "BoundLogger | None" = None,
    echo: bool = False,
) -> SQLDatabase:
    """Connect to the database and return the store facade.

    Raises DatabaseError when the database cannot be reached.
    """
    log = logger or get_logger("lemma.db")
    log.info("Initializing database connection", dialect=db_type.value)

    engine = create_engine(db_type, data_source, echo=echo)
    try:
        await check_connection(engine)
    except SQLAlchemyError as e:
        await engine.dispose()
        raise DatabaseError(f"failed to connect to {db_type.value} database: {e}") from e

    log.info("Database connection established", dialect=db_type.value)
    return SQLDatabase(engine, db_type, secrets=secrets, logger=log)
