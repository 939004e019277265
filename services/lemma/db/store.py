"""Shared plumbing for the entity store mixins."""

from typing import TYPE_CHECKING, Any

from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from lemma.db.dialect import DBType
from lemma.db.errors import ConstraintViolationError, DatabaseError, TransactionError, wrap_db_error
from lemma.db.query import Query
from lemma.db.scanner import Scanner

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

    from lemma.services.encryption_service import SecretsService


class StoreBase:
    """State every store relies on. Set up by ``SQLDatabase.__init__``."""

    db_type: DBType
    _engine: AsyncEngine
    _secrets: "SecretsService | None"
    _scanner: Scanner
    _log: "BoundLogger"

    def new_query(self) -> Query:
        """A fresh builder for this database's dialect and secrets service."""
        return Query(self.db_type, self._secrets)

    async def _execute(self, conn: AsyncConnection, q: Query) -> CursorResult[Any]:
        return await conn.exec_driver_sql(q.sql, self.db_type.adapt_args(q.args))

    def _workflow_error(self, message: str, exc: SQLAlchemyError) -> DatabaseError:
        """Error for a failed multi-statement workflow. Constraint violations keep their kind."""
        err = wrap_db_error(message, exc)
        if isinstance(err, ConstraintViolationError):
            return err
        return TransactionError(str(err))

    async def _exec_write(self, q: Query, message: str) -> int:
        """Run one write statement in its own transaction. Returns the affected row count."""
        try:
            async with self._engine.begin() as conn:
                result = await self._execute(conn, q)
                return result.rowcount
        except SQLAlchemyError as e:
            raise wrap_db_error(message, e) from e
