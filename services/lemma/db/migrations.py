"""
Versioned schema migrations.

Scripts ship as package data under ``lemma/db/schema/<dialect>/`` and are
named ``NNN_description.up.sql``. Each applied version is recorded in the
``migrations`` table; a version is applied, together with its record, in a
single transaction, so a failing script leaves the schema at the last
version that succeeded.
"""

import re
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from lemma.db.dialect import DBType
from lemma.db.errors import MigrationError
from lemma.db.query import Query
from lemma.logging_config import get_logger

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

_SCRIPT_NAME = re.compile(r"^(\d+)_(\w+)\.up\.sql$")

CREATE_MIGRATIONS_TABLE = (
    "CREATE TABLE IF NOT EXISTS migrations ("
    "version INTEGER PRIMARY KEY, "
    "applied_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP)"
)


@dataclass(frozen=True)
class Migration:
    version: int
    name: str
    statements: tuple[str, ...]


def split_statements(script: str) -> list[str]:
    """Split a script into statements, dropping ``--`` comment lines."""
    lines = [line for line in script.splitlines() if not line.strip().startswith("--")]
    return [stmt.strip() for stmt in "\n".join(lines).split(";") if stmt.strip()]


def bundled_scripts(db_type: DBType) -> Traversable:
    """Directory of the migration scripts shipped for ``db_type``."""
    return resources.files("lemma.db") / "schema" / db_type.migrations_dir


def load_migrations(scripts: Traversable | Path) -> list[Migration]:
    """Read every ``*.up.sql`` script under ``scripts``, sorted by version."""
    migrations: dict[int, Migration] = {}
    for entry in scripts.iterdir():
        match = _SCRIPT_NAME.match(entry.name)
        if not match:
            continue
        version = int(match.group(1))
        if version in migrations:
            raise MigrationError(f"duplicate migration version {version}: {entry.name}")
        migrations[version] = Migration(
            version=version,
            name=match.group(2),
            statements=tuple(split_statements(entry.read_text(encoding="utf-8"))),
        )
    return [migrations[v] for v in sorted(migrations)]


class MigrationRunner:
    """Applies pending migrations in ascending version order."""

    def __init__(
        self,
        engine: AsyncEngine,
        db_type: DBType,
        scripts: Traversable | Path | None = None,
        logger: "BoundLogger | None" = None,
    ) -> None:
        self._engine = engine
        self._db_type = db_type
        self._scripts = scripts if scripts is not None else bundled_scripts(db_type)
        self._log = logger or get_logger(__name__)

    async def applied_versions(self) -> set[int]:
        async with self._engine.begin() as conn:
            await conn.exec_driver_sql(CREATE_MIGRATIONS_TABLE)
            result = await conn.exec_driver_sql("SELECT version FROM migrations")
            return set(result.scalars().all())

    async def _apply(self, migration: Migration) -> None:
        record = (
            Query(self._db_type)
            .insert("migrations", "version")
            .values(1)
            .add_args(migration.version)
        )
        async with self._engine.begin() as conn:
            for statement in migration.statements:
                await conn.exec_driver_sql(statement)
            await conn.exec_driver_sql(record.sql, self._db_type.adapt_args(record.args))

    async def run(self) -> list[int]:
        """Apply every pending migration. Returns the versions applied by this call."""
        self._log.info("Starting database migration", dialect=self._db_type.value)

        try:
            migrations = load_migrations(self._scripts)
            applied = await self.applied_versions()
        except (OSError, SQLAlchemyError) as e:
            raise MigrationError(f"failed to prepare migrations: {e}") from e

        newly_applied = []
        for migration in migrations:
            if migration.version in applied:
                continue
            self._log.info("Applying migration", version=migration.version, name=migration.name)
            try:
                await self._apply(migration)
            except SQLAlchemyError as e:
                detail = getattr(e, "orig", None) or e
                self._log.error(
                    "Migration failed",
                    version=migration.version,
                    name=migration.name,
                    error=str(detail),
                )
                raise MigrationError(
                    f"failed to apply migration {migration.version} ({migration.name}): {detail}"
                ) from e
            newly_applied.append(migration.version)

        self._log.info("Database migration completed", applied=newly_applied)
        return newly_applied
