"""Tests for the migration runner."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine

from lemma.db.dialect import DBType
from lemma.db.errors import MigrationError
from lemma.db.migrations import (
    MigrationRunner,
    bundled_scripts,
    load_migrations,
    split_statements,
)
from lemma.db.session import create_engine


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine]:
    engine = create_engine(DBType.SQLITE, str(tmp_path / "migrations.db"))
    yield engine
    await engine.dispose()


async def table_names(engine: AsyncEngine) -> set[str]:
    async with engine.connect() as conn:
        result = await conn.exec_driver_sql("SELECT name FROM sqlite_master WHERE type = 'table'")
        return set(result.scalars().all())


async def recorded_versions(engine: AsyncEngine) -> list[int]:
    async with engine.connect() as conn:
        result = await conn.exec_driver_sql("SELECT version FROM migrations ORDER BY version")
        return list(result.scalars().all())


class TestBundledMigrations:
    async def test_creates_schema(self, engine):
        applied = await MigrationRunner(engine, DBType.SQLITE).run()

        assert applied == [1]
        assert {"users", "workspaces", "sessions", "system_settings", "migrations"} <= (
            await table_names(engine)
        )

    async def test_second_run_is_noop(self, engine):
        runner = MigrationRunner(engine, DBType.SQLITE)
        await runner.run()
        tables = await table_names(engine)

        assert await runner.run() == []
        assert await recorded_versions(engine) == [1]
        assert await table_names(engine) == tables

    async def test_database_facade_migrate_is_idempotent(self, database):
        assert await database.migrate() == []

    @pytest.mark.parametrize("db_type", [DBType.SQLITE, DBType.POSTGRES])
    def test_scripts_ship_for_every_dialect(self, db_type):
        migrations = load_migrations(bundled_scripts(db_type))
        assert [m.version for m in migrations] == [1]
        assert migrations[0].name == "initial_schema"
        assert any("system_settings" in s for s in migrations[0].statements)

    def test_postgres_script_uses_serial_ids(self):
        statements = load_migrations(bundled_scripts(DBType.POSTGRES))[0].statements
        assert "SERIAL PRIMARY KEY" in statements[0]


class TestCustomScripts:
    async def test_applies_in_version_order(self, engine, tmp_path):
        scripts = tmp_path / "scripts"
        scripts.mkdir()
        (scripts / "002_add_tags.up.sql").write_text("CREATE TABLE tags (id INTEGER);")
        (scripts / "001_create_notes.up.sql").write_text(
            "-- notes\nCREATE TABLE notes (id INTEGER);\nCREATE INDEX idx_notes ON notes(id);"
        )
        (scripts / "001_create_notes.down.sql").write_text("DROP TABLE notes;")
        (scripts / "README.txt").write_text("not a migration")

        applied = await MigrationRunner(engine, DBType.SQLITE, scripts=scripts).run()

        assert applied == [1, 2]
        assert {"notes", "tags"} <= await table_names(engine)

    async def test_failure_keeps_last_good_version(self, engine, tmp_path):
        scripts = tmp_path / "scripts"
        scripts.mkdir()
        (scripts / "001_create_notes.up.sql").write_text("CREATE TABLE notes (id INTEGER);")
        (scripts / "002_broken.up.sql").write_text(
            "CREATE TABLE tags (id INTEGER);\nINSERT INTO missing_table VALUES (1);"
        )
        runner = MigrationRunner(engine, DBType.SQLITE, scripts=scripts)

        with pytest.raises(MigrationError, match="migration 2"):
            await runner.run()

        assert await recorded_versions(engine) == [1]
        tables = await table_names(engine)
        assert "notes" in tables
        assert "tags" not in tables

        (scripts / "002_broken.up.sql").write_text("CREATE TABLE tags (id INTEGER);")
        assert await runner.run() == [2]

    async def test_duplicate_versions_rejected(self, engine, tmp_path):
        scripts = tmp_path / "scripts"
        scripts.mkdir()
        (scripts / "001_a.up.sql").write_text("CREATE TABLE a (id INTEGER);")
        (scripts / "1_b.up.sql").write_text("CREATE TABLE b (id INTEGER);")

        with pytest.raises(MigrationError, match="duplicate"):
            await MigrationRunner(engine, DBType.SQLITE, scripts=scripts).run()


class TestSplitStatements:
    def test_strips_comments_and_blank_statements(self):
        script = """
        -- header
        CREATE TABLE a (id INTEGER);

        -- second
        CREATE TABLE b (note TEXT DEFAULT '${action} ${filename}');
        ;
        """
        assert split_statements(script) == [
            "CREATE TABLE a (id INTEGER)",
            "CREATE TABLE b (note TEXT DEFAULT '${action} ${filename}')",
        ]
