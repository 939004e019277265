"""The SQL database satisfies every store interface."""

import pytest

from lemma.db.protocol import (
    Database,
    SessionStore,
    StructScanner,
    SystemStore,
    UserStore,
    WorkspaceReader,
    WorkspaceStore,
    WorkspaceWriter,
)
from lemma.models.user import User


class TestProtocols:
    @pytest.mark.parametrize(
        "protocol",
        [
            Database,
            UserStore,
            WorkspaceReader,
            WorkspaceWriter,
            WorkspaceStore,
            SessionStore,
            SystemStore,
            StructScanner,
        ],
    )
    async def test_sql_database_satisfies(self, database, protocol):
        assert isinstance(database, protocol)

    def test_reader_is_not_a_writer(self):
        class ReadOnly:
            async def get_workspace_by_id(self, workspace_id): ...

            async def get_workspace_by_name(self, user_id, workspace_name): ...

            async def get_workspaces_by_user_id(self, user_id): ...

            async def get_all_workspaces(self): ...

        assert isinstance(ReadOnly(), WorkspaceReader)
        assert not isinstance(ReadOnly(), WorkspaceWriter)


class TestStructScanner:
    async def test_scan_struct_on_raw_query(self, database, make_user):
        created = await database.create_user(make_user("raw@example.com"))
        q = database.new_query().select("id", "email", "role").from_("users")
        q.where("id = ").placeholder(created.id)

        async with database.begin() as conn:
            result = await conn.exec_driver_sql(q.sql, database.db_type.adapt_args(q.args))
            user = database.scan_struct(result, User)

        assert user.id == created.id
        assert user.email == "raw@example.com"
        assert user.password_hash == ""

    async def test_scan_structs(self, database, make_user):
        await database.create_user(make_user("one@example.com"))
        await database.create_user(make_user("two@example.com"))

        async with database.begin() as conn:
            result = await conn.exec_driver_sql("SELECT email FROM users ORDER BY id")
            users = database.scan_structs(result, User)

        assert [u.email for u in users] == ["one@example.com", "two@example.com"]
