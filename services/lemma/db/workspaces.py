"""Workspace store, split into read and write halves."""

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection

from lemma.db.errors import NotFoundError, wrap_db_error
from lemma.db.fields import describe
from lemma.db.query import Query
from lemma.db.store import StoreBase
from lemma.models.workspace import SETTINGS_COLUMNS, Workspace


class WorkspaceReaderMixin(StoreBase):
    def _select_workspaces(self) -> Query:
        return self.new_query().select_struct(Workspace, "workspaces")

    async def _fetch_one(self, q: Query, what: str) -> Workspace:
        try:
            async with self._engine.connect() as conn:
                result = await self._execute(conn, q)
                return self._scanner.scan_one(result, Workspace)
        except NotFoundError:
            raise NotFoundError(f"{what} not found") from None
        except SQLAlchemyError as e:
            raise wrap_db_error(f"failed to fetch {what}", e) from e

    async def _fetch_many(self, q: Query, what: str) -> list[Workspace]:
        try:
            async with self._engine.connect() as conn:
                result = await self._execute(conn, q)
                return self._scanner.scan_many(result, Workspace)
        except SQLAlchemyError as e:
            raise wrap_db_error(f"failed to query {what}", e) from e

    async def get_workspace_by_id(self, workspace_id: int) -> Workspace:
        q = self._select_workspaces().where("id = ").placeholder(workspace_id)
        return await self._fetch_one(q, f"workspace {workspace_id}")

    async def get_workspace_by_name(self, user_id: int, workspace_name: str) -> Workspace:
        q = (
            self._select_workspaces()
            .where("user_id = ").placeholder(user_id)
            .and_("name = ").placeholder(workspace_name)
        )  # fmt: skip
        return await self._fetch_one(q, f"workspace {workspace_name!r} of user {user_id}")

    async def get_workspaces_by_user_id(self, user_id: int) -> list[Workspace]:
        q = self._select_workspaces().where("user_id = ").placeholder(user_id).order_by("id ASC")
        return await self._fetch_many(q, f"workspaces of user {user_id}")

    async def get_all_workspaces(self) -> list[Workspace]:
        q = self._select_workspaces().order_by("id ASC")
        return await self._fetch_many(q, "workspaces")


class WorkspaceWriterMixin(StoreBase):
    def _set_settings(self, q: Query, workspace: Workspace) -> Query:
        encrypted = {d.name for d in describe(Workspace) if d.encrypted}
        for name in SETTINGS_COLUMNS:
            value = getattr(workspace, name)
            if name in encrypted:
                value = q.encrypt_value(name, value)
            q.set(name).placeholder(value)
        return q

    async def create_workspace(self, workspace: Workspace) -> None:
        """Insert ``workspace``, filling in ``id`` and ``created_at``.

        Baseline settings are applied when no theme was chosen.
        """
        log = self._log.bind(store="workspaces")
        log.debug(
            "Creating workspace",
            user_id=workspace.user_id,
            name=workspace.name,
            git_enabled=workspace.git_enabled,
        )
        if not workspace.theme:
            workspace.set_default_settings()

        q = self.new_query().insert_struct(workspace, "workspaces").returning("id", "created_at")
        try:
            async with self._engine.begin() as conn:
                result = await self._execute(conn, q)
                self._scanner.scan_into(result.mappings().one(), workspace)
        except SQLAlchemyError as e:
            raise wrap_db_error(
                f"failed to insert workspace {workspace.name!r} for user {workspace.user_id}", e
            ) from e

    async def update_workspace(self, workspace: Workspace) -> None:
        """Update name and settings of a workspace owned by ``workspace.user_id``."""
        q = self.new_query().update("workspaces").set("name").placeholder(workspace.name)
        self._set_settings(q, workspace)
        q.where("id = ").placeholder(workspace.id).and_("user_id = ").placeholder(workspace.user_id)
        await self._exec_write(q, f"failed to update workspace {workspace.id}")

    async def update_workspace_settings(self, workspace: Workspace) -> None:
        """Update only the settings columns of a workspace."""
        q = self._set_settings(self.new_query().update("workspaces"), workspace)
        q.where("id = ").placeholder(workspace.id)
        await self._exec_write(q, f"failed to update settings of workspace {workspace.id}")

    async def delete_workspace(self, workspace_id: int) -> None:
        q = self.new_query().delete().from_("workspaces").where("id = ").placeholder(workspace_id)
        await self._exec_write(q, f"failed to delete workspace {workspace_id}")
        self._log.debug("Workspace deleted", store="workspaces", workspace_id=workspace_id)

    async def delete_workspace_tx(self, conn: AsyncConnection, workspace_id: int) -> None:
        """Delete a workspace inside a caller-owned transaction."""
        q = self.new_query().delete().from_("workspaces").where("id = ").placeholder(workspace_id)
        try:
            await self._execute(conn, q)
        except SQLAlchemyError as e:
            raise wrap_db_error(
                f"failed to delete workspace {workspace_id} in transaction", e
            ) from e
        self._log.debug("Workspace deleted", store="workspaces", workspace_id=workspace_id)

    async def update_last_workspace_tx(
        self, conn: AsyncConnection, user_id: int, workspace_id: int
    ) -> None:
        """Set a user's last workspace inside a caller-owned transaction."""
        q = (
            self.new_query()
            .update("users")
            .set("last_workspace_id").placeholder(workspace_id)
            .where("id = ").placeholder(user_id)
        )  # fmt: skip
        await self._execute(conn, q)

    async def update_last_opened_file(self, workspace_id: int, file_path: str) -> None:
        q = (
            self.new_query()
            .update("workspaces")
            .set("last_opened_file_path").placeholder(file_path)
            .where("id = ").placeholder(workspace_id)
        )  # fmt: skip
        await self._exec_write(q, f"failed to update last opened file of workspace {workspace_id}")

    async def get_last_opened_file(self, workspace_id: int) -> str:
        """Last opened file path, or ``""`` when none was recorded."""
        q = (
            self.new_query()
            .select("last_opened_file_path")
            .from_("workspaces")
            .where("id = ").placeholder(workspace_id)
        )  # fmt: skip
        try:
            async with self._engine.connect() as conn:
                result = await self._execute(conn, q)
                row = result.first()
        except SQLAlchemyError as e:
            raise wrap_db_error(
                f"failed to fetch last opened file of workspace {workspace_id}", e
            ) from e

        if row is None:
            raise NotFoundError(f"workspace {workspace_id} not found")
        return row[0] or ""
