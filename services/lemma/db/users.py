"""
User store.

Creating a user also creates its default workspace, and deleting a user
removes its workspaces; both run as a single transaction.
"""

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection

from lemma.db.errors import NotFoundError, wrap_db_error
from lemma.db.query import JoinType, Query
from lemma.db.store import StoreBase
from lemma.models.user import User, UserRole
from lemma.models.workspace import DEFAULT_WORKSPACE_NAME, Workspace

USER_COLUMNS = (
    "id",
    "email",
    "display_name",
    "password_hash",
    "role",
    "created_at",
    "last_workspace_id",
)


class UserStoreMixin(StoreBase):
    def _select_users(self) -> Query:
        return self.new_query().select(*USER_COLUMNS).from_("users")

    async def create_user(self, user: User) -> User:
        """Insert ``user`` together with its default workspace.

        Fills in ``id``, ``created_at`` and ``last_workspace_id`` on the
        passed record once the transaction commits, and returns it. Nothing is persisted if any step fails.
        """
        log = self._log.bind(store="users")
        log.debug("Creating user", email=user.email)

        try:
            async with self._engine.begin() as conn:
                q = self.new_query().insert_struct(user, "users").returning("id", "created_at")
                result = await self._execute(conn, q)
                created = self._scanner.scan_into(result.mappings().one(), User())

                workspace = Workspace(user_id=created.id, name=DEFAULT_WORKSPACE_NAME)
                workspace.set_default_settings()
                await self._create_workspace_tx(conn, workspace)

                await self.update_last_workspace_tx(conn, created.id, workspace.id)
        except SQLAlchemyError as e:
            log.error("Failed to create user", email=user.email, error=str(e))
            raise self._workflow_error(f"failed to create user {user.email}", e) from e

        user.id = created.id
        user.created_at = created.created_at
        user.last_workspace_id = workspace.id
        log.debug("Created user", user_id=user.id, workspace_id=workspace.id)
        return user

    async def get_user_by_id(self, user_id: int) -> User:
        q = self._select_users().where("id = ").placeholder(user_id)
        try:
            async with self._engine.connect() as conn:
                result = await self._execute(conn, q)
                return self._scanner.scan_one(result, User)
        except NotFoundError:
            raise NotFoundError(f"user {user_id} not found") from None
        except SQLAlchemyError as e:
            raise wrap_db_error(f"failed to fetch user {user_id}", e) from e

    async def get_user_by_email(self, email: str) -> User:
        q = self._select_users().where("email = ").placeholder(email)
        try:
            async with self._engine.connect() as conn:
                result = await self._execute(conn, q)
                return self._scanner.scan_one(result, User)
        except NotFoundError:
            raise NotFoundError(f"user with email {email} not found") from None
        except SQLAlchemyError as e:
            raise wrap_db_error(f"failed to fetch user {email}", e) from e

    async def get_all_users(self) -> list[User]:
        q = self._select_users().order_by("id ASC")
        try:
            async with self._engine.connect() as conn:
                result = await self._execute(conn, q)
                return self._scanner.scan_many(result, User)
        except SQLAlchemyError as e:
            raise wrap_db_error("failed to query users", e) from e

    async def update_user(self, user: User) -> None:
        """Update profile, credentials, role and last workspace of an existing user."""
        q = (
            self.new_query()
            .update("users")
            .set("email").placeholder(user.email)
            .set("display_name").placeholder(user.display_name)
            .set("password_hash").placeholder(user.password_hash)
            .set("role").placeholder(user.role)
            .set("last_workspace_id").placeholder(user.last_workspace_id)
            .where("id = ").placeholder(user.id)
        )  # fmt: skip
        try:
            async with self._engine.begin() as conn:
                result = await self._execute(conn, q)
                updated = result.rowcount
        except SQLAlchemyError as e:
            raise wrap_db_error(f"failed to update user {user.id}", e) from e

        if updated == 0:
            raise NotFoundError(f"user {user.id} not found")

    async def delete_user(self, user_id: int) -> None:
        """Delete a user and every workspace it owns."""
        log = self._log.bind(store="users")
        log.debug("Deleting user", user_id=user_id)

        try:
            async with self._engine.begin() as conn:
                q = self.new_query().delete().from_("workspaces")
                q.where("user_id = ").placeholder(user_id)
                result = await self._execute(conn, q)
                log.debug("Deleted user workspaces", user_id=user_id, count=result.rowcount)

                q = self.new_query().delete().from_("users").where("id = ").placeholder(user_id)
                result = await self._execute(conn, q)
                deleted = result.rowcount
        except SQLAlchemyError as e:
            log.error("Failed to delete user", user_id=user_id, error=str(e))
            raise self._workflow_error(f"failed to delete user {user_id}", e) from e

        if deleted == 0:
            raise NotFoundError(f"user {user_id} not found")
        log.debug("Deleted user", user_id=user_id)

    async def update_last_workspace(self, user_id: int, workspace_name: str) -> None:
        """Point the user's last workspace at ``workspace_name``.

        Raises NotFoundError, leaving the pointer untouched, when the user
        owns no workspace of that name.
        """
        q = (
            self.new_query()
            .select("id")
            .from_("workspaces")
            .where("user_id = ").placeholder(user_id)
            .and_("name = ").placeholder(workspace_name)
        )  # fmt: skip
        try:
            async with self._engine.begin() as conn:
                result = await self._execute(conn, q)
                workspace_id = result.scalar_one_or_none()
                if workspace_id is None:
                    raise NotFoundError(
                        f"workspace {workspace_name!r} not found for user {user_id}"
                    )
                await self.update_last_workspace_tx(conn, user_id, workspace_id)
        except SQLAlchemyError as e:
            raise self._workflow_error(
                f"failed to update last workspace of user {user_id}", e
            ) from e

    async def get_last_workspace_name(self, user_id: int) -> str:
        q = (
            self.new_query()
            .select("w.name")
            .from_("workspaces w")
            .join(JoinType.INNER, "users u", "u.last_workspace_id = w.id")
            .where("u.id = ").placeholder(user_id)
        )  # fmt: skip
        try:
            async with self._engine.connect() as conn:
                result = await self._execute(conn, q)
                name = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise wrap_db_error(f"failed to fetch last workspace name of user {user_id}", e) from e

        if name is None:
            raise NotFoundError(f"no last workspace found for user {user_id}")
        return name

    async def count_admin_users(self) -> int:
        q = self.new_query().select("COUNT(*)").from_("users")
        q.where("role = ").placeholder(UserRole.ADMIN)
        try:
            async with self._engine.connect() as conn:
                result = await self._execute(conn, q)
                return result.scalar_one()
        except SQLAlchemyError as e:
            raise wrap_db_error("failed to count admin users", e) from e

    async def _create_workspace_tx(self, conn: AsyncConnection, workspace: Workspace) -> None:
        q = self.new_query().insert_struct(workspace, "workspaces").returning("id", "created_at")
        result = await self._execute(conn, q)
        self._scanner.scan_into(result.mappings().one(), workspace)
        self._log.debug(
            "Created user workspace",
            store="users",
            workspace_id=workspace.id,
            user_id=workspace.user_id,
        )
