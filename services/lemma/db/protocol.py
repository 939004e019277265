"""
Store interfaces for the data-access layer.

Callers depend on the narrowest interface they need (a read-only view of
workspaces, say); ``SQLDatabase`` satisfies all of them structurally.
"""

from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol, TypeVar, runtime_checkable

from sqlalchemy.engine import Result
from sqlalchemy.ext.asyncio import AsyncConnection

from lemma.db.query import Query
from lemma.db.system import UserStats
from lemma.models.session import Session
from lemma.models.user import User
from lemma.models.workspace import Workspace

T = TypeVar("T")


@runtime_checkable
class UserStore(Protocol):
    async def create_user(self, user: User) -> User: ...

    async def get_user_by_email(self, email: str) -> User: ...

    async def get_user_by_id(self, user_id: int) -> User: ...

    async def get_all_users(self) -> list[User]: ...

    async def update_user(self, user: User) -> None: ...

    async def delete_user(self, user_id: int) -> None: ...

    async def update_last_workspace(self, user_id: int, workspace_name: str) -> None: ...

    async def get_last_workspace_name(self, user_id: int) -> str: ...

    async def count_admin_users(self) -> int: ...


@runtime_checkable
class WorkspaceReader(Protocol):
    async def get_workspace_by_id(self, workspace_id: int) -> Workspace: ...

    async def get_workspace_by_name(self, user_id: int, workspace_name: str) -> Workspace: ...

    async def get_workspaces_by_user_id(self, user_id: int) -> list[Workspace]: ...

    async def get_all_workspaces(self) -> list[Workspace]: ...


@runtime_checkable
class WorkspaceWriter(Protocol):
    async def create_workspace(self, workspace: Workspace) -> None: ...

    async def update_workspace(self, workspace: Workspace) -> None: ...

    async def delete_workspace(self, workspace_id: int) -> None: ...

    async def update_workspace_settings(self, workspace: Workspace) -> None: ...

    async def delete_workspace_tx(self, conn: AsyncConnection, workspace_id: int) -> None: ...

    async def update_last_workspace_tx(
        self, conn: AsyncConnection, user_id: int, workspace_id: int
    ) -> None: ...

    async def update_last_opened_file(self, workspace_id: int, file_path: str) -> None: ...

    async def get_last_opened_file(self, workspace_id: int) -> str: ...


@runtime_checkable
class WorkspaceStore(WorkspaceReader, WorkspaceWriter, Protocol):
    pass


@runtime_checkable
class SessionStore(Protocol):
    async def create_session(self, session: Session) -> None: ...

    async def get_session_by_refresh_token(self, refresh_token: str) -> Session: ...

    async def get_session_by_id(self, session_id: str) -> Session: ...

    async def delete_session(self, session_id: str) -> None: ...

    async def clean_expired_sessions(self) -> int: ...


@runtime_checkable
class SystemStore(Protocol):
    async def get_system_stats(self) -> UserStats: ...

    async def ensure_jwt_secret(self) -> str: ...

    async def get_system_setting(self, key: str) -> str: ...

    async def set_system_setting(self, key: str, value: str) -> None: ...


@runtime_checkable
class StructScanner(Protocol):
    def scan_struct(self, result: Result[Any], model: type[T]) -> T: ...

    def scan_structs(self, result: Result[Any], model: type[T]) -> list[T]: ...


@runtime_checkable
class Database(UserStore, WorkspaceStore, SessionStore, SystemStore, StructScanner, Protocol):
    """Everything the application needs from persistence."""

    def new_query(self) -> Query: ...

    def begin(self) -> AbstractAsyncContextManager[AsyncConnection]: ...

    async def close(self) -> None: ...

    async def migrate(self) -> list[int]: ...
