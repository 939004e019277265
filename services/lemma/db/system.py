"""
System settings and installation-wide statistics.

The JWT signing secret lives here under ``JWT_SECRET_KEY``; it is generated
on first use and never replaced afterwards.
"""

import base64
import secrets
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from lemma.db.errors import NotFoundError, wrap_db_error
from lemma.db.store import StoreBase

JWT_SECRET_KEY = "jwt_secret"
JWT_SECRET_BYTES = 32

ACTIVE_USER_WINDOW_DAYS = 30


@dataclass
class UserStats:
    total_users: int = 0
    total_workspaces: int = 0
    active_users: int = 0  # distinct users with a session created in the window


def generate_random_secret(num_bytes: int) -> str:
    return base64.b64encode(secrets.token_bytes(num_bytes)).decode()


class SystemStoreMixin(StoreBase):
    async def get_system_setting(self, key: str) -> str:
        log = self._log.bind(store="system")
        q = self.new_query().select("value").from_("system_settings")
        q.where("key = ").placeholder(key)
        try:
            async with self._engine.connect() as conn:
                result = await self._execute(conn, q)
                value = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            log.error("Failed to retrieve system setting", key=key, error=str(e))
            raise wrap_db_error(f"failed to retrieve system setting {key!r}", e) from e

        if value is None:
            log.debug("System setting not found", key=key)
            raise NotFoundError(f"system setting {key!r} not found")
        return value

    async def set_system_setting(self, key: str, value: str) -> None:
        """Insert or overwrite a setting."""
        q = (
            self.new_query()
            .insert("system_settings", "key", "value")
            .values(2)
            .add_args(key, value)
            .write(
                " ON CONFLICT (key) DO UPDATE SET value = excluded.value,"
                " updated_at = CURRENT_TIMESTAMP"
            )
        )
        await self._exec_write(q, f"failed to store system setting {key!r}")
        self._log.info("System setting stored", store="system", key=key)

    async def ensure_jwt_secret(self) -> str:
        """Return the JWT signing secret, creating it on first call.

        Concurrent first callers race on an insert-if-absent and then read
        back the row, so every caller ends up with the same secret.
        """
        log = self._log.bind(store="system")
        try:
            secret = await self.get_system_setting(JWT_SECRET_KEY)
        except NotFoundError:
            pass
        else:
            log.debug("Existing JWT secret found")
            return secret

        log.info("No JWT secret found, generating a new one")
        q = (
            self.new_query()
            .insert("system_settings", "key", "value")
            .values(2)
            .add_args(JWT_SECRET_KEY, generate_random_secret(JWT_SECRET_BYTES))
            .write(" ON CONFLICT (key) DO NOTHING")
        )
        await self._exec_write(q, "failed to store JWT secret")
        return await self.get_system_setting(JWT_SECRET_KEY)

    async def get_system_stats(self) -> UserStats:
        """User, workspace and active-user counts.

        The three counts are read independently and may be mutually
        inconsistent under concurrent writes.
        """
        log = self._log.bind(store="system")
        stats = UserStats()

        active = self.new_query().select("COUNT(DISTINCT user_id)").from_("sessions")
        active.where("created_at > " + active.time_since(ACTIVE_USER_WINDOW_DAYS))
        queries = {
            "total_users": self.new_query().select("COUNT(*)").from_("users"),
            "total_workspaces": self.new_query().select("COUNT(*)").from_("workspaces"),
            "active_users": active,
        }

        try:
            async with self._engine.connect() as conn:
                for name, q in queries.items():
                    result = await self._execute(conn, q)
                    setattr(stats, name, result.scalar_one())
        except SQLAlchemyError as e:
            log.error("Failed to collect system statistics", error=str(e))
            raise wrap_db_error("failed to collect system statistics", e) from e

        log.info(
            "System statistics collected",
            total_users=stats.total_users,
            total_workspaces=stats.total_workspaces,
            active_users=stats.active_users,
        )
        return stats
