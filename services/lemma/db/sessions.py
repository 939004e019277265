"""Session store. Lookups never return a session past its expiry."""

from datetime import UTC, datetime

from sqlalchemy.exc import SQLAlchemyError

from lemma.db.errors import NotFoundError, wrap_db_error
from lemma.db.query import Query
from lemma.db.store import StoreBase
from lemma.models.session import Session


class SessionStoreMixin(StoreBase):
    async def create_session(self, session: Session) -> None:
        q = self.new_query().insert_struct(session, "sessions")
        await self._exec_write(q, f"failed to store session for user {session.user_id}")

    async def _get_live_session(self, q: Query, what: str) -> Session:
        q.and_("expires_at > ").placeholder(datetime.now(UTC))
        try:
            async with self._engine.connect() as conn:
                result = await self._execute(conn, q)
                return self._scanner.scan_one(result, Session)
        except NotFoundError:
            raise NotFoundError(f"{what} not found or expired") from None
        except SQLAlchemyError as e:
            raise wrap_db_error(f"failed to fetch {what}", e) from e

    async def get_session_by_refresh_token(self, refresh_token: str) -> Session:
        q = (
            self.new_query()
            .select_struct(Session, "sessions")
            .where("refresh_token = ").placeholder(refresh_token)
        )  # fmt: skip
        return await self._get_live_session(q, "session for refresh token")

    async def get_session_by_id(self, session_id: str) -> Session:
        q = self.new_query().select_struct(Session, "sessions")
        q.where("id = ").placeholder(session_id)
        return await self._get_live_session(q, f"session {session_id}")

    async def delete_session(self, session_id: str) -> None:
        q = self.new_query().delete().from_("sessions").where("id = ").placeholder(session_id)
        deleted = await self._exec_write(q, f"failed to delete session {session_id}")
        if deleted == 0:
            raise NotFoundError(f"session {session_id} not found")

    async def clean_expired_sessions(self) -> int:
        """Delete every session whose expiry has passed. Returns the number removed."""
        q = (
            self.new_query()
            .delete()
            .from_("sessions")
            .where("expires_at <= ").placeholder(datetime.now(UTC))
        )  # fmt: skip
        removed = await self._exec_write(q, "failed to clean expired sessions")
        self._log.info("Cleaned expired sessions", store="sessions", sessions_removed=removed)
        return removed
