"""
Error kinds raised by the data-access layer.

Usage:
    from lemma.db.errors import NotFoundError

    try:
        user = await db.get_user_by_email(email)
    except NotFoundError:
        ...

Every error raised by a store carries the operation and the salient
identifiers in its message; the underlying driver exception is chained.
"""

from sqlalchemy.exc import IntegrityError, SQLAlchemyError


class DatabaseError(Exception):
    """Base exception for data-access failures."""


class NotFoundError(DatabaseError, LookupError):
    """Zero rows where exactly one was expected, or a targeted write hit nothing."""


class InvalidInputError(DatabaseError, ValueError):
    """Malformed record, destination or argument list."""


class ScanError(InvalidInputError):
    """A result row could not be mapped onto the destination record."""


class ConstraintViolationError(DatabaseError):
    """Uniqueness, foreign-key or check constraint rejected by the backend."""


class TransactionError(DatabaseError):
    """A multi-statement workflow failed and was rolled back."""


class MigrationError(DatabaseError):
    """A schema migration could not be applied."""


def wrap_db_error(message: str, exc: SQLAlchemyError) -> DatabaseError:
    """Translate a driver-level exception into this module's error kinds.

    Constraint violations keep the backend's own text so callers can surface it.
    """
    detail = getattr(exc, "orig", None) or exc
    if isinstance(exc, IntegrityError):
        return ConstraintViolationError(f"{message}: {detail}")
    return DatabaseError(f"{message}: {detail}")
