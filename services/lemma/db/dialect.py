"""
SQL dialects supported by the Lemma data layer.

The two dialects differ in placeholder syntax (``?`` versus ``$1, $2, ...``),
relative-date arithmetic, driver binding, and how bound datetimes must be
represented. Everything dialect-specific lives here so the query builder,
stores and migration runner only ever branch on a ``DBType``.
"""

from datetime import UTC, datetime
from enum import Enum, StrEnum
from typing import Any


class DBType(StrEnum):
    """Supported database backends."""

    SQLITE = "sqlite3"
    POSTGRES = "postgres"

    @property
    def ordinal_placeholders(self) -> bool:
        """True when markers are numbered ($1, $2, ...) rather than repeated."""
        return self is DBType.POSTGRES

    def placeholder(self, position: int) -> str:
        """Marker text for the argument at 1-based ``position``."""
        if self.ordinal_placeholders:
            return f"${position}"
        return "?"

    def time_since(self, days: int) -> str:
        """SQL expression for "now minus ``days`` days"."""
        if self is DBType.POSTGRES:
            return f"NOW() - INTERVAL '{days} days'"
        return f"datetime('now', '-{days} days')"

    @property
    def migrations_dir(self) -> str:
        """Directory name of this dialect's migration scripts."""
        if self is DBType.POSTGRES:
            return "postgres"
        return "sqlite"

    def sqlalchemy_url(self, data_source: str) -> str:
        """Async SQLAlchemy URL for a raw data source."""
        if self is DBType.POSTGRES:
            for prefix in ("postgresql+asyncpg://", "postgresql://", "postgres://"):
                if data_source.startswith(prefix):
                    return "postgresql+asyncpg://" + data_source[len(prefix) :]
            return "postgresql+asyncpg://" + data_source
        return "sqlite+aiosqlite:///" + data_source

    def adapt_arg(self, value: Any) -> Any:
        """Convert a Python value into what the driver expects for this dialect.

        Datetimes are normalized to UTC. SQLite stores them as fixed-width text
        so that lexical comparison matches chronological order; PostgreSQL
        TIMESTAMP columns take naive UTC datetimes.
        """
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, datetime):
            if value.tzinfo is not None:
                value = value.astimezone(UTC).replace(tzinfo=None)
            if self is DBType.SQLITE:
                return value.strftime("%Y-%m-%d %H:%M:%S.%f")
            return value
        return value

    def adapt_args(self, args: list[Any]) -> tuple[Any, ...]:
        """Adapt a whole argument list for ``exec_driver_sql``."""
        return tuple(self.adapt_arg(a) for a in args)
