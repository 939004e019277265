"""
Fluent SQL statement builder.

Builds one parameterized statement as text plus an ordered argument list,
emitting placeholders for the configured dialect:

    q = Query(DBType.POSTGRES).select("id", "name").from_("users")
    q.where("id = ").placeholder(5)
    str(q)   # "SELECT id, name FROM users WHERE id = $1"
    q.args   # [5]

Single-use clauses (SELECT, FROM, ORDER BY, GROUP BY, LIMIT, OFFSET) are
only written on their first call, so conditional builders can call them
freely. No validation is done: clause order mistakes surface as SQL errors
from the database.
"""

from enum import StrEnum
from typing import TYPE_CHECKING, Any, Self

from lemma.db.dialect import DBType
from lemma.db.struct_query import StructQueryMixin

if TYPE_CHECKING:
    from lemma.services.encryption_service import SecretsService


class JoinType(StrEnum):
    INNER = "INNER JOIN"
    LEFT = "LEFT JOIN"
    RIGHT = "RIGHT JOIN"


class Query(StructQueryMixin):
    """A SQL statement under construction. Not safe to share between tasks."""

    def __init__(self, db_type: DBType, secrets: "SecretsService | None" = None) -> None:
        self.db_type = db_type
        self._secrets = secrets
        self._parts: list[str] = []
        self._args: list[Any] = []
        self._pos = 0
        self._has_select = False
        self._has_from = False
        self._has_where = False
        self._has_order_by = False
        self._has_group_by = False
        self._has_having = False
        self._has_limit = False
        self._has_offset = False
        self._set_count = 0
        self._parens_depth = 0
        self._group_opened = False

    # --- Reading ---

    @property
    def sql(self) -> str:
        return "".join(self._parts)

    @property
    def args(self) -> list[Any]:
        return self._args

    def __str__(self) -> str:
        return self.sql

    def __repr__(self) -> str:
        return f"Query({self.db_type.value!r}, {self.sql!r}, args={self._args!r})"

    # --- Low level ---

    def write(self, text: str) -> Self:
        """Append raw SQL text."""
        self._parts.append(text)
        self._group_opened = False
        return self

    def placeholder(self, value: Any) -> Self:
        """Append one marker and record ``value`` as its argument."""
        self._pos += 1
        self._args.append(value)
        return self.write(self.db_type.placeholder(self._pos))

    def placeholders(self, n: int) -> Self:
        """Append ``n`` comma-separated markers. Arguments come from ``add_args``."""
        markers = []
        for _ in range(n):
            self._pos += 1
            markers.append(self.db_type.placeholder(self._pos))
        return self.write(", ".join(markers))

    def add_args(self, *args: Any) -> Self:
        self._args.extend(args)
        return self

    def time_since(self, days: int) -> str:
        """Dialect-specific expression for "now minus ``days`` days"."""
        return self.db_type.time_since(days)

    # --- SELECT ---

    def select(self, *columns: str) -> Self:
        if not self._has_select:
            self.write("SELECT " + ", ".join(columns))
            self._has_select = True
        return self

    def from_(self, table: str) -> Self:
        if not self._has_from:
            self.write(" FROM " + table)
            self._has_from = True
        return self

    def join(self, join_type: JoinType, table: str, condition: str) -> Self:
        return self.write(f" {join_type} {table} ON {condition}")

    def _open_condition(self) -> None:
        if self._group_opened:
            return
        if not self._has_where:
            self.write(" WHERE ")
            self._has_where = True
        else:
            self.write(" AND ")

    def where(self, condition: str) -> Self:
        """Open the WHERE clause, or AND onto it when already open."""
        self._open_condition()
        return self.write(condition)

    def where_in(self, column: str, count: int) -> Self:
        self._open_condition()
        self.write(f"{column} IN (")
        self.placeholders(count)
        return self.write(")")

    def and_(self, condition: str) -> Self:
        return self.write(" AND " + condition)

    def or_(self, condition: str) -> Self:
        return self.write(" OR " + condition)

    def start_group(self) -> Self:
        """Open a parenthesized condition group."""
        if self._has_where:
            self.write(" AND (")
        else:
            self.write(" WHERE (")
            self._has_where = True
        self._parens_depth += 1
        self._group_opened = True
        return self

    def end_group(self) -> Self:
        """Close the innermost group. Ignored when no group is open."""
        if self._parens_depth > 0:
            self.write(")")
            self._parens_depth -= 1
        return self

    def group_by(self, *columns: str) -> Self:
        if not self._has_group_by:
            self.write(" GROUP BY " + ", ".join(columns))
            self._has_group_by = True
        return self

    def having(self, condition: str) -> Self:
        if not self._has_having:
            self.write(" HAVING ")
            self._has_having = True
        else:
            self.write(" AND ")
        return self.write(condition)

    def order_by(self, *columns: str) -> Self:
        if not self._has_order_by:
            self.write(" ORDER BY " + ", ".join(columns))
            self._has_order_by = True
        return self

    def limit(self, limit: int) -> Self:
        if not self._has_limit:
            self.write(f" LIMIT {int(limit)}")
            self._has_limit = True
        return self

    def offset(self, offset: int) -> Self:
        if not self._has_offset:
            self.write(f" OFFSET {int(offset)}")
            self._has_offset = True
        return self

    # --- DML ---

    def insert(self, table: str, *columns: str) -> Self:
        return self.write(f"INSERT INTO {table} ({', '.join(columns)}) VALUES ")

    def values(self, count: int) -> Self:
        self.write("(")
        self.placeholders(count)
        return self.write(")")

    def update(self, table: str) -> Self:
        return self.write(f"UPDATE {table} SET ")

    def set(self, column: str) -> Self:
        if self._set_count:
            self.write(", ")
        self._set_count += 1
        return self.write(column + " = ")

    def delete(self) -> Self:
        return self.write("DELETE")

    def returning(self, *columns: str) -> Self:
        return self.write(" RETURNING " + ", ".join(columns))
