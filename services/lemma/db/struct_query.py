"""Statement assembly from dataclass records (mixed into ``Query``)."""

from typing import TYPE_CHECKING, Any, Self

from lemma.db.errors import InvalidInputError
from lemma.db.fields import Field, column_names, extract_fields

if TYPE_CHECKING:
    from lemma.services.encryption_service import SecretsService


class StructQueryMixin:
    """INSERT/UPDATE/SELECT builders driven by record field metadata."""

    _secrets: "SecretsService | None"

    def encrypt_value(self, column: str, value: str) -> str:
        """Ciphertext for an encrypted column. Empty values stay empty."""
        if not value:
            return ""
        if self._secrets is None:
            raise InvalidInputError(
                f"field {column!r} is encrypted but no secrets service is configured"
            )
        try:
            return self._secrets.encrypt(value)
        except ValueError as e:
            raise InvalidInputError(f"cannot encrypt column {column!r}: {e}") from e

    def _writable_values(self, fields: list[Field]) -> list[tuple[str, Any]]:
        """Drop database-defaulted fields and encrypt the encrypted ones."""
        values = []
        for f in fields:
            if f.use_default:
                continue

            value = f.value
            if f.encrypted and isinstance(value, str):
                value = self.encrypt_value(f.name, value)

            values.append((f.name, value))
        return values

    def insert_struct(self, record: Any, table: str) -> Self:
        """``INSERT INTO table (...) VALUES (...)`` for every writable field."""
        values = self._writable_values(extract_fields(record))
        if not values:
            raise InvalidInputError(f"no columns to insert into {table}")

        columns = [name for name, _ in values]
        return self.insert(table, *columns).values(len(columns)).add_args(*(v for _, v in values))

    def update_struct(
        self,
        record: Any,
        table: str,
        where: list[str],
        args: list[Any],
    ) -> Self:
        """``UPDATE table SET ...`` for every writable field, filtered by ``where``.

        ``where`` holds condition prefixes such as ``"id = "``; each is paired
        with the argument at the same index.
        """
        fields = extract_fields(record)
        if len(where) != len(args):
            raise InvalidInputError(
                f"update of {table}: {len(where)} where clauses but {len(args)} arguments"
            )

        values = self._writable_values(fields)
        if not values:
            raise InvalidInputError(f"no columns to update in {table}")

        self.update(table)
        for name, value in values:
            self.set(name).placeholder(value)
        for condition, arg in zip(where, args, strict=True):
            self.where(condition).placeholder(arg)
        return self

    def select_struct(self, model: type, table: str) -> Self:
        """``SELECT <every mapped column> FROM table``."""
        return self.select(*column_names(model)).from_(table)
