"""
Hydrate dataclass records from query results.

The scanner reverses the field mapping used by ``insert_struct``: result
columns are matched to fields by column name, values are coerced to the
annotated field type where the drivers disagree (SQLite hands back
timestamps as text and booleans as integers), and encrypted fields are
decrypted after assignment.

NULL handling: ``str`` fields take ``""``, fields annotated ``X | None`` take
``None``, anything else fails with ``ScanError``.
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy.engine import Result

from lemma.db.errors import InvalidInputError, NotFoundError, ScanError
from lemma.db.fields import FieldDescriptor, describe

if TYPE_CHECKING:
    from lemma.services.encryption_service import SecretsService

T = TypeVar("T")


def _is_enum_type(tp: Any) -> bool:
    return isinstance(tp, type) and issubclass(tp, Enum)


def coerce_value(value: Any, d: FieldDescriptor) -> Any:
    """Convert a driver value to the field's annotated type."""
    if value is None:
        if d.type is str:
            return ""
        if d.nullable:
            return None
        raise ScanError(f"column {d.name!r} is NULL but field {d.attr!r} is not nullable")

    if d.type is datetime:
        if isinstance(value, str):
            try:
                value = datetime.fromisoformat(value)
            except ValueError as e:
                raise ScanError(f"column {d.name!r}: cannot parse {value!r} as datetime") from e
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value
    if d.type is bool and not isinstance(value, bool):
        return bool(value)
    if _is_enum_type(d.type):
        try:
            return d.type(value)
        except ValueError as e:
            raise ScanError(f"column {d.name!r}: {value!r} is not a valid {d.type.__name__}") from e
    if d.type is str and not isinstance(value, str):
        return str(value)
    return value


class Scanner:
    """Maps result rows onto records, decrypting encrypted fields."""

    def __init__(self, secrets: "SecretsService | None" = None) -> None:
        self._secrets = secrets

    def scan_into(self, row: Mapping[str, Any], dest: Any) -> Any:
        """Populate an existing record from a row mapping. Returns ``dest``."""
        descriptors = describe(type(dest))
        by_name = {d.name: d for d in descriptors}

        scanned = []
        for column, value in row.items():
            d = by_name.get(column)
            if d is None:
                continue
            setattr(dest, d.attr, coerce_value(value, d))
            scanned.append(d)

        # Only columns present in the row hold ciphertext; other fields keep
        # whatever the caller already had on the record.
        for d in scanned:
            if d.encrypted:
                setattr(dest, d.attr, self._decrypt(d, getattr(dest, d.attr)))
        return dest

    def _decrypt(self, d: FieldDescriptor, ciphertext: str) -> str:
        if not ciphertext:
            return ""
        if self._secrets is None:
            raise InvalidInputError(
                f"field {d.attr!r} is encrypted but no secrets service is configured"
            )
        try:
            return self._secrets.decrypt(ciphertext)
        except ValueError as e:
            raise ScanError(f"column {d.name!r}: {e}") from e

    def scan_row(self, row: Mapping[str, Any], model: type[T]) -> T:
        """Build a new ``model`` instance from a row mapping."""
        describe(model)
        try:
            dest = model()
        except TypeError as e:
            raise InvalidInputError(
                f"record type {model.__name__} must be constructible without arguments"
            ) from e
        return self.scan_into(row, dest)

    def scan_one(self, result: Result[Any], model: type[T]) -> T:
        """Scan the first row of ``result``. Raises ``NotFoundError`` when empty."""
        describe(model)
        row = result.mappings().first()
        if row is None:
            raise NotFoundError(f"no {model.__name__} row found")
        return self.scan_row(row, model)

    def scan_many(self, result: Result[Any], model: type[T]) -> list[T]:
        """Scan every row of ``result`` into a list of ``model`` records."""
        describe(model)
        return [self.scan_row(row, model) for row in result.mappings()]
