"""
Field metadata for records mapped onto table rows.

Records are plain dataclasses. Each field may be declared with ``column()``
to control how it maps to a column:

    @dataclass
    class Workspace:
        id: int = column(use_default=True, default=0)
        git_token: str = column(omitempty=True, encrypted=True, default="")

The descriptor table for a record type is built once and cached; the
insert/update assembly and the scanner both read it, so a type is mapped the
same way in both directions.
"""

import dataclasses
import functools
import re
import types
import typing
from dataclasses import dataclass
from typing import Any

from lemma.db.errors import InvalidInputError

_META_KEY = "lemma.db"

_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")


@dataclass(frozen=True)
class ColumnOptions:
    """Per-field mapping options, as declared with ``column()``."""

    name: str | None = None
    skip: bool = False
    omitempty: bool = False
    use_default: bool = False
    encrypted: bool = False


@dataclass(frozen=True)
class FieldDescriptor:
    """How one dataclass field maps to one column."""

    attr: str
    name: str
    type: Any
    nullable: bool
    omitempty: bool
    use_default: bool
    encrypted: bool


@dataclass(frozen=True)
class Field:
    """A field extracted from a record instance."""

    name: str
    value: Any
    type: Any
    attr_name: str
    use_default: bool = False
    encrypted: bool = False


def column(
    name: str | None = None,
    *,
    skip: bool = False,
    omitempty: bool = False,
    use_default: bool = False,
    encrypted: bool = False,
    **kwargs: Any,
) -> Any:
    """Declare a dataclass field with column mapping options.

    Args:
        name: Explicit column name. Defaults to the snake_case field name.
        skip: Never read or written.
        omitempty: Left out of inserts and updates while holding a zero value.
        use_default: Left out of inserts and updates; the database supplies it.
        encrypted: Encrypted on write and decrypted on read. ``str`` fields only.
        **kwargs: Passed through to ``dataclasses.field`` (``default``, ``repr``...).
    """
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[_META_KEY] = ColumnOptions(
        name=name,
        skip=skip,
        omitempty=omitempty,
        use_default=use_default,
        encrypted=encrypted,
    )
    return dataclasses.field(metadata=metadata, **kwargs)


def to_snake_case(name: str) -> str:
    """Convert a CamelCase or mixedCase identifier to snake_case."""
    name = _ACRONYM_BOUNDARY.sub(r"\1_\2", name)
    name = _WORD_BOUNDARY.sub(r"\1_\2", name)
    return name.lower()


def is_zero(value: Any) -> bool:
    """True when ``value`` is its type's zero value (None, "", 0, False, empty)."""
    if value is None:
        return True
    if isinstance(value, (str, bytes, int, float, list, tuple, dict, set)):
        return not value
    return False


def _unwrap_optional(tp: Any) -> tuple[Any, bool]:
    """Split ``X | None`` into ``(X, True)``; other types pass through."""
    origin = typing.get_origin(tp)
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        nullable = len(args) != len(typing.get_args(tp))
        if len(args) == 1:
            return args[0], nullable
        return tp, nullable
    return tp, False


def describe(model: type) -> tuple[FieldDescriptor, ...]:
    """Descriptor table for a record type, built on first use."""
    if not isinstance(model, type) or not dataclasses.is_dataclass(model):
        raise InvalidInputError(f"invalid record type: {model!r} is not a dataclass")
    return _describe(model)


@functools.cache
def _describe(model: type) -> tuple[FieldDescriptor, ...]:
    hints = typing.get_type_hints(model)
    descriptors = []
    for f in dataclasses.fields(model):
        if f.name.startswith("_"):
            continue

        opts = f.metadata.get(_META_KEY, ColumnOptions())
        if opts.skip:
            continue

        field_type, nullable = _unwrap_optional(hints.get(f.name, f.type))
        if opts.encrypted and field_type is not str:
            raise InvalidInputError(
                f"invalid record type {model.__name__}: encrypted field "
                f"{f.name!r} must be str, got {field_type!r}"
            )

        descriptors.append(
            FieldDescriptor(
                attr=f.name,
                name=opts.name or to_snake_case(f.name),
                type=field_type,
                nullable=nullable,
                omitempty=opts.omitempty,
                use_default=opts.use_default,
                encrypted=opts.encrypted,
            )
        )
    return tuple(descriptors)


def column_names(model: type) -> list[str]:
    """All mapped column names of a record type, in declaration order."""
    return [d.name for d in describe(model)]


def extract_fields(record: Any) -> list[Field]:
    """Extract the mapped fields of a record instance in declaration order.

    Skipped fields never appear; ``omitempty`` fields holding a zero value are
    dropped. Values are returned as-is, encryption is left to the caller.
    """
    if record is None:
        raise InvalidInputError("invalid record: None provided")
    if isinstance(record, type) or not dataclasses.is_dataclass(record):
        raise InvalidInputError(
            f"invalid record: expected a dataclass instance, got {type(record).__name__}"
        )

    fields = []
    for d in describe(type(record)):
        value = getattr(record, d.attr)
        if d.omitempty and is_zero(value):
            continue
        fields.append(
            Field(
                name=d.name,
                value=value,
                type=d.type,
                attr_name=d.attr,
                use_default=d.use_default,
                encrypted=d.encrypted,
            )
        )
    return fields
