"""Per-record field plans shared by the bind, unbind, merge, and link walkers.

Purpose
-------
Resolve once per record class everything the walkers need about its fields:
external key, resolved annotation, parsed directive, and the attribute chain
through embedded records. Flattening, key collisions, and overflow-field
validation all happen here so the walkers stay linear.

Contents
--------
* :class:`FieldPlan` – one bindable field, possibly reached through embedded
  records.
* :class:`RecordSchema` – the flattened field plans of a record class plus its
  overflow field.
* :func:`schema_for` – cached schema lookup.
* :func:`ensure_record` / :func:`blank_record` / :func:`reset_field` – record
  instance helpers.
* :func:`zero_value` – the value an absent field falls back to.

System Role
-----------
Imported by every walker in :mod:`lib_record_binding.application`.
"""

from __future__ import annotations

import dataclasses
import enum
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, get_args, get_origin, get_type_hints

from ..domain.directives import FieldDirective, directive_of, is_embedded, to_snake_case
from ..domain.errors import MultipleExtraFieldsError, TypeMismatchError, ValidationError
from ..domain.references import Pointer, is_pointer_hint
from .coercion import type_label, unwrap_optional


@dataclass(frozen=True, slots=True)
class FieldPlan:
    """A bindable field of a record, flattened through embedded records.

    Attributes
    ----------
    attr:
        Attribute name on the holder object.
    key:
        External key in raw mappings.
    hint:
        Resolved annotation.
    directive:
        Parsed directive.
    field:
        The underlying :class:`dataclasses.Field`.
    holder_path:
        Attribute chain from the record to the embedded object declaring the
        field; empty for fields declared on the record itself.
    """

    attr: str
    key: str
    hint: Any
    directive: FieldDirective
    field: dataclasses.Field[Any]
    holder_path: tuple[tuple[str, type], ...] = ()

    @property
    def label(self) -> str:
        """Dotted attribute path used in error messages."""

        return ".".join([*(name for name, _ in self.holder_path), self.attr])


@dataclass(frozen=True, slots=True)
class RecordSchema:
    """Flattened view of a record class."""

    record_type: type
    fields: tuple[FieldPlan, ...]
    extra: FieldPlan | None
    keys: frozenset[str]

    @property
    def name(self) -> str:
        return self.record_type.__name__


_SCHEMAS: dict[type, RecordSchema] = {}
_HINTS: dict[type, dict[str, Any]] = {}


def is_record_type(hint: Any) -> bool:
    """Return ``True`` when *hint* is a dataclass type (not an instance)."""

    return isinstance(hint, type) and dataclasses.is_dataclass(hint)


def is_record(value: Any) -> bool:
    """Return ``True`` when *value* is a dataclass instance."""

    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def schema_for(record_type: type) -> RecordSchema:
    """Return the cached :class:`RecordSchema` for *record_type*.

    Raises
    ------
    MultipleExtraFieldsError
        When more than one field (including embedded ones) is marked ``+extra``.
    TypeMismatchError
        When the overflow field is not a ``dict[str, Any]``.
    """

    schema = _SCHEMAS.get(record_type)
    if schema is None:
        schema = _build_schema(record_type)
        _SCHEMAS[record_type] = schema
    return schema


def _build_schema(record_type: type) -> RecordSchema:
    collected: dict[str, FieldPlan] = {}
    extras: list[FieldPlan] = []
    _collect_fields(record_type, (), collected, extras, {record_type})

    if len(extras) > 1:
        raise MultipleExtraFieldsError(record_type.__name__, [plan.label for plan in extras])
    extra = extras[0] if extras else None
    if extra is not None and not _is_overflow_hint(extra.hint):
        raise TypeMismatchError(
            "dict[str, Any] for +extra field",
            type_label(extra.hint),
            path=f"{record_type.__name__}.{extra.label}",
        )
    fields = tuple(collected.values())
    return RecordSchema(record_type, fields, extra, frozenset(collected))


def _collect_fields(
    record_type: type,
    holder_path: tuple[tuple[str, type], ...],
    collected: dict[str, FieldPlan],
    extras: list[FieldPlan],
    seen: set[type],
) -> None:
    """Walk the dataclass fields of *record_type*, descending into embedded records."""

    hints = resolved_hints(record_type)
    for field in dataclasses.fields(record_type):
        directive = directive_of(field)
        if directive.skip:
            continue
        hint = hints.get(field.name, field.type)
        if is_embedded(field):
            embedded_type, _ = unwrap_optional(hint)
            if not is_record_type(embedded_type):
                raise TypeMismatchError(
                    "dataclass for embedded field",
                    type_label(hint),
                    path=f"{record_type.__name__}.{field.name}",
                )
            if embedded_type in seen:
                raise ValidationError(f"recursive embedding of {embedded_type.__name__}", field=field.name)
            _collect_fields(
                embedded_type,
                (*holder_path, (field.name, embedded_type)),
                collected,
                extras,
                seen | {embedded_type},
            )
            continue
        plan = FieldPlan(
            attr=field.name,
            key=directive.name or to_snake_case(field.name),
            hint=hint,
            directive=directive,
            field=field,
            holder_path=holder_path,
        )
        if directive.extra:
            extras.append(plan)
            continue
        # last declaration wins, including over embedded fields
        collected.pop(plan.key, None)
        collected[plan.key] = plan


def resolved_hints(record_type: type) -> dict[str, Any]:
    """Return the evaluated annotations of *record_type*, cached per class."""

    hints = _HINTS.get(record_type)
    if hints is None:
        try:
            hints = get_type_hints(record_type)
        except (NameError, TypeError) as exc:
            raise ValidationError(f"cannot resolve annotations of {record_type.__name__}: {exc}") from exc
        _HINTS[record_type] = hints
    return hints


def _is_overflow_hint(hint: Any) -> bool:
    inner, _ = unwrap_optional(hint)
    if inner in (dict, Mapping, MutableMapping):
        return True
    origin = get_origin(inner)
    if origin not in (dict, Mapping, MutableMapping):
        return False
    args = get_args(inner)
    return not args or args[0] is str


def ensure_record(target: Any, *, role: str = "target") -> None:
    """Validate that *target* is a dataclass instance."""

    if target is None:
        raise ValidationError(f"nil {role} provided")
    if not is_record(target):
        raise TypeMismatchError("dataclass instance", type_label(type(target)))


def holder_of(record: Any, plan: FieldPlan, *, create: bool) -> Any:
    """Return the object declaring *plan*, optionally creating missing embedded records."""

    holder = record
    for name, embedded_type in plan.holder_path:
        current = getattr(holder, name, None)
        if current is None:
            if not create:
                return None
            current = blank_record(embedded_type)
            object.__setattr__(holder, name, current)
        holder = current
    return holder


def blank_record(record_type: type) -> Any:
    """Allocate *record_type* without calling ``__init__``.

    Fields take their declared default (or default factory); fields without a
    default take :func:`zero_value` of their annotation.
    """

    instance = object.__new__(record_type)
    hints = resolved_hints(record_type)
    for field in dataclasses.fields(record_type):
        object.__setattr__(instance, field.name, default_for(field, hints.get(field.name, field.type)))
    return instance


def default_for(field: dataclasses.Field[Any], hint: Any) -> Any:
    """Return the value an absent *field* takes: its default, a fresh factory value, or the zero value of *hint*.

    Examples
    --------
    >>> from dataclasses import dataclass, field, fields
    >>> @dataclass
    ... class Demo:
    ...     port: int
    ...     tags: list = field(default_factory=list)
    >>> port, tags = fields(Demo)
    >>> default_for(port, int), default_for(tags, list)
    (0, [])
    """

    if field.default is not dataclasses.MISSING:
        return field.default
    if field.default_factory is not dataclasses.MISSING:
        return field.default_factory()
    return zero_value(hint)


def reset_field(holder: Any, plan: FieldPlan) -> None:
    """Restore the default of *plan* on *holder*."""

    object.__setattr__(holder, plan.attr, default_for(plan.field, plan.hint))


def zero_value(hint: Any) -> Any:
    """Return the zero value for an annotation without a default.

    Examples
    --------
    >>> zero_value(int), zero_value(str), zero_value(list[int]), zero_value(int | None)
    (0, '', [], None)
    """

    inner, optional = unwrap_optional(hint)
    if optional:
        return None
    if is_pointer_hint(inner):
        return inner() if get_origin(inner) is Pointer else Pointer()
    origin = get_origin(inner) or inner
    if isinstance(origin, type):
        if issubclass(origin, enum.Enum):
            return None
        if issubclass(origin, bool):
            return False
        if issubclass(origin, (int, float, str)):
            return origin()
        if issubclass(origin, timedelta):
            return timedelta(0)
        if origin in (list, tuple, dict):
            return origin()
    return None
