"""Unbind engine: dataclass records back into raw mappings.

Purpose
-------
Traverse a record symmetrically to :mod:`.binding` and produce the raw mapping
a decoder would have handed in: scalars rendered, durations compacted,
pointers collapsed to ``{"$ref": id}``, dynamic values tagged with their
discriminator, and overflow keys appended per record level.

System Role
-----------
Called by :mod:`lib_record_binding.core`. Raises the domain error taxonomy and
never logs.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Final, get_args, get_origin

from ..domain.directives import REF_KEY, TYPE_KEY
from ..domain.errors import (
    BindingError,
    ConversionError,
    MultipleExtraFieldsError,
    RecordError,
    TypeMismatchError,
    UnbindingError,
    UnsupportedError,
    ValidationError,
)
from ..domain.references import Pointer
from .coercion import format_duration, key_to_string, raw_label, type_label, unwrap_optional
from .options import DEFAULT_OPTIONS, BindOptions
from .ports import Dynamic, Identifiable
from .schema import ensure_record, holder_of, is_record, schema_for

_PASSTHROUGH: Final[tuple[type[RecordError], ...]] = (
    UnbindingError,
    BindingError,
    MultipleExtraFieldsError,
    ValidationError,
)


@dataclass(frozen=True, slots=True)
class _Pass:
    options: BindOptions


def unbind_record(source: Any, options: BindOptions | None = None) -> dict[str, Any]:
    """Return the raw mapping representation of *source*.

    Examples
    --------
    >>> from dataclasses import dataclass
    >>> from datetime import timedelta
    >>> @dataclass
    ... class Service:
    ...     name: str = "api"
    ...     timeout: timedelta = timedelta(seconds=90)
    ...     owner: str | None = None
    >>> unbind_record(Service())
    {'name': 'api', 'timeout': '1m30s'}
    """

    ensure_record(source, role="source")
    if options is not None and not isinstance(options, BindOptions):
        raise ValidationError(f"options must be BindOptions, got {type_label(type(options))}")
    return _unbind_from(source, type(source).__name__, _Pass(options or DEFAULT_OPTIONS))


def _unbind_from(record: Any, path: str, run: _Pass) -> dict[str, Any]:
    schema = schema_for(type(record))
    result: dict[str, Any] = {}

    for plan in schema.fields:
        holder = holder_of(record, plan, create=False)
        if holder is None:
            continue
        value = getattr(holder, plan.attr, None)
        if value is None or (isinstance(value, Pointer) and value.is_empty()):
            continue
        try:
            raw = render_value(value, plan.hint, f"{path}.{plan.label}", run)
        except _PASSTHROUGH:
            raise
        except RecordError as exc:
            raise UnbindingError(path, plan.label, plan.key, exc) from exc
        if raw is None:
            continue
        result[plan.key] = raw

    if schema.extra is not None:
        holder = holder_of(record, schema.extra, create=False)
        overflow = getattr(holder, schema.extra.attr, None) if holder is not None else None
        for key, value in (overflow or {}).items():
            if key in schema.keys:
                raise ValidationError(
                    f"overflow key {key!r} collides with a declared field of {schema.name}",
                    field=schema.extra.label,
                )
            result[key] = value
    return result


def render_value(value: Any, hint: Any, path: str, run: _Pass) -> Any:
    """Render a typed value as raw data, guided by its declared annotation *hint*."""

    if value is None:
        return None
    inner, _ = unwrap_optional(hint)

    converter = (
        run.options.converter_for(hint) or run.options.converter_for(inner) or run.options.converter_for(type(value))
    )
    if converter is not None:
        try:
            return converter.to_raw(value)
        except RecordError:
            raise
        except Exception as exc:
            raise ConversionError("custom converter failed", path=path, value=value, target="raw", cause=exc) from exc

    if isinstance(value, Pointer):
        return _render_pointer(value)
    if callable(getattr(value, "marshal_raw", None)):
        return _call_marshaler(value, path)
    if isinstance(value, Dynamic):
        return _render_dynamic(value, path)
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, timedelta):
        return format_duration(value)
    if isinstance(value, (str, bool, int, float)):
        return value
    if is_record(value):
        return _unbind_from(value, path, run)
    if isinstance(value, (list, tuple)):
        return _render_sequence(value, inner, path, run)
    if isinstance(value, Mapping):
        return _render_mapping(value, inner, path, run)
    raise UnsupportedError(f"values of type {raw_label(value)}", path=path)


def _render_pointer(pointer: Pointer[Any]) -> dict[str, str] | None:
    """Collapse a placeholder to ``{"$ref": id}``; empty placeholders render as ``None``."""

    ref = pointer.ref
    if not ref and isinstance(pointer.resolved, Identifiable):
        ref = pointer.resolved.get_id()
    if not ref:
        return None
    return {REF_KEY: ref}


def _call_marshaler(value: Any, path: str) -> Any:
    try:
        return value.marshal_raw()
    except RecordError:
        raise
    except Exception as exc:
        raise ConversionError("marshaler failed", path=path, target=type_label(type(value)), cause=exc) from exc


def _render_dynamic(value: Dynamic, path: str) -> dict[str, Any]:
    try:
        mapping = value.to_mapping()
        discriminator = value.type_name()
    except RecordError:
        raise
    except Exception as exc:
        raise ConversionError("serialising Dynamic value failed", path=path, cause=exc) from exc
    if not isinstance(mapping, Mapping):
        raise TypeMismatchError("mapping from to_mapping()", raw_label(mapping), path=path)
    result = dict(mapping)
    result[TYPE_KEY] = discriminator
    return result


def _render_sequence(value: list[Any] | tuple[Any, ...], hint: Any, path: str, run: _Pass) -> list[Any]:
    args = get_args(hint)
    fixed = (get_origin(hint) is tuple) and args and not (len(args) == 2 and args[1] is Ellipsis)
    items: list[Any] = []
    for index, item in enumerate(value):
        if fixed and index < len(args):
            element_hint = args[index]
        else:
            element_hint = args[0] if args else Any
        items.append(render_value(item, element_hint, f"{path}[{index}]", run))
    return items


def _render_mapping(value: Mapping[Any, Any], hint: Any, path: str, run: _Pass) -> dict[str, Any]:
    args = get_args(hint)
    value_hint = args[1] if len(args) == 2 else Any
    result: dict[str, Any] = {}
    for key, item in value.items():
        rendered_key = key_to_string(key)
        result[rendered_key] = render_value(item, value_hint, f"{path}[{rendered_key}]", run)
    return result
