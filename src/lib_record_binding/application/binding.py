"""Bind and merge engines: raw mappings into dataclass records.

Purpose
-------
Walk a record's flattened field plans and populate each field from a raw
mapping, applying converters, self-unmarshalling types, built-in coercion,
and recursive record/sequence/mapping handling in that order.

Contents
--------
* :func:`bind_record` – populate every field; absent optional fields are reset
  to their defaults.
* :func:`merge_record` – populate only the fields present in the mapping.
* :func:`new_record` – allocate a blank record and bind into it.
* :func:`convert_value` – the recursive value walker, shared by both modes.

System Role
-----------
Called by :mod:`lib_record_binding.core`. Raises the domain error taxonomy;
never logs. Fields written before a failing field stay written.
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, get_args, get_origin

from ..domain.directives import REF_KEY, TYPE_KEY
from ..domain.errors import (
    BindingError,
    ConversionError,
    MultipleExtraFieldsError,
    RecordError,
    RequiredFieldError,
    TypeMismatchError,
    UnsupportedError,
    ValidationError,
    ValueMismatchError,
)
from ..domain.references import is_pointer_hint, make_pointer
from .coercion import coerce_scalar, is_scalar_hint, key_to_string, raw_label, render_scalar, type_label, unwrap_optional
from .options import DEFAULT_OPTIONS, BindOptions
from .ports import Dynamic, RawConverter
from .schema import (
    FieldPlan,
    RecordSchema,
    blank_record,
    ensure_record,
    holder_of,
    is_record_type,
    reset_field,
    schema_for,
)

# Errors that already name their field; they cross nested records unwrapped.
_PASSTHROUGH: Final[tuple[type[RecordError], ...]] = (
    BindingError,
    RequiredFieldError,
    ValueMismatchError,
    MultipleExtraFieldsError,
)


@dataclass(frozen=True, slots=True)
class _Pass:
    """Per-call state threaded through the walker."""

    options: BindOptions
    merge: bool


def bind_record(target: Any, data: Mapping[str, Any], options: BindOptions | None = None) -> None:
    """Populate *target* from *data*.

    Fields whose key is absent are reset to their default; a missing
    ``+required`` key raises :class:`RequiredFieldError`.

    Examples
    --------
    >>> from dataclasses import dataclass
    >>> @dataclass
    ... class Service:
    ...     name: str = ""
    ...     port: int = 80
    >>> service = Service(name="old", port=1)
    >>> bind_record(service, {"name": "api"})
    >>> service
    Service(name='api', port=80)
    """

    _run(target, data, options, merge=False)


def merge_record(target: Any, data: Mapping[str, Any], options: BindOptions | None = None) -> None:
    """Apply the keys present in *data* onto *target*, leaving other fields untouched.

    Sequences and mappings present in *data* replace the current value in
    full; nested records are merged recursively; overflow keys are added to
    the existing overflow map.

    Examples
    --------
    >>> from dataclasses import dataclass
    >>> @dataclass
    ... class Service:
    ...     name: str = ""
    ...     port: int = 80
    >>> service = Service(name="old", port=1)
    >>> merge_record(service, {"name": "api"})
    >>> service
    Service(name='api', port=1)
    """

    _run(target, data, options, merge=True)


def new_record(record_type: type, data: Mapping[str, Any], options: BindOptions | None = None) -> Any:
    """Allocate a blank *record_type* and bind *data* into it."""

    if not is_record_type(record_type):
        raise TypeMismatchError("dataclass type", type_label(record_type))
    instance = blank_record(record_type)
    bind_record(instance, data, options)
    return instance


def _run(target: Any, data: Mapping[str, Any], options: BindOptions | None, *, merge: bool) -> None:
    ensure_record(target)
    if data is None:
        raise ValidationError("nil data provided")
    if not isinstance(data, Mapping):
        raise TypeMismatchError("mapping", raw_label(data))
    if options is not None and not isinstance(options, BindOptions):
        raise ValidationError(f"options must be BindOptions, got {type_label(type(options))}")
    run = _Pass(options or DEFAULT_OPTIONS, merge)
    _bind_into(target, data, type(target).__name__, run)


def _bind_into(record: Any, data: Mapping[str, Any], path: str, run: _Pass) -> None:
    """Bind every planned field of *record*; unmarshalers run last."""

    schema = schema_for(type(record))
    deferred: list[tuple[Any, FieldPlan, Any]] = []

    for plan in schema.fields:
        if plan.key not in data:
            if run.merge:
                continue
            if plan.directive.required:
                raise RequiredFieldError(path, plan.label, plan.key)
            reset_field(holder_of(record, plan, create=True), plan)
            continue
        holder = holder_of(record, plan, create=True)
        raw = data[plan.key]
        if _defers(plan, run.options):
            deferred.append((holder, plan, raw))
            continue
        _bind_field(holder, plan, raw, path, run)

    for holder, plan, raw in deferred:
        _bind_field(holder, plan, raw, path, run)

    _capture_overflow(record, schema, data, run)


def _bind_field(holder: Any, plan: FieldPlan, raw: Any, path: str, run: _Pass) -> None:
    field_path = f"{path}.{plan.label}"
    try:
        value = convert_value(raw, plan.hint, field_path, run, current=getattr(holder, plan.attr, None))
    except _PASSTHROUGH:
        raise
    except RecordError as exc:
        raise BindingError(path, plan.label, plan.key, exc) from exc

    if plan.directive.has_match:
        rendered = render_scalar(value)
        if rendered != plan.directive.match:
            raise ValueMismatchError(path, plan.label, plan.directive.match or "", rendered)
    object.__setattr__(holder, plan.attr, value)


def _defers(plan: FieldPlan, options: BindOptions) -> bool:
    inner, _ = unwrap_optional(plan.hint)
    if options.converter_for(plan.hint) or options.converter_for(inner):
        return False
    return _is_unmarshaler_type(inner)


def _capture_overflow(record: Any, schema: RecordSchema, data: Mapping[str, Any], run: _Pass) -> None:
    """Store keys no declared field consumed in the record's ``+extra`` field."""

    plan = schema.extra
    if plan is None:
        return
    unmatched = {key: value for key, value in data.items() if key not in schema.keys}
    if run.merge:
        if not unmatched:
            return
        holder = holder_of(record, plan, create=True)
        combined = dict(getattr(holder, plan.attr, None) or {})
        combined.update(unmatched)
        object.__setattr__(holder, plan.attr, combined)
        return
    holder = holder_of(record, plan, create=True)
    if unmatched:
        object.__setattr__(holder, plan.attr, unmatched)
    else:
        reset_field(holder, plan)


def convert_value(raw: Any, hint: Any, path: str, run: _Pass, *, current: Any = None) -> Any:
    """Convert *raw* into a value of annotation *hint*.

    Resolution order: converter, self-unmarshalling type, built-in scalar
    coercion, then recursive record/sequence/mapping handling.
    """

    inner, optional = unwrap_optional(hint)
    if raw is None:
        if optional or inner is Any or inner is object:
            return None
        raise TypeMismatchError(type_label(inner), "None", path=path)

    converter = run.options.converter_for(hint) or run.options.converter_for(inner)
    if converter is not None:
        return _apply_converter(converter, raw, inner, path)
    if inner is Any or inner is object:
        return raw
    if is_pointer_hint(inner):
        return _bind_pointer(raw, inner, path)
    if inner is Dynamic:
        return _bind_dynamic(raw, path, run)
    if _is_unmarshaler_type(inner):
        return _unmarshal(raw, inner, path, current)
    if is_scalar_hint(inner):
        return coerce_scalar(raw, inner, path)
    if is_record_type(inner):
        return _bind_nested(raw, inner, path, run, current)

    origin = get_origin(inner) or inner
    if origin in (list, tuple, Sequence):
        return _bind_sequence(raw, inner, path, run)
    if origin in (dict, Mapping, MutableMapping):
        return _bind_mapping(raw, inner, path, run)
    raise UnsupportedError(f"fields of type {type_label(inner)}", path=path)


def _apply_converter(converter: RawConverter, raw: Any, inner: Any, path: str) -> Any:
    try:
        value = converter.from_raw(raw)
    except RecordError:
        raise
    except Exception as exc:
        raise ConversionError("custom converter failed", path=path, value=raw, target=type_label(inner), cause=exc) from exc
    if isinstance(inner, type) and get_origin(inner) is None and not isinstance(value, inner):
        raise TypeMismatchError(type_label(inner), raw_label(value), path=path)
    return value


def _bind_pointer(raw: Any, hint: Any, path: str) -> Any:
    if not isinstance(raw, Mapping):
        raise TypeMismatchError(f'mapping with "{REF_KEY}"', raw_label(raw), path=path)
    ref = raw.get(REF_KEY, "")
    if not isinstance(ref, str):
        raise TypeMismatchError(f'string "{REF_KEY}"', raw_label(ref), path=path)
    return make_pointer(hint, ref)


def _bind_dynamic(raw: Any, path: str, run: _Pass) -> Dynamic:
    """Select a variant by discriminator and delegate construction to its binder."""

    if not isinstance(raw, Mapping):
        raise TypeMismatchError("mapping for Dynamic", raw_label(raw), path=path)
    if not run.options.has_dynamic_binders:
        raise ConversionError("no dynamic binders configured to resolve Dynamic field", path=path)
    if TYPE_KEY not in raw:
        raise ConversionError(f'missing "{TYPE_KEY}" discriminator for Dynamic field', path=path)
    discriminator = raw[TYPE_KEY]
    if not isinstance(discriminator, str) or not discriminator.strip():
        raise ConversionError(f'invalid "{TYPE_KEY}" discriminator for Dynamic field: {discriminator!r}', path=path)

    binder = run.options.binder_for(path, discriminator)
    if binder is None:
        raise ConversionError(f"unknown Dynamic type {discriminator!r}", path=path, value=discriminator)
    try:
        value = binder(dict(raw))
    except RecordError:
        raise
    except Exception as exc:
        raise ConversionError(f"binding Dynamic type {discriminator!r} failed", path=path, cause=exc) from exc
    if not isinstance(value, Dynamic):
        raise TypeMismatchError("Dynamic", raw_label(value), path=path)
    return value


def _is_unmarshaler_type(hint: Any) -> bool:
    return isinstance(hint, type) and callable(getattr(hint, "unmarshal_raw", None))


def _unmarshal(raw: Any, hint: type, path: str, current: Any) -> Any:
    if not isinstance(raw, Mapping):
        raise TypeMismatchError("mapping for unmarshaler", raw_label(raw), path=path)
    if isinstance(current, hint):
        instance = current
    elif is_record_type(hint):
        instance = blank_record(hint)
    else:
        instance = hint()
    try:
        instance.unmarshal_raw(dict(raw))
    except RecordError:
        raise
    except Exception as exc:
        raise ConversionError("unmarshaler failed", path=path, target=type_label(hint), cause=exc) from exc
    return instance


def _bind_nested(raw: Any, hint: type, path: str, run: _Pass, current: Any) -> Any:
    if not isinstance(raw, Mapping):
        raise TypeMismatchError(f"mapping for {hint.__name__}", raw_label(raw), path=path)
    if run.merge and isinstance(current, hint):
        instance = current
    else:
        instance = blank_record(hint)
    _bind_into(instance, raw, path, run)
    return instance


def _bind_sequence(raw: Any, hint: Any, path: str, run: _Pass) -> list[Any] | tuple[Any, ...]:
    """Bind list/tuple annotations element-wise; each element is coerced independently."""

    if isinstance(raw, (str, bytes)) or not isinstance(raw, (list, tuple)):
        raise TypeMismatchError("list", raw_label(raw), path=path)
    origin = get_origin(hint) or hint
    args = get_args(hint)

    if origin is tuple and args and not (len(args) == 2 and args[1] is Ellipsis):
        if len(args) != len(raw):
            raise TypeMismatchError(f"list of {len(args)} items", f"{len(raw)} items", path=path)
        return tuple(convert_value(item, args[index], f"{path}[{index}]", run) for index, item in enumerate(raw))

    element_hint = args[0] if args else Any
    items = [convert_value(item, element_hint, f"{path}[{index}]", run) for index, item in enumerate(raw)]
    return tuple(items) if origin is tuple else items


def _bind_mapping(raw: Any, hint: Any, path: str, run: _Pass) -> dict[Any, Any]:
    """Bind mapping annotations; keys go through the scalar rules, values recurse."""

    if not isinstance(raw, Mapping):
        raise TypeMismatchError("mapping", raw_label(raw), path=path)
    args = get_args(hint)
    key_hint, value_hint = args if len(args) == 2 else (Any, Any)

    result: dict[Any, Any] = {}
    for raw_key, raw_value in raw.items():
        key = _convert_key(raw_key, key_hint, path)
        result[key] = convert_value(raw_value, value_hint, f"{path}[{key_to_string(raw_key)}]", run)
    return result


def _convert_key(raw_key: Any, hint: Any, path: str) -> Any:
    inner, _ = unwrap_optional(hint)
    if inner is Any or inner is object:
        return raw_key
    if inner is str:
        return key_to_string(raw_key)
    if is_scalar_hint(inner):
        return coerce_scalar(raw_key, inner, f"{path}[{key_to_string(raw_key)}]")
    raise UnsupportedError(f"mapping keys of type {type_label(inner)}", path=path)
