"""Built-in coercion rules between raw scalars and typed field values.

Purpose
-------
Pure functions converting decoder output (strings, numbers, booleans) into the
scalar types a record declares, and rendering typed scalars back into raw
form. No recursion happens here: containers and records are the walkers'
business.

Contents
--------
* :func:`unwrap_optional` / :func:`type_label` – annotation helpers.
* :func:`coerce_scalar` – dispatch for ``str``, ``bool``, ``int``, ``float``,
  ``timedelta`` and ``Enum`` fields.
* :func:`parse_duration` / :func:`format_duration` – compact duration strings
  (``"1h30m"``, ``"250ms"``).
* :func:`render_scalar` / :func:`key_to_string` – rendering used by ``+match``
  comparisons and by mapping keys on unbind.
"""

from __future__ import annotations

import enum
import re
import types
from datetime import timedelta
from typing import Any, Final, Union, get_args, get_origin

from ..domain.errors import ConversionError, TypeMismatchError

SCALAR_TYPES: Final[tuple[type, ...]] = (str, bool, int, float, timedelta)

_TRUE_STRINGS: Final[frozenset[str]] = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_STRINGS: Final[frozenset[str]] = frozenset({"0", "f", "F", "FALSE", "false", "False"})

_DURATION_UNITS_US: Final[dict[str, float]] = {
    "ns": 0.001,
    "us": 1,
    "µs": 1,
    "μs": 1,
    "ms": 1_000,
    "s": 1_000_000,
    "m": 60_000_000,
    "h": 3_600_000_000,
}
_DURATION_PART: Final[re.Pattern[str]] = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")

_US_PER_SECOND: Final[int] = 1_000_000
_US_PER_MINUTE: Final[int] = 60 * _US_PER_SECOND
_US_PER_HOUR: Final[int] = 60 * _US_PER_MINUTE


def unwrap_optional(hint: Any) -> tuple[Any, bool]:
    """Split ``T | None`` into ``(T, True)``; other hints return ``(hint, False)``.

    Examples
    --------
    >>> unwrap_optional(int | None)
    (<class 'int'>, True)
    >>> unwrap_optional(str)
    (<class 'str'>, False)
    """

    origin = get_origin(hint)
    if origin is Union or origin is types.UnionType:
        args = [arg for arg in get_args(hint) if arg is not type(None)]
        optional = len(args) != len(get_args(hint))
        if len(args) == 1:
            return args[0], optional
        if optional:
            return Union[tuple(args)], True
    return hint, False


def type_label(hint: Any) -> str:
    """Return a short human label for an annotation or runtime type."""

    if hint is None or hint is type(None):
        return "None"
    if isinstance(hint, type) and get_origin(hint) is None:
        return hint.__name__
    return str(hint).replace("typing.", "")


def raw_label(raw: Any) -> str:
    """Return the label of a raw value's runtime type."""

    return type_label(type(raw))


def is_scalar_hint(hint: Any) -> bool:
    """Return ``True`` for annotations handled by :func:`coerce_scalar`."""

    if not isinstance(hint, type) or get_origin(hint) is not None:
        return False
    return issubclass(hint, SCALAR_TYPES) or issubclass(hint, enum.Enum)


def coerce_scalar(raw: Any, hint: type, path: str = "") -> Any:
    """Convert *raw* into a value of scalar type *hint*.

    Examples
    --------
    >>> coerce_scalar("42", int), coerce_scalar(3.9, int), coerce_scalar("t", bool)
    (42, 3, True)
    >>> coerce_scalar("90s", timedelta)
    datetime.timedelta(seconds=90)
    >>> coerce_scalar([1], str)
    Traceback (most recent call last):
    ...
    lib_record_binding.domain.errors.TypeMismatchError: expected str, got list
    """

    if issubclass(hint, enum.Enum):
        return coerce_enum(raw, hint, path)
    if issubclass(hint, timedelta):
        return coerce_duration(raw, path)
    if issubclass(hint, bool):
        return coerce_bool(raw, path)
    if issubclass(hint, int):
        return hint(coerce_int(raw, path)) if hint is not int else coerce_int(raw, path)
    if issubclass(hint, float):
        return coerce_float(raw, path)
    if issubclass(hint, str):
        return coerce_str(raw, path)
    raise TypeMismatchError(type_label(hint), raw_label(raw), path=path)


def coerce_str(raw: Any, path: str = "") -> str:
    if not isinstance(raw, str):
        raise TypeMismatchError("str", raw_label(raw), path=path)
    return raw


def coerce_bool(raw: Any, path: str = "") -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        text = raw.strip()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        raise ConversionError(f"cannot parse bool {raw!r}", path=path, value=raw, target="bool")
    raise TypeMismatchError("bool", raw_label(raw), path=path)


def coerce_int(raw: Any, path: str = "") -> int:
    """Convert *raw* to ``int``; floats and float strings are truncated toward zero."""

    if isinstance(raw, bool):
        raise TypeMismatchError("int", "bool", path=path)
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        try:
            return int(raw)
        except (OverflowError, ValueError) as exc:
            raise ConversionError(f"cannot convert {raw!r} to int", path=path, value=raw, target="int", cause=exc) from exc
    if isinstance(raw, str):
        text = raw.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return int(float(text))
        except (OverflowError, ValueError) as exc:
            raise ConversionError(f"cannot parse int {raw!r}", path=path, value=raw, target="int", cause=exc) from exc
    raise TypeMismatchError("int", raw_label(raw), path=path)


def coerce_float(raw: Any, path: str = "") -> float:
    if isinstance(raw, bool):
        raise TypeMismatchError("float", "bool", path=path)
    if isinstance(raw, (int, float)):
        try:
            return float(raw)
        except OverflowError as exc:
            raise ConversionError(f"{raw!r} is out of float range", path=path, value=raw, target="float", cause=exc) from exc
    if isinstance(raw, str):
        try:
            return float(raw.strip())
        except ValueError as exc:
            raise ConversionError(f"cannot parse float {raw!r}", path=path, value=raw, target="float", cause=exc) from exc
    raise TypeMismatchError("float", raw_label(raw), path=path)


def coerce_duration(raw: Any, path: str = "") -> timedelta:
    """Accept a duration string, a number of seconds, or a ``timedelta``."""

    if isinstance(raw, timedelta):
        return raw
    if isinstance(raw, bool):
        raise TypeMismatchError("duration (string or number)", "bool", path=path)
    if isinstance(raw, (int, float)):
        try:
            return timedelta(seconds=raw)
        except (OverflowError, ValueError) as exc:
            raise ConversionError(f"invalid duration {raw!r}", path=path, value=raw, target="timedelta", cause=exc) from exc
    if isinstance(raw, str):
        try:
            return parse_duration(raw)
        except (OverflowError, ValueError) as exc:
            raise ConversionError(f"invalid duration {raw!r}", path=path, value=raw, target="timedelta", cause=exc) from exc
    raise TypeMismatchError("duration (string or number)", raw_label(raw), path=path)


def coerce_enum(raw: Any, hint: type[enum.Enum], path: str = "") -> enum.Enum:
    """Look up an enum member by value, coercing *raw* to the members' value type."""

    if isinstance(raw, hint):
        return raw
    try:
        return hint(raw)
    except ValueError:
        pass
    for member in hint:
        if isinstance(raw, str) and render_scalar(member.value) == raw.strip():
            return member
    raise ConversionError(f"{raw!r} is not a valid {hint.__name__}", path=path, value=raw, target=hint.__name__)


def parse_duration(text: str) -> timedelta:
    """Parse a compact duration string such as ``"1h30m"`` or ``"-1.5s"``.

    Examples
    --------
    >>> parse_duration("1h30m")
    datetime.timedelta(seconds=5400)
    >>> parse_duration("250ms")
    datetime.timedelta(microseconds=250000)
    >>> parse_duration("0")
    datetime.timedelta(0)
    """

    value = text.strip()
    sign = 1
    if value[:1] in {"+", "-"}:
        sign = -1 if value[0] == "-" else 1
        value = value[1:]
    if value == "0":
        return timedelta(0)
    if not value:
        raise ValueError(f"invalid duration {text!r}")

    position = 0
    total_us = 0.0
    while position < len(value):
        part = _DURATION_PART.match(value, position)
        if part is None:
            raise ValueError(f"invalid duration {text!r}")
        total_us += float(part.group(1)) * _DURATION_UNITS_US[part.group(2)]
        position = part.end()
    return timedelta(microseconds=sign * round(total_us))


def format_duration(value: timedelta) -> str:
    """Render *value* in the compact form accepted by :func:`parse_duration`.

    Zero components are left out so common inputs survive a round trip.

    Examples
    --------
    >>> format_duration(timedelta(hours=1, minutes=30))
    '1h30m'
    >>> format_duration(timedelta(milliseconds=250))
    '250ms'
    >>> format_duration(timedelta(seconds=1.5))
    '1.5s'
    >>> format_duration(timedelta(0))
    '0s'
    """

    total = (value.days * 86_400 + value.seconds) * _US_PER_SECOND + value.microseconds
    if total == 0:
        return "0s"
    sign = "-" if total < 0 else ""
    total = abs(total)

    if total < _US_PER_SECOND:
        if total < 1_000:
            return f"{sign}{total}us"
        return f"{sign}{_decimal(total, 1_000)}ms"

    hours, remainder = divmod(total, _US_PER_HOUR)
    minutes, remainder = divmod(remainder, _US_PER_MINUTE)
    parts = [sign]
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if remainder:
        parts.append(f"{_decimal(remainder, _US_PER_SECOND)}s")
    return "".join(parts)


def _decimal(amount: int, unit: int) -> str:
    """Render ``amount / unit`` exactly, without trailing zeros."""

    whole, fraction = divmod(amount, unit)
    if not fraction:
        return str(whole)
    digits = len(str(unit)) - 1
    return f"{whole}.{fraction:0{digits}d}".rstrip("0")


def render_scalar(value: Any) -> str:
    """Render a typed scalar the way ``+match`` constraints and map keys expect.

    Examples
    --------
    >>> render_scalar(True), render_scalar(8080), render_scalar(timedelta(seconds=30))
    ('true', '8080', '30s')
    """

    if isinstance(value, enum.Enum):
        return render_scalar(value.value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, timedelta):
        return format_duration(value)
    return str(value)


def key_to_string(key: Any) -> str:
    """Render a mapping key as the string used in raw output."""

    if isinstance(key, str):
        return key
    return render_scalar(key)
