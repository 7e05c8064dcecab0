"""Options threaded through every bind, unbind, and merge call.

Purpose
-------
Carry the custom converter registry and the polymorphic type registries as an
explicit value instead of global state, so independent binding
configurations can coexist in one process.

Contents
--------
* :class:`Converter` – ``(from_raw, to_raw)`` pair implementing
  :class:`~lib_record_binding.application.ports.RawConverter`.
* :class:`BindOptions` – immutable options value.
* :data:`DEFAULT_OPTIONS` – empty options used when callers pass ``None``.
* :func:`strip_indices` – normalises field paths for per-field binder lookup.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Final, Mapping

from .ports import DynamicBinder, RawConverter

_INDEX_PATTERN: Final[re.Pattern[str]] = re.compile(r"\[[^\]]*\]")


@dataclass(frozen=True, slots=True)
class Converter:
    """Pair of plain functions converting one type to and from raw data.

    Examples
    --------
    >>> upper = Converter(from_raw=lambda raw: str(raw).upper(), to_raw=str.lower)
    >>> upper.from_raw("abc"), upper.to_raw("ABC")
    ('ABC', 'abc')
    """

    from_raw: Callable[[Any], Any]
    to_raw: Callable[[Any], Any]


@dataclass(frozen=True, slots=True)
class BindOptions:
    """Configuration for a single bind, unbind, or merge call.

    Attributes
    ----------
    converters:
        Exact field type → converter. Consulted before every built-in rule.
    dynamic_binders:
        Global discriminator → constructor registry for ``Dynamic`` fields.
    field_dynamic_binders:
        Field path (``"Config.actions"``, indices stripped) → discriminator →
        constructor. Takes precedence over :attr:`dynamic_binders`.
    """

    converters: Mapping[type, RawConverter] = field(default_factory=dict)
    dynamic_binders: Mapping[str, DynamicBinder] = field(default_factory=dict)
    field_dynamic_binders: Mapping[str, Mapping[str, DynamicBinder]] = field(default_factory=dict)

    def converter_for(self, hint: Any) -> RawConverter | None:
        """Return the converter registered for *hint*, if any."""

        try:
            return self.converters.get(hint)
        except TypeError:  # unhashable annotation
            return None

    def binder_for(self, path: str, discriminator: str) -> DynamicBinder | None:
        """Return the constructor for *discriminator* at field *path*.

        Examples
        --------
        >>> opts = BindOptions(
        ...     dynamic_binders={"a": "global"},
        ...     field_dynamic_binders={"Root.items": {"a": "scoped"}},
        ... )
        >>> opts.binder_for("Root.items[3]", "a"), opts.binder_for("Root.other", "a")
        ('scoped', 'global')
        """

        scoped = self.field_dynamic_binders.get(strip_indices(path))
        if scoped:
            binder = scoped.get(discriminator)
            if binder is not None:
                return binder
        return self.dynamic_binders.get(discriminator)

    @property
    def has_dynamic_binders(self) -> bool:
        return bool(self.dynamic_binders) or bool(self.field_dynamic_binders)


DEFAULT_OPTIONS: Final[BindOptions] = BindOptions(
    converters=MappingProxyType({}),
    dynamic_binders=MappingProxyType({}),
    field_dynamic_binders=MappingProxyType({}),
)


def strip_indices(path: str) -> str:
    """Drop ``[n]`` segments so ``Root.items[0].action`` matches ``Root.items.action``.

    Examples
    --------
    >>> strip_indices("Root.items[0].action[12]")
    'Root.items.action'
    """

    if "[" not in path:
        return path
    return _INDEX_PATTERN.sub("", path)
