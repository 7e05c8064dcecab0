"""Identity registry and two-phase reference linker.

Purpose
-------
Resolve :class:`~lib_record_binding.domain.references.Pointer` placeholders
after every record of one or more graphs exists. Phase one registers every
:class:`~lib_record_binding.application.ports.Identifiable` record under
``(qualified type name, id)``; phase two looks each unresolved placeholder up
by ``(declared target type, ref)``.

Contents
--------
* :class:`LinkerOptions` – caching and partial-resolution switches.
* :class:`IdentityRegistry` – ``(type, id) → record`` table, last write wins.
* :class:`LinkReport` – outcome of one resolution pass.
* :class:`Linker` – stateful register/resolve/link driver.
* :func:`link` – one-shot convenience wrapper.

System Role
-----------
Placeholders are resolved by lookup, never by following them, so the walk
terminates on cycles of any length. Traversal uses an explicit stack and an
identity-visited set and never descends into ``Pointer.resolved``.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Iterable, get_args, get_origin

from ..domain.errors import PointerError, ValidationError
from ..domain.references import Pointer, is_pointer_hint, pointer_target
from ..observability import log_debug, make_event
from .coercion import unwrap_optional
from .ports import Identifiable
from .schema import ensure_record, is_record, resolved_hints


@dataclass(frozen=True, slots=True)
class LinkerOptions:
    """Linker configuration.

    Attributes
    ----------
    enable_caching:
        Keep the registry across calls and skip roots that were already
        registered.
    allow_partial_resolution:
        Leave unresolvable placeholders empty instead of raising
        :class:`PointerError`.
    """

    enable_caching: bool = False
    allow_partial_resolution: bool = False


@dataclass(frozen=True, slots=True)
class LinkReport:
    """Counts of one resolution pass; ``unresolved`` lists field paths left empty."""

    resolved: int = 0
    unresolved: tuple[str, ...] = ()


def type_key(record_type: type) -> str:
    """Return the registry name of *record_type*.

    Examples
    --------
    >>> type_key(LinkerOptions)
    'lib_record_binding.application.linking.LinkerOptions'
    """

    return f"{record_type.__module__}.{record_type.__qualname__}"


class IdentityRegistry:
    """Lookup table mapping ``(type name, id)`` to a record instance."""

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str], Any] = {}

    def add(self, record: Any) -> bool:
        """Register *record* when it exposes a non-empty id; return whether it did."""

        if not isinstance(record, Identifiable):
            return False
        identifier = record.get_id()
        if not identifier:
            return False
        self._entries[(type_key(type(record)), identifier)] = record
        return True

    def lookup(self, record_type: type, identifier: str) -> Any | None:
        return self._entries.get((type_key(record_type), identifier))

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


@dataclass(frozen=True, slots=True)
class _Slot:
    """A placeholder found during the walk, with the annotation it was declared under."""

    pointer: Pointer[Any]
    hint: Any
    path: str


@dataclass
class _Walk:
    records: list[Any] = field(default_factory=list)
    slots: list[_Slot] = field(default_factory=list)


class Linker:
    """Register identifiable records, then resolve placeholders against them.

    Why
    ----
    Records bound from independent sources may refer to each other; linking
    them together after binding makes cross-graph and cyclic references work
    without any recursion proportional to the cycle length.

    State
    -----
    The registry and the processed-roots cache live on the instance. A
    ``Linker`` is meant for sequential use by one caller at a time.
    """

    def __init__(self, options: LinkerOptions | None = None) -> None:
        self.options = options or LinkerOptions()
        self.registry = IdentityRegistry()
        self._processed: dict[int, Any] = {}
        self._registered = False

    def register(self, *roots: Any) -> int:
        """Walk *roots* and register every identifiable record; return how many were added."""

        added = 0
        for root in roots:
            ensure_record(root, role="root")
            if self.options.enable_caching and self._processed.get(id(root)) is root:
                continue
            for record in _walk(root).records:
                added += self.registry.add(record)
            if self.options.enable_caching:
                self._processed[id(root)] = root
        self._registered = True
        return added

    def resolve_references(self, *roots: Any) -> LinkReport:
        """Resolve every unresolved placeholder reachable from *roots*.

        Raises
        ------
        ValidationError
            When nothing was registered yet.
        PointerError
            When a placeholder has no registered target and partial
            resolution is disabled.
        """

        if not self._registered:
            raise ValidationError("no records registered; call register() before resolve_references()")
        resolved = 0
        unresolved: list[str] = []
        for root in roots:
            ensure_record(root, role="root")
            for slot in _walk(root).slots:
                pointer = slot.pointer
                if pointer.is_resolved() or not pointer.ref:
                    continue
                target_type = _target_type(slot)
                target = self.registry.lookup(target_type, pointer.ref) if target_type else None
                if target is None:
                    self._unresolved(slot, target_type)
                    unresolved.append(slot.path)
                    continue
                pointer.resolved = target
                resolved += 1
        return LinkReport(resolved, tuple(unresolved))

    def link(self, *roots: Any) -> LinkReport:
        """Register then resolve *roots*; without caching each call starts from an empty registry."""

        if not self.options.enable_caching:
            self.clear_cache()
        self.register(*roots)
        return self.resolve_references(*roots)

    def clear_cache(self) -> None:
        self.registry.clear()
        self._processed.clear()
        self._registered = False

    def _unresolved(self, slot: _Slot, target_type: type | None) -> None:
        target = type_key(target_type) if target_type else None
        if not self.options.allow_partial_resolution:
            if target_type is None:
                raise PointerError(slot.path, slot.pointer.ref, message=f"cannot determine target type of reference {slot.pointer.ref}")
            raise PointerError(slot.path, slot.pointer.ref, target=target)
        log_debug("reference_unresolved", **make_event("link", None, {"path": slot.path, "ref": slot.pointer.ref, "target": target}))


def link(*roots: Any, options: LinkerOptions | None = None) -> LinkReport:
    """Link *roots* with a fresh :class:`Linker`."""

    return Linker(options).link(*roots)


def _target_type(slot: _Slot) -> type | None:
    inner, _ = unwrap_optional(slot.hint)
    if is_pointer_hint(inner):
        target = pointer_target(inner)
        if target is not None:
            return target
    return slot.pointer.target_type()


def _walk(root: Any) -> _Walk:
    """Collect records and placeholders reachable from *root* without recursion."""

    walk = _Walk()
    seen: set[int] = set()
    stack: list[tuple[Any, Any, str]] = [(root, type(root), type(root).__name__)]
    while stack:
        value, hint, path = stack.pop()
        if isinstance(value, Pointer):
            walk.slots.append(_Slot(value, hint, path))
            continue
        if not (is_record(value) or isinstance(value, (list, tuple, Mapping))):
            continue
        if id(value) in seen:
            continue
        seen.add(id(value))
        if is_record(value):
            walk.records.append(value)
            stack.extend(reversed(list(_record_children(value, path))))
        elif isinstance(value, Mapping):
            value_hint = _arg(hint, 1)
            stack.extend((item, value_hint, f"{path}[{key}]") for key, item in reversed(list(value.items())))
        else:
            element_hint = _arg(hint, 0)
            stack.extend((item, element_hint, f"{path}[{index}]") for index, item in reversed(list(enumerate(value))))
    return walk


def _record_children(record: Any, path: str) -> Iterable[tuple[Any, Any, str]]:
    hints = resolved_hints(type(record))
    for record_field in dataclasses.fields(record):
        child = getattr(record, record_field.name, None)
        if child is not None:
            yield child, hints.get(record_field.name, Any), f"{path}.{record_field.name}"


def _arg(hint: Any, index: int) -> Any:
    inner, _ = unwrap_optional(hint)
    args = get_args(inner)
    if get_origin(inner) is tuple and len(args) == 2 and args[1] is Ellipsis:
        return args[0]
    if len(args) > index:
        return args[index]
    return Any
