"""Typed reference placeholders.

Purpose
-------
Model ``Pointer[T]``: a record field that refers to another record by logical
identifier. Binding fills :attr:`Pointer.ref`; linking fills
:attr:`Pointer.resolved`. The placeholder never owns its target.

System Role
-----------
Created by :mod:`lib_record_binding.application.binding`, resolved by
:mod:`lib_record_binding.application.linking`, and serialised back to
``{"$ref": id}`` by :mod:`lib_record_binding.application.unbinding`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar, get_args, get_origin

T = TypeVar("T")


@dataclass
class Pointer(Generic[T]):
    """Reference placeholder pointing at a record of type ``T``.

    ``resolved`` is excluded from equality and ``repr`` so cyclic graphs stay
    comparable and printable.

    Examples
    --------
    >>> ptr = Pointer(ref="emp-1")
    >>> ptr.is_resolved()
    False
    >>> ptr
    Pointer(ref='emp-1')
    """

    ref: str = ""
    resolved: T | None = field(default=None, compare=False, repr=False)

    def resolve(self) -> T | None:
        return self.resolved

    def is_resolved(self) -> bool:
        return self.resolved is not None

    def is_empty(self) -> bool:
        return not self.ref and self.resolved is None

    def target_type(self) -> type | None:
        """Return ``T`` when the instance was created as ``Pointer[T](...)``."""

        origin_class = getattr(self, "__orig_class__", None)
        if origin_class is None:
            return None
        return pointer_target(origin_class)


def is_pointer_hint(hint: Any) -> bool:
    """Return ``True`` for ``Pointer`` and ``Pointer[T]`` annotations."""

    return hint is Pointer or get_origin(hint) is Pointer


def pointer_target(hint: Any) -> type | None:
    """Return the ``T`` of a ``Pointer[T]`` annotation, or ``None`` if unparametrised.

    Examples
    --------
    >>> class Employee: ...
    >>> pointer_target(Pointer[Employee]) is Employee
    True
    >>> pointer_target(Pointer) is None
    True
    """

    args = get_args(hint)
    if not args or not isinstance(args[0], type):
        return None
    return args[0]


def make_pointer(hint: Any, ref: str) -> Pointer[Any]:
    """Construct an unresolved placeholder, parametrised like *hint* when possible."""

    if get_origin(hint) is Pointer:
        return hint(ref=ref)
    return Pointer(ref=ref)
