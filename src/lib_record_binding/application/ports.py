"""Application-layer ports describing what records and field values may implement.

Purpose
-------
Define the structural contracts the binding engines and the linker rely on,
so record authors opt into behaviour by implementing a method rather than by
inheriting from library classes.

Contents
--------
* :class:`Dynamic` – polymorphic field value selected by a discriminator.
* :class:`Identifiable` – record that can be the target of a ``Pointer``.
* :class:`Marshaler` – value that serialises itself to a raw mapping.
* :class:`Unmarshaler` – value that populates itself from a raw mapping.
* :class:`RawConverter` – bidirectional conversion for one concrete type.
* :class:`DynamicBinder` – constructor turning a raw mapping into a
  :class:`Dynamic` value.

System Role
-----------
These protocols enforce Dependency Inversion: the walkers check for them with
``isinstance`` and never depend on user classes directly.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Protocol, runtime_checkable


@runtime_checkable
class Dynamic(Protocol):
    """Polymorphic field value.

    Why
    ----
    A field annotated ``Dynamic`` accepts any registered variant; the raw
    mapping names the variant under the ``"type"`` key.

    Methods
    -------
    :meth:`type_name`
        Discriminator written to the ``"type"`` key on unbind.
    :meth:`to_mapping`
        The variant's own fields as a raw mapping.
    """

    def type_name(self) -> str:
        """Return the discriminator identifying this variant."""

    def to_mapping(self) -> dict[str, Any]:
        """Return the variant's raw representation (the discriminator is added afterwards)."""


@runtime_checkable
class Identifiable(Protocol):
    """Record exposing a stable logical identifier for reference resolution."""

    def get_id(self) -> str:
        """Return the identifier used as ``$ref`` by other records."""


@runtime_checkable
class Marshaler(Protocol):
    """Value that knows how to render itself as a raw mapping."""

    def marshal_raw(self) -> dict[str, Any]:
        """Return the raw mapping representing this value."""


@runtime_checkable
class Unmarshaler(Protocol):
    """Value that populates itself from a raw mapping.

    Unmarshalers run after every other field of the enclosing record has
    been bound, so they may read sibling fields.
    """

    def unmarshal_raw(self, data: Mapping[str, Any]) -> None:
        """Populate ``self`` from *data*."""


class RawConverter(Protocol):
    """Bidirectional conversion for a single concrete field type."""

    def from_raw(self, raw: Any) -> Any:
        """Convert a raw value into the field type."""

    def to_raw(self, value: Any) -> Any:
        """Convert a field value back into a raw value."""


DynamicBinder = Callable[[Mapping[str, Any]], Dynamic]
"""Constructor registered for one discriminator value."""
