"""Domain-level exception hierarchy.

Purpose
-------
Expose the stable error taxonomy shared by the binding engines, the reference
linker, the file adapters, and consuming applications. The hierarchy lives in
the domain layer so every outer layer may raise it without import cycles.

Contents
--------
* :class:`RecordError` – umbrella base class for all library failures.
* :class:`ValidationError` – malformed calls (``None`` targets, ambiguous
  overflow output, duplicate options).
* :class:`TypeMismatchError` – declared versus actual shape disagreement.
* :class:`ConversionError` – coercion or user callback failures.
* :class:`BindingError` / :class:`UnbindingError` – field-level wrappers that
  localise a nested failure by record path, attribute, and external key.
* :class:`RequiredFieldError` – a mandatory key is missing.
* :class:`ValueMismatchError` – a ``+match`` constraint was violated.
* :class:`UnsupportedError` – a field shape with no defined handling.
* :class:`MultipleExtraFieldsError` – more than one ``+extra`` field.
* :class:`PointerError` – a reference could not be resolved while linking.
* :class:`InvalidFormat` / :class:`NotFound` / :class:`FileError` – file
  adapter failures.

System Role
-----------
Every public operation either returns normally or raises a subclass of
:class:`RecordError`. Callers catch the base class to handle all library
failures uniformly, or a specific subclass for fine-grained handling.
"""

from __future__ import annotations


class RecordError(Exception):
    """Base type for all exceptions emitted by ``lib_record_binding``.

    Why
    ----
    Provide a single catch-all type for consumers that do not need fine-grained
    handling.
    """


class ValidationError(RecordError):
    """Raised when a call is malformed rather than the data it carries.

    Examples
    --------
    >>> str(ValidationError("nil target provided"))
    'validation error: nil target provided'
    >>> str(ValidationError("ambiguous key", field="name"))
    'validation error in field name: ambiguous key'
    """

    def __init__(self, message: str, *, field: str | None = None) -> None:
        self.message = message
        self.field = field
        if field:
            super().__init__(f"validation error in field {field}: {message}")
        else:
            super().__init__(f"validation error: {message}")


class TypeMismatchError(RecordError):
    """Signals that a raw value does not have the shape the field declares.

    Examples
    --------
    >>> str(TypeMismatchError("int", "list", path="Config.port"))
    'Config.port: expected int, got list'
    """

    def __init__(self, expected: str, actual: str, *, path: str = "") -> None:
        self.expected = expected
        self.actual = actual
        self.path = path
        prefix = f"{path}: " if path else ""
        super().__init__(f"{prefix}expected {expected}, got {actual}")


class ConversionError(RecordError):
    """Raised when a value of the right shape cannot be converted.

    Wraps parse failures of the built-in coercion rules and any exception
    raised by caller supplied converters, dynamic constructors, or
    unmarshalers. The underlying exception is chained as ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        *,
        path: str = "",
        value: object = None,
        target: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.message = message
        self.path = path
        self.value = value
        self.target = target
        self.cause = cause
        detail = f"{message}: {cause}" if cause is not None else message
        super().__init__(f"{path}: {detail}" if path else detail)


class BindingError(RecordError):
    """Field-level wrapper raised when binding a single field fails.

    Examples
    --------
    >>> err = BindingError("Config", "port", "port", TypeMismatchError("int", "str"))
    >>> str(err)
    'binding field Config.port from key "port": expected int, got str'
    """

    def __init__(self, path: str, field: str, key: str, cause: BaseException) -> None:
        self.path = path
        self.field = field
        self.key = key
        self.cause = cause
        super().__init__(f'binding field {path}.{field} from key "{key}": {cause}')


class UnbindingError(RecordError):
    """Field-level wrapper raised when unbinding a single field fails."""

    def __init__(self, path: str, field: str, key: str, cause: BaseException) -> None:
        self.path = path
        self.field = field
        self.key = key
        self.cause = cause
        super().__init__(f'unbinding field {path}.{field} to key "{key}": {cause}')


class RequiredFieldError(RecordError):
    """A field marked ``+required`` found no key in the input mapping.

    Examples
    --------
    >>> str(RequiredFieldError("Config.database", "host", "host"))
    'Config.database.host: required field missing (key "host")'
    """

    def __init__(self, path: str, field: str, key: str) -> None:
        self.path = path
        self.field = field
        self.key = key
        super().__init__(f'{path}.{field}: required field missing (key "{key}")')


class ValueMismatchError(RecordError):
    """A field's resolved value differs from its ``+match`` constraint."""

    def __init__(self, path: str, field: str, expected: str, actual: str) -> None:
        self.path = path
        self.field = field
        self.expected = expected
        self.actual = actual
        super().__init__(f'{path}.{field}: expected value "{expected}", got "{actual}"')


class UnsupportedError(RecordError):
    """Raised for field shapes the walker has no handling for."""

    def __init__(self, operation: str, *, path: str = "") -> None:
        self.operation = operation
        self.path = path
        prefix = f"{path}: " if path else ""
        super().__init__(f"{prefix}{operation} are not supported")


class MultipleExtraFieldsError(RecordError):
    """A record type declares more than one ``+extra`` overflow field."""

    def __init__(self, record: str, fields: list[str]) -> None:
        self.record = record
        self.fields = list(fields)
        super().__init__(f"{record}: only one +extra field is allowed, found {', '.join(fields)}")


class PointerError(RecordError):
    """Raised when a reference placeholder cannot be resolved while linking.

    Examples
    --------
    >>> str(PointerError("Team.lead", "emp-9", target="app.Employee"))
    'Team.lead: unresolved reference: emp-9 (looking for app.Employee)'
    """

    def __init__(self, path: str, reference: str, *, target: str | None = None, message: str | None = None) -> None:
        self.path = path
        self.reference = reference
        self.target = target
        if message is None:
            message = f"unresolved reference: {reference}"
            if target:
                message += f" (looking for {target})"
        self.message = message
        super().__init__(f"{path}: {message}" if path else message)


class InvalidFormat(RecordError):
    """Raised when an input artifact cannot be parsed into structured data.

    Typical Sources
    ---------------
    Structured file loaders (:mod:`tomllib`, :mod:`json`, :mod:`yaml`) and the
    text helpers of :mod:`lib_record_binding.core`.
    """


class NotFound(RecordError):
    """Represents missing-but-optional resources such as layer files.

    The composition root treats this as non-fatal when a caller loads
    optional files.
    """


class FileError(RecordError):
    """Raised when reading or writing a record file fails at the OS level."""

    def __init__(self, path: str, operation: str, cause: BaseException) -> None:
        self.path = path
        self.operation = operation
        self.cause = cause
        super().__init__(f"failed to {operation} file {path}: {cause}")
