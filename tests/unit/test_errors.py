from __future__ import annotations

import pytest

from lib_record_binding.domain.errors import (
    BindingError,
    ConversionError,
    FileError,
    InvalidFormat,
    MultipleExtraFieldsError,
    NotFound,
    PointerError,
    RecordError,
    RequiredFieldError,
    TypeMismatchError,
    UnbindingError,
    UnsupportedError,
    ValidationError,
    ValueMismatchError,
)


@pytest.mark.parametrize(
    "exception",
    [
        ValidationError("bad"),
        TypeMismatchError("int", "str"),
        ConversionError("boom"),
        BindingError("Root", "field", "key", ValueError("x")),
        UnbindingError("Root", "field", "key", ValueError("x")),
        RequiredFieldError("Root", "field", "key"),
        ValueMismatchError("Root", "field", "a", "b"),
        UnsupportedError("sets"),
        MultipleExtraFieldsError("Root", ["a", "b"]),
        PointerError("Root.ref", "id-1"),
        InvalidFormat("broken"),
        NotFound("missing"),
        FileError("out.json", "write", OSError("disk full")),
    ],
)
def test_error_hierarchy(exception: RecordError) -> None:
    assert isinstance(exception, RecordError)


def test_validation_error_mentions_field() -> None:
    assert str(ValidationError("ambiguous", field="extra")) == "validation error in field extra: ambiguous"


def test_binding_error_keeps_context() -> None:
    cause = TypeMismatchError("int", "list", path="Service.port")
    error = BindingError("Service", "port", "port", cause)
    assert error.cause is cause
    assert error.key == "port"
    assert str(error) == 'binding field Service.port from key "port": Service.port: expected int, got list'


def test_required_field_error_message() -> None:
    error = RequiredFieldError("Service.database", "host", "host")
    assert str(error) == 'Service.database.host: required field missing (key "host")'


def test_value_mismatch_message() -> None:
    error = ValueMismatchError("Service", "api_version", "v1", "v2")
    assert error.expected == "v1"
    assert str(error) == 'Service.api_version: expected value "v1", got "v2"'


def test_unsupported_and_multiple_extra_messages() -> None:
    assert str(UnsupportedError("fields of type set[int]", path="R.tags")) == "R.tags: fields of type set[int] are not supported"
    assert str(MultipleExtraFieldsError("R", ["a", "b"])) == "R: only one +extra field is allowed, found a, b"


def test_pointer_error_message_variants() -> None:
    assert str(PointerError("Team.lead", "emp-9")) == "Team.lead: unresolved reference: emp-9"
    custom = PointerError("", "emp-9", message="no target type")
    assert str(custom) == "no target type"


def test_conversion_error_includes_cause() -> None:
    error = ConversionError("custom converter failed", path="Invoice.total", cause=ValueError("nope"))
    assert str(error) == "Invoice.total: custom converter failed: nope"
    assert isinstance(error.cause, ValueError)
