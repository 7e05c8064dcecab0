"""Public package surface of ``lib_record_binding``.

Records are plain dataclasses; field behaviour is declared with
:func:`tagged` / :func:`embedded`. The engine operations live in
:mod:`lib_record_binding.core` and are re-exported here together with the
option values, protocols, and the error taxonomy.
"""

from __future__ import annotations

from .application.inspection import inspect_record
from .application.linking import IdentityRegistry, Linker, LinkerOptions, LinkReport
from .application.options import BindOptions, Converter
from .application.ports import Dynamic, Identifiable, Marshaler, Unmarshaler
from .core import (
    LayerLoadError,
    bind,
    bind_file,
    bind_json,
    bind_yaml,
    link,
    load_file,
    merge,
    merge_file,
    merge_json,
    merge_yaml,
    new,
    new_from_file,
    new_json,
    new_yaml,
    read_record,
    unbind,
    unbind_json,
    unbind_to_file,
    unbind_yaml,
)
from .domain.directives import FieldDirective, embedded, parse_directive, tagged, to_snake_case
from .domain.errors import (
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
from .domain.references import Pointer
from .observability import bind_trace_id, get_logger

__all__ = [
    "BindOptions",
    "BindingError",
    "ConversionError",
    "Converter",
    "Dynamic",
    "FieldDirective",
    "FileError",
    "Identifiable",
    "IdentityRegistry",
    "InvalidFormat",
    "LayerLoadError",
    "LinkReport",
    "Linker",
    "LinkerOptions",
    "Marshaler",
    "MultipleExtraFieldsError",
    "NotFound",
    "Pointer",
    "PointerError",
    "RecordError",
    "RequiredFieldError",
    "TypeMismatchError",
    "UnbindingError",
    "Unmarshaler",
    "UnsupportedError",
    "ValidationError",
    "ValueMismatchError",
    "bind",
    "bind_file",
    "bind_json",
    "bind_trace_id",
    "bind_yaml",
    "embedded",
    "get_logger",
    "inspect_record",
    "link",
    "load_file",
    "merge",
    "merge_file",
    "merge_json",
    "merge_yaml",
    "new",
    "new_from_file",
    "new_json",
    "new_yaml",
    "parse_directive",
    "read_record",
    "tagged",
    "to_snake_case",
    "unbind",
    "unbind_json",
    "unbind_to_file",
    "unbind_yaml",
]
