"""Human readable inspection view of a record.

Renders an indented ``TypeName { key: value }`` tree. Fields marked ``+secret``
are masked as ``<set>`` / ``<unset>`` unless explicitly requested, pointers show
their reference and resolution state, and nesting is capped by ``max_depth``.
The unbind output is unaffected: secrets are always present there.
"""

from __future__ import annotations

import enum
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from ..domain.references import Pointer
from .coercion import format_duration, key_to_string, render_scalar
from .ports import Dynamic
from .schema import ensure_record, holder_of, is_record, schema_for

MASK_SET = "<set>"
MASK_UNSET = "<unset>"


def inspect_record(record: Any, *, show_secrets: bool = False, max_depth: int = 10, indent: str = "  ") -> str:
    """Return the inspection view of *record*.

    Examples
    --------
    >>> from dataclasses import dataclass, field
    >>> @dataclass
    ... class Login:
    ...     user: str = "admin"
    ...     password: str = field(default="hunter2", metadata={"bind": "+secret"})
    >>> print(inspect_record(Login()))
    Login {
      user: "admin"
      password: <set>
    }
    """

    ensure_record(record, role="record")
    printer = _Printer(show_secrets=show_secrets, max_depth=max_depth, indent=indent)
    return printer.record(record, 0)


@dataclass
class _Printer:
    show_secrets: bool
    max_depth: int
    indent: str
    active: set[int] = field(default_factory=set)

    def record(self, record: Any, depth: int) -> str:
        name = type(record).__name__
        if depth >= self.max_depth:
            return f"{name} {{...}}"
        if id(record) in self.active:
            return f"{name} <cycle>"
        self.active.add(id(record))
        try:
            schema = schema_for(type(record))
            pad = self.indent * (depth + 1)
            lines = [f"{name} {{"]
            for plan in schema.fields:
                holder = holder_of(record, plan, create=False)
                value = getattr(holder, plan.attr, None) if holder is not None else None
                if plan.directive.secret and not self.show_secrets:
                    rendered = MASK_SET if _is_set(value) else MASK_UNSET
                else:
                    rendered = self.value(value, depth + 1)
                lines.append(f"{pad}{plan.key}: {rendered}")
            if schema.extra is not None:
                holder = holder_of(record, schema.extra, create=False)
                overflow = getattr(holder, schema.extra.attr, None) if holder is not None else None
                for key, value in (overflow or {}).items():
                    lines.append(f"{pad}{key_to_string(key)}: {self.value(value, depth + 1)}")
            lines.append(f"{self.indent * depth}}}")
            return "\n".join(lines)
        finally:
            self.active.discard(id(record))

    def value(self, value: Any, depth: int) -> str:
        if value is None:
            return "None"
        if isinstance(value, Pointer):
            state = "resolved" if value.is_resolved() else "unresolved"
            return f'Pointer(ref="{value.ref}", {state})'
        if isinstance(value, str):
            return json.dumps(value, ensure_ascii=False)
        if isinstance(value, (enum.Enum, bool, int, float)):
            return render_scalar(value)
        if isinstance(value, timedelta):
            return format_duration(value)
        if is_record(value):
            return self.record(value, depth)
        if isinstance(value, Dynamic):
            return f"{value.type_name()} {self.value(value.to_mapping(), depth)}"
        if isinstance(value, Mapping):
            if depth >= self.max_depth:
                return "{...}"
            items = ", ".join(f"{key_to_string(key)}: {self.value(item, depth + 1)}" for key, item in value.items())
            return f"{{{items}}}"
        if isinstance(value, (list, tuple)):
            if depth >= self.max_depth:
                return "[...]"
            return f"[{', '.join(self.value(item, depth + 1) for item in value)}]"
        return repr(value)


def _is_set(value: Any) -> bool:
    return value is not None and value != "" and value != {} and value != []
