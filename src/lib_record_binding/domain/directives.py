"""Field directive value objects and the directive parser.

Purpose
-------
Turn the short per-field directive string (``"name,+required,+secret"``) into
an immutable :class:`FieldDirective`. The module is pure: no I/O, no logging,
no knowledge of records beyond the dataclass ``field`` helpers it offers.

Contents
--------
* :data:`DIRECTIVE_KEY` / :data:`EMBED_KEY` – dataclass metadata keys.
* :data:`TYPE_KEY` / :data:`REF_KEY` – reserved raw keys for polymorphic
  values and references.
* :class:`FieldDirective` – parsed directive.
* :func:`parse_directive` – the directive grammar.
* :func:`to_snake_case` – default external key for an attribute name.
* :func:`tagged` / :func:`embedded` – ``dataclasses.field`` wrappers used in
  record declarations.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Final

DIRECTIVE_KEY: Final[str] = "bind"
EMBED_KEY: Final[str] = "embed"
TYPE_KEY: Final[str] = "type"
REF_KEY: Final[str] = "$ref"

_SKIP_TOKEN: Final[str] = "-"
_MATCH_PREFIX: Final[str] = "+match="
_FLAG_TOKENS: Final[dict[str, str]] = {
    "+required": "required",
    "+secret": "secret",
    "+extra": "extra",
}


@dataclass(frozen=True, slots=True)
class FieldDirective:
    """Parsed form of a field directive.

    Attributes
    ----------
    name:
        External key override; ``None`` means the snake_case attribute name.
    required:
        Binding fails when the key is absent.
    secret:
        Value is masked by the inspection view.
    skip:
        Field is ignored by every operation. Short-circuits the other flags.
    match:
        Fixed value the resolved field must render to, or ``None``.
    extra:
        Field captures unmatched input keys.
    """

    name: str | None = None
    required: bool = False
    secret: bool = False
    skip: bool = False
    match: str | None = None
    extra: bool = False

    @property
    def has_match(self) -> bool:
        return self.match is not None


SKIP_DIRECTIVE: Final[FieldDirective] = FieldDirective(skip=True)
EMPTY_DIRECTIVE: Final[FieldDirective] = FieldDirective()


def parse_directive(text: str | None) -> FieldDirective:
    """Parse a directive string into a :class:`FieldDirective`.

    Why
    ----
    Records declare their external contract inline; the parser keeps that
    grammar forward-compatible by ignoring tokens it does not know.

    What
    ----
    Tokens are comma separated and trimmed. ``-`` alone skips the field. The
    first token names the external key unless it is a ``+`` marker. Flags
    may appear anywhere. ``+match`` accepts a fully quoted or a quote-free
    value; anything else is ignored.

    Examples
    --------
    >>> parse_directive("api_version,+required,+match=\\"v1\\"")
    FieldDirective(name='api_version', required=True, secret=False, skip=False, match='v1', extra=False)
    >>> parse_directive("-").skip
    True
    >>> parse_directive(",+secret").name is None
    True
    >>> parse_directive('+match="broken').has_match
    False
    """

    if text is None:
        return EMPTY_DIRECTIVE
    if text.strip() == _SKIP_TOKEN:
        return SKIP_DIRECTIVE
    if not text.strip():
        return EMPTY_DIRECTIVE

    values: dict[str, Any] = {}
    for index, raw_token in enumerate(text.split(",")):
        token = raw_token.strip()
        if not token:
            continue
        if token.startswith(_MATCH_PREFIX):
            match = _parse_match(token[len(_MATCH_PREFIX) :])
            if match is not None:
                values["match"] = match
            continue
        if token in _FLAG_TOKENS:
            values[_FLAG_TOKENS[token]] = True
            continue
        if index == 0 and not token.startswith("+"):
            values["name"] = token
    return FieldDirective(**values)


def _parse_match(value: str) -> str | None:
    """Return the constraint carried by a ``+match=`` token, or ``None`` if malformed."""

    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        return value[1:-1]
    if value and '"' not in value:
        return value
    return None


def to_snake_case(name: str) -> str:
    """Rewrite *name* to lowercase-with-underscores.

    A separator goes before an upper-case letter that follows a lower-case
    letter, or that ends an acronym (upper-case followed by lower-case).

    Examples
    --------
    >>> to_snake_case("HTTPServer")
    'http_server'
    >>> to_snake_case("userID")
    'user_id'
    >>> to_snake_case("already_snake")
    'already_snake'
    """

    out: list[str] = []
    for index, char in enumerate(name):
        if char.isupper():
            if index > 0:
                prev = name[index - 1]
                next_lower = index + 1 < len(name) and name[index + 1].islower()
                if prev.islower() or (prev.isupper() and next_lower):
                    out.append("_")
            out.append(char.lower())
        else:
            out.append(char)
    return "".join(out)


def tagged(directive: str, **kwargs: Any) -> Any:
    """Declare a dataclass field carrying *directive*.

    Examples
    --------
    >>> from dataclasses import dataclass, fields
    >>> @dataclass
    ... class Demo:
    ...     port: int = tagged("listen_port,+required", default=0)
    >>> fields(Demo)[0].metadata["bind"]
    'listen_port,+required'
    """

    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[DIRECTIVE_KEY] = directive
    return dataclasses.field(metadata=metadata, **kwargs)


def embedded(**kwargs: Any) -> Any:
    """Declare a dataclass field whose record is flattened into its parent."""

    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[EMBED_KEY] = True
    return dataclasses.field(metadata=metadata, **kwargs)


def directive_of(field: dataclasses.Field[Any]) -> FieldDirective:
    """Return the parsed directive attached to a dataclass *field*."""

    return parse_directive(field.metadata.get(DIRECTIVE_KEY))


def is_embedded(field: dataclasses.Field[Any]) -> bool:
    """Return ``True`` when *field* was declared with :func:`embedded`."""

    return bool(field.metadata.get(EMBED_KEY))
