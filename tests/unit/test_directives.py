"""Directive grammar and default key naming."""

from __future__ import annotations

import string
from dataclasses import dataclass, fields

import pytest
from hypothesis import given
from hypothesis import strategies as st

from lib_record_binding.domain.directives import (
    EMBED_KEY,
    FieldDirective,
    directive_of,
    embedded,
    is_embedded,
    parse_directive,
    tagged,
    to_snake_case,
)

NAME = st.from_regex(r"[a-z][a-z0-9_]{0,10}", fullmatch=True)


def test_empty_directive_has_no_flags() -> None:
    assert parse_directive("") == FieldDirective()
    assert parse_directive(None) == FieldDirective()


def test_skip_directive() -> None:
    directive = parse_directive(" - ")
    assert directive.skip is True
    assert directive.name is None


def test_name_and_flags_in_any_order() -> None:
    directive = parse_directive("db_host, +secret ,+required")
    assert directive.name == "db_host"
    assert directive.required is True
    assert directive.secret is True
    assert directive.extra is False


def test_leading_flag_is_not_a_name() -> None:
    directive = parse_directive("+required,other")
    assert directive.name is None
    assert directive.required is True


def test_name_only_taken_from_first_token() -> None:
    assert parse_directive(",later").name is None


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ('+match="v1"', "v1"),
        ("+match=v1", "v1"),
        ('+match=""', ""),
        ('+match="with space"', "with space"),
    ],
)
def test_match_forms(text: str, expected: str) -> None:
    directive = parse_directive(text)
    assert directive.has_match
    assert directive.match == expected


@pytest.mark.parametrize("text", ['+match="v1', '+match=v1"', "+match=", '+match="'])
def test_malformed_match_is_ignored(text: str) -> None:
    assert parse_directive(text).has_match is False


def test_unknown_tokens_are_ignored() -> None:
    directive = parse_directive("name,+future,+optional=3,+extra")
    assert directive == FieldDirective(name="name", extra=True)


@given(NAME, st.booleans(), st.booleans(), st.booleans())
def test_parse_directive_reads_back_what_was_written(name: str, required: bool, secret: bool, extra: bool) -> None:
    tokens = [name]
    if required:
        tokens.append("+required")
    if secret:
        tokens.append("+secret")
    if extra:
        tokens.append("+extra")
    directive = parse_directive(",".join(tokens))
    assert directive == FieldDirective(name=name, required=required, secret=secret, extra=extra)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("HTTPServer", "http_server"),
        ("userID", "user_id"),
        ("UserName", "user_name"),
        ("simple", "simple"),
        ("already_snake", "already_snake"),
        ("APIKey", "api_key"),
        ("ID", "id"),
        ("parseHTMLPage", "parse_html_page"),
    ],
)
def test_to_snake_case(name: str, expected: str) -> None:
    assert to_snake_case(name) == expected


@given(st.text(alphabet=string.ascii_letters, min_size=1, max_size=20))
def test_to_snake_case_only_lowercases_and_separates(name: str) -> None:
    result = to_snake_case(name)
    assert result == result.lower()
    assert result.replace("_", "") == name.lower()
    assert not result.startswith("_")


@dataclass
class _Declared:
    host: str = tagged("server_host,+required", default="")
    nested: dict = embedded(default_factory=dict, metadata={"note": "kept"})
    plain: int = 0


def test_field_helpers_attach_metadata() -> None:
    host, nested, plain = fields(_Declared)
    assert directive_of(host) == FieldDirective(name="server_host", required=True)
    assert is_embedded(nested)
    assert nested.metadata["note"] == "kept"
    assert nested.metadata[EMBED_KEY] is True
    assert directive_of(plain) == FieldDirective()
    assert not is_embedded(plain)
