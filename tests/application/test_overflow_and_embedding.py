"""Overflow capture and embedded record flattening."""

from __future__ import annotations

import pytest

from lib_record_binding import MultipleExtraFieldsError, ValidationError, bind, new, unbind
from tests.support.records import Audit, Book, Document, TwoExtras


def test_unmatched_keys_land_in_overflow_field() -> None:
    document = new(Document, {"title": "t", "color": "red", "size": 3})
    assert document.extra == {"color": "red", "size": 3}


def test_bind_resets_overflow_when_nothing_is_left() -> None:
    document = new(Document, {"title": "t", "color": "red"})
    bind(document, {"title": "u"})
    assert document.extra == {}


def test_embedded_fields_share_the_parent_namespace() -> None:
    document = new(Document, {"title": "t", "created_by": "me", "revision": "4"})
    assert document.audit == Audit(created_by="me", revision=4)
    assert document.extra == {}
    assert unbind(document) == {"title": "t", "created_by": "me", "revision": 4}


def test_each_level_captures_only_its_own_overflow() -> None:
    book = new(Book, {"title": "b", "isbn": "1", "section": {"heading": "h", "page": 3}})
    assert book.rest == {"isbn": "1"}
    assert book.section.rest == {"page": 3}
    assert unbind(book) == {"title": "b", "section": {"heading": "h", "page": 3}, "isbn": "1"}


def test_overflow_is_appended_after_declared_fields() -> None:
    document = new(Document, {"color": "red", "title": "t"})
    assert list(unbind(document)) == ["title", "created_by", "revision", "color"]


def test_overflow_colliding_with_declared_key_is_ambiguous() -> None:
    document = Document(title="t", extra={"title": "shadow"})
    with pytest.raises(ValidationError):
        unbind(document)


def test_only_one_overflow_field_is_allowed() -> None:
    with pytest.raises(MultipleExtraFieldsError) as info:
        new(TwoExtras, {})
    assert info.value.fields == ["first", "second"]
