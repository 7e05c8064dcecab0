"""Merge engine: partial updates leave absent fields untouched."""

from __future__ import annotations

from dataclasses import asdict

from hypothesis import given
from hypothesis import strategies as st

from lib_record_binding import merge, new, unbind
from tests.support.records import Document, Memo, Service, Stamp

PARTIAL = st.fixed_dictionaries(
    {},
    optional={
        "port": st.integers(min_value=0, max_value=65535),
        "debug": st.booleans(),
        "tags": st.lists(st.text(max_size=5), max_size=3),
        "owner": st.one_of(st.none(), st.text(max_size=5)),
        "labels": st.dictionaries(st.text(max_size=5), st.text(max_size=5), max_size=3),
    },
)


def _service() -> Service:
    return new(
        Service,
        {
            "name": "api",
            "port": 9000,
            "tags": ["a", "b"],
            "labels": {"team": "core", "tier": "1"},
            "database": {"host": "db", "port": 6543, "password": "pw"},
        },
    )


def test_merge_only_touches_present_keys() -> None:
    service = _service()
    merge(service, {"port": 1})
    assert service.port == 1
    assert service.name == "api"
    assert service.tags == ["a", "b"]
    assert service.database.host == "db"


def test_merge_replaces_containers_wholesale() -> None:
    service = _service()
    merge(service, {"tags": ["z"], "labels": {"tier": "2"}})
    assert service.tags == ["z"]
    assert service.labels == {"tier": "2"}


def test_merge_descends_into_existing_nested_record() -> None:
    service = _service()
    database = service.database
    merge(service, {"database": {"port": 1}})
    assert service.database is database
    assert database.port == 1
    assert database.host == "db"
    assert database.password == "pw"


def test_merge_does_not_require_absent_required_keys() -> None:
    service = _service()
    merge(service, {"database": {"timeout": "5s"}})
    assert service.database.host == "db"


def test_merge_adds_overflow_keys() -> None:
    document = new(Document, {"title": "t", "color": "red"})
    merge(document, {"size": 3, "color": "blue"})
    assert document.extra == {"color": "blue", "size": 3}
    merge(document, {"title": "other"})
    assert document.extra == {"color": "blue", "size": 3}


@given(PARTIAL)
def test_merge_is_non_destructive(partial: dict) -> None:
    service = _service()
    before = asdict(service)
    merge(service, partial)
    after = asdict(service)
    for key, value in before.items():
        if key in partial:
            assert after[key] == partial[key]
        else:
            assert after[key] == value


def test_merge_leaves_absent_optional_embedded_record_unset() -> None:
    memo = Memo(title="t")
    merge(memo, {"title": "u"})
    assert memo.stamp is None
    assert unbind(memo) == {"title": "u"}


def test_merge_creates_optional_embedded_record_when_its_keys_arrive() -> None:
    memo = Memo(title="t")
    merge(memo, {"created_by": "ops"})
    assert memo.stamp == Stamp(created_by="ops")

    unknown = Memo(title="t")
    merge(unknown, {"ticket": 7})
    assert unknown.stamp == Stamp(notes={"ticket": 7})
