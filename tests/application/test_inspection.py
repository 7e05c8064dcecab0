"""Human readable inspection view."""

from __future__ import annotations

import pytest

from lib_record_binding import ValidationError, inspect_record, link, new, unbind
from tests.support.records import Company, Service


def _service(password: str = "hunter2") -> Service:
    return new(Service, {"name": "api", "tags": ["a"], "database": {"host": "db", "password": password}})


def test_secrets_are_masked_by_default() -> None:
    view = inspect_record(_service())
    assert "password: <set>" in view
    assert "hunter2" not in view


def test_unset_secret_is_reported_as_unset() -> None:
    assert "password: <unset>" in inspect_record(_service(password=""))


def test_secrets_shown_on_request() -> None:
    assert 'password: "hunter2"' in inspect_record(_service(), show_secrets=True)


def test_secret_always_present_in_unbind_output() -> None:
    assert unbind(_service())["database"]["password"] == "hunter2"


def test_view_layout() -> None:
    view = inspect_record(_service())
    lines = view.splitlines()
    assert lines[0] == "Service {"
    assert '  name: "api"' in lines
    assert '  tags: ["a"]' in lines
    assert "  database: Database {" in lines
    assert '    host: "db"' in lines
    assert lines[-1] == "}"


def test_max_depth_truncates_nested_records() -> None:
    view = inspect_record(_service(), max_depth=1)
    assert "database: Database {...}" in view
    assert "host" not in view


def test_pointer_state_is_shown() -> None:
    company = new(Company, {"employees": [{"id": "a", "manager": {"$ref": "a"}}, {"id": "b", "manager": {"$ref": "zz"}}]})
    before = inspect_record(company)
    assert 'manager: Pointer(ref="a", unresolved)' in before
    company.employees.pop()
    link(company)
    assert 'manager: Pointer(ref="a", resolved)' in inspect_record(company)


def test_inspect_requires_a_record() -> None:
    with pytest.raises(ValidationError):
        inspect_record(None)
