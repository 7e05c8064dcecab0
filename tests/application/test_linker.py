"""Identity registry and reference linker."""

from __future__ import annotations

import pytest

from lib_record_binding import (
    IdentityRegistry,
    Linker,
    LinkerOptions,
    Pointer,
    PointerError,
    ValidationError,
    link,
    new,
    unbind,
)
from tests.support.records import Company, Department, Employee, Task


def _company(employees: list[dict], departments: list[dict] | None = None) -> Company:
    return new(Company, {"employees": employees, "departments": departments or []})


def test_binding_leaves_placeholders_unresolved() -> None:
    company = _company([{"id": "e1", "manager": {"$ref": "e2"}}])
    pointer = company.employees[0].manager
    assert pointer.ref == "e2"
    assert not pointer.is_resolved()
    assert pointer.target_type() is Employee


def test_two_record_cycle_resolves() -> None:
    company = _company(
        [
            {"id": "a", "manager": {"$ref": "b"}},
            {"id": "b", "manager": {"$ref": "a"}},
        ]
    )
    report = link(company)
    first, second = company.employees
    assert report.resolved == 2
    assert first.manager.resolve() is second
    assert second.manager.resolve() is first


def test_long_cycle_resolves_without_recursion() -> None:
    size = 5000
    employees = [{"id": f"e{index}", "manager": {"$ref": f"e{(index + 1) % size}"}} for index in range(size)]
    company = _company(employees)
    report = link(company)
    assert report.resolved == size
    assert company.employees[-1].manager.resolved is company.employees[0]


def test_identifiers_are_isolated_per_type() -> None:
    company = _company(
        [{"id": "shared", "name": "person"}],
        [{"id": "shared", "head": {"$ref": "shared"}}],
    )
    link(company)
    head = company.departments[0].head.resolved
    assert isinstance(head, Employee)
    assert head.name == "person"


def test_reference_never_resolves_to_another_type() -> None:
    company = _company([], [{"id": "d1", "head": {"$ref": "d1"}}])
    with pytest.raises(PointerError) as info:
        link(company)
    assert info.value.reference == "d1"
    assert info.value.path == "Company.departments[0].head"


def test_partial_resolution_leaves_dangling_placeholder() -> None:
    company = _company(
        [{"id": "e1"}, {"id": "e2", "manager": {"$ref": "e1"}}],
        [{"id": "d1", "head": {"$ref": "ghost"}, "members": [{"$ref": "e1"}, {"$ref": "e2"}]}],
    )
    report = link(company, options=LinkerOptions(allow_partial_resolution=True))
    department = company.departments[0]
    assert report.unresolved == ("Company.departments[0].head",)
    assert report.resolved == 3
    assert not department.head.is_resolved()
    assert [member.resolved for member in department.members] == company.employees


def test_strict_resolution_fails_whole_call() -> None:
    company = _company([{"id": "e1", "manager": {"$ref": "ghost"}}])
    with pytest.raises(PointerError):
        link(company)


def test_cross_graph_references() -> None:
    staff = _company([{"id": "e1", "name": "boss"}])
    org = _company([], [{"id": "d1", "head": {"$ref": "e1"}}])
    link(staff, org)
    assert org.departments[0].head.resolved is staff.employees[0]


def test_resolve_before_register_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Linker().resolve_references(_company([]))


def test_caching_keeps_registry_between_calls() -> None:
    linker = Linker(LinkerOptions(enable_caching=True))
    staff = _company([{"id": "e1"}, {"id": "e2"}])
    assert linker.register(staff) == 2
    assert linker.register(staff) == 0
    org = _company([], [{"id": "d1", "head": {"$ref": "e2"}}])
    linker.link(org)
    assert org.departments[0].head.resolved is staff.employees[1]
    linker.clear_cache()
    assert len(linker.registry) == 0


def test_without_caching_each_link_starts_fresh() -> None:
    linker = Linker()
    staff = _company([{"id": "e1"}])
    linker.link(staff)
    org = _company([], [{"id": "d1", "head": {"$ref": "e1"}}])
    with pytest.raises(PointerError):
        linker.link(org)


def test_registry_keys_by_type_and_last_write_wins() -> None:
    registry = IdentityRegistry()
    first, second = Employee(id="x"), Employee(id="x")
    assert registry.add(first)
    assert registry.add(second)
    assert not registry.add(Employee(id=""))
    assert not registry.add(object())
    assert registry.lookup(Employee, "x") is second
    assert registry.lookup(Department, "x") is None


def test_untyped_field_falls_back_to_placeholder_parameter() -> None:
    staff = _company([{"id": "t"}])
    loose = Pointer[Employee](ref="t")
    task = Task(payload=[loose])
    link(staff, task)
    assert loose.resolved is staff.employees[0]


def test_resolved_references_unbind_to_identifiers() -> None:
    company = _company([{"id": "a", "manager": {"$ref": "b"}}, {"id": "b", "manager": {"$ref": "a"}}])
    link(company)
    raw = unbind(company)
    assert raw["employees"][0]["manager"] == {"$ref": "b"}
    company.employees[0].manager = Pointer(resolved=company.employees[1])
    assert unbind(company)["employees"][0]["manager"] == {"$ref": "b"}
    company.employees[0].manager = Pointer()
    assert "manager" not in unbind(company)["employees"][0]


def test_pointer_equality_ignores_resolution() -> None:
    assert Pointer(ref="a") == Pointer(ref="a", resolved=object())
    assert "resolved" not in repr(Pointer(ref="a"))
