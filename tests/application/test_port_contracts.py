"""Contract tests for the application-layer ports.

Verify that the structural protocols in
``src/lib_record_binding/application/ports.py`` recognise the shapes the
walkers dispatch on, so dependency inversion stays enforceable through
automated tests.
"""

from __future__ import annotations

from lib_record_binding.application import ports
from lib_record_binding.application.options import DEFAULT_OPTIONS, BindOptions, Converter
from tests.support.records import MONEY, Coordinates, EmailAction, Employee, Money, Service, bind_email


def test_dynamic_contract() -> None:
    assert isinstance(EmailAction(), ports.Dynamic)
    assert not isinstance(Service(), ports.Dynamic)


def test_identifiable_contract() -> None:
    assert isinstance(Employee(id="e1"), ports.Identifiable)
    assert not isinstance(Service(), ports.Identifiable)


def test_self_serialising_contracts() -> None:
    assert isinstance(Coordinates(), ports.Marshaler)
    assert isinstance(Coordinates(), ports.Unmarshaler)


def test_converter_round_trips_its_type() -> None:
    assert isinstance(MONEY, Converter)
    assert MONEY.to_raw(MONEY.from_raw("3.05")) == "3.05"
    assert MONEY.from_raw("3.05") == Money(305)


def test_options_lookups() -> None:
    options = BindOptions(converters={Money: MONEY}, dynamic_binders={"email": bind_email})
    assert options.converter_for(Money) is MONEY
    assert options.converter_for(list[Money]) is None
    assert options.binder_for("Rule.actions[2]", "email") is bind_email
    assert options.binder_for("Rule.action", "sms") is None
    assert options.has_dynamic_binders
    assert not DEFAULT_OPTIONS.has_dynamic_binders
