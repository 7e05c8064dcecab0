"""End-to-end coverage for the text, file, and layered helpers of ``core``."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
import yaml

from lib_record_binding import (
    LayerLoadError,
    NotFound,
    UnsupportedError,
    bind_file,
    bind_json,
    bind_yaml,
    merge_file,
    merge_json,
    merge_yaml,
    new_from_file,
    new_json,
    new_yaml,
    read_record,
    unbind_json,
    unbind_to_file,
    unbind_yaml,
)
from tests.support.records import Service

SERVICE_YAML = """\
name: api
port: 9000
database:
  host: db.local
  timeout: 2m
"""


def test_text_helpers_round_trip() -> None:
    service = new_yaml(Service, SERVICE_YAML)
    assert service.database.host == "db.local"
    again = new_json(Service, unbind_json(service))
    assert again == service
    assert yaml.safe_load(unbind_yaml(service))["database"]["timeout"] == "2m"


def test_bind_and_merge_text() -> None:
    service = Service()
    bind_json(service, '{"name": "api", "port": 1}')
    merge_yaml(service, "debug: true\n")
    merge_json(service, '{"port": 2}')
    assert (service.name, service.port, service.debug) == ("api", 2, True)
    bind_yaml(service, "name: worker\n")
    assert (service.name, service.port, service.debug) == ("worker", 8080, False)


def test_file_helpers_pick_format_by_suffix(tmp_path: Path) -> None:
    source = tmp_path / "service.yaml"
    source.write_text(SERVICE_YAML, encoding="utf-8")
    service = new_from_file(Service, source)

    target = tmp_path / "out" / "service.json"
    unbind_to_file(service, target, indent=2)
    assert json.loads(target.read_text(encoding="utf-8"))["port"] == 9000

    copy = Service()
    bind_file(copy, target)
    assert copy == service


def test_toml_files_bind(tmp_path: Path) -> None:
    source = tmp_path / "service.toml"
    source.write_text('name = "api"\n[database]\nhost = "db"\n', encoding="utf-8")
    assert new_from_file(Service, source).database.host == "db"


def test_unsupported_suffixes(tmp_path: Path) -> None:
    with pytest.raises(UnsupportedError):
        new_from_file(Service, tmp_path / "service.ini")
    with pytest.raises(UnsupportedError):
        unbind_to_file(Service(name="api"), tmp_path / "service.toml")


def test_merge_file_optional_mode(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="lib_record_binding")
    service = Service(name="api")
    assert merge_file(service, tmp_path / "absent.json", required=False) is False
    assert "layer_missing" in [record.getMessage() for record in caplog.records]
    with pytest.raises(NotFound):
        merge_file(service, tmp_path / "absent.json")


def test_read_record_layers_files_in_order(tmp_path: Path) -> None:
    system = tmp_path / "system.yaml"
    system.write_text("name: api\nport: 1\ntags: [a]\n", encoding="utf-8")
    user = tmp_path / "user.json"
    user.write_text('{"port": 2, "database": {"host": "db"}}', encoding="utf-8")

    service = read_record(Service, [system, tmp_path / "missing.toml", user])
    assert (service.name, service.port, service.tags) == ("api", 2, ["a"])
    assert service.database.host == "db"
    assert service.database.port == 5432


def test_read_record_prefer_reorders_layers(tmp_path: Path) -> None:
    first = tmp_path / "a.json"
    first.write_text('{"port": 1}', encoding="utf-8")
    second = tmp_path / "b.yaml"
    second.write_text("port: 2\n", encoding="utf-8")
    assert read_record(Service, [first, second], prefer=["yaml", "json"]).port == 1


def test_read_record_required_mode_and_bad_files(tmp_path: Path) -> None:
    with pytest.raises(NotFound):
        read_record(Service, [tmp_path / "missing.json"], optional=False)
    broken = tmp_path / "broken.json"
    broken.write_text("{", encoding="utf-8")
    with pytest.raises(LayerLoadError):
        read_record(Service, [broken])
