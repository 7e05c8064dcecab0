"""Structured record file loaders and dumpers.

Purpose
-------
Convert on-disk artifacts and text documents into the raw mappings the bind
engine understands, and write unbound mappings back out. Adapters are small
wrappers around ``tomllib``/``json``/``yaml`` so error handling and
observability live in one place.

Contents
--------
* :class:`BaseFileLoader` – shared helpers for reading files and validating
  mapping outputs.
* :class:`TOMLFileLoader` / :class:`JSONFileLoader` / :class:`YAMLFileLoader`
  – ``load(path)`` for files and ``parse(text)`` for in-memory documents.
* :class:`JSONFileDumper` / :class:`YAMLFileDumper` – ``dumps(data)`` and
  ``dump(data, path)``.

System Role
-----------
Invoked by :mod:`lib_record_binding.core` for the text and file helpers and by
the CLI ``inspect``/``normalize`` commands.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

try:  # Python >= 3.11
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for <3.11
    import tomli as tomllib  # type: ignore[no-redef]

import yaml

from ...domain.errors import FileError, InvalidFormat, NotFound
from ...observability import log_debug, log_error


class BaseFileLoader:
    """Common utilities shared by the structured file loaders."""

    format_name = "raw"

    def load(self, path: str) -> Mapping[str, Any]:
        """Return the mapping stored in the file at *path*."""

        payload = self._read(path)
        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            log_error("record_file_invalid", path=path, format=self.format_name, error=str(exc))
            raise InvalidFormat(f"File {path} is not valid UTF-8: {exc}") from exc
        result = self.parse(text, source=path)
        log_debug("record_file_loaded", path=path, format=self.format_name, keys=len(result))
        return result

    def parse(self, text: str, *, source: str = "<string>") -> Mapping[str, Any]:
        raise NotImplementedError

    def _read(self, path: str) -> bytes:
        """Read *path* as bytes, raising :class:`NotFound` when the file is missing.

        Why
        ----
        Centralise file existence checks and logging so all loaders behave
        consistently.

        Side Effects
        ------------
        Emits ``record_file_read`` debug events.

        Examples
        --------
        >>> from tempfile import NamedTemporaryFile
        >>> tmp = NamedTemporaryFile(delete=False)
        >>> _ = tmp.write(b'{"name": "api"}')
        >>> tmp.close()
        >>> BaseFileLoader()._read(tmp.name)[:7]
        b'{"name"'
        >>> Path(tmp.name).unlink()
        """

        file_path = Path(path)
        if not file_path.is_file():
            raise NotFound(f"Record file not found: {path}")
        try:
            payload = file_path.read_bytes()
        except OSError as exc:
            raise FileError(path, "read", exc) from exc
        log_debug("record_file_read", path=path, size=len(payload))
        return payload

    @staticmethod
    def _ensure_mapping(data: object, *, source: str) -> Mapping[str, Any]:
        """Ensure *data* behaves like a mapping, otherwise raise ``InvalidFormat``.

        Examples
        --------
        >>> BaseFileLoader._ensure_mapping({"key": 1}, source="demo")
        {'key': 1}
        >>> BaseFileLoader._ensure_mapping(42, source="demo")
        Traceback (most recent call last):
        ...
        lib_record_binding.domain.errors.InvalidFormat: Document demo did not produce a mapping
        """

        if not isinstance(data, Mapping):
            raise InvalidFormat(f"Document {source} did not produce a mapping")
        return data


class TOMLFileLoader(BaseFileLoader):
    """Load TOML documents using the standard library parser."""

    format_name = "toml"

    def parse(self, text: str, *, source: str = "<string>") -> Mapping[str, Any]:
        """Return mapping extracted from TOML *text*.

        Examples
        --------
        >>> TOMLFileLoader().parse('name = "api"')["name"]
        'api'
        """

        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            log_error("record_file_invalid", path=source, format=self.format_name, error=str(exc))
            raise InvalidFormat(f"Invalid TOML in {source}: {exc}") from exc
        return self._ensure_mapping(data, source=source)


class JSONFileLoader(BaseFileLoader):
    """Load JSON documents."""

    format_name = "json"

    def parse(self, text: str, *, source: str = "<string>") -> Mapping[str, Any]:
        """Return mapping extracted from JSON *text*.

        Examples
        --------
        >>> JSONFileLoader().parse('{"enabled": true}')["enabled"]
        True
        """

        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            log_error("record_file_invalid", path=source, format=self.format_name, error=str(exc))
            raise InvalidFormat(f"Invalid JSON in {source}: {exc}") from exc
        return self._ensure_mapping(data, source=source)


class YAMLFileLoader(BaseFileLoader):
    """Load YAML documents with ``yaml.safe_load``; an empty document is an empty mapping."""

    format_name = "yaml"

    def parse(self, text: str, *, source: str = "<string>") -> Mapping[str, Any]:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            log_error("record_file_invalid", path=source, format=self.format_name, error=str(exc))
            raise InvalidFormat(f"Invalid YAML in {source}: {exc}") from exc
        if data is None:
            data = {}
        return self._ensure_mapping(data, source=source)


class BaseFileDumper:
    """Common write path shared by the structured dumpers."""

    format_name = "raw"

    def dumps(self, data: Mapping[str, Any], *, indent: int = 2) -> str:
        raise NotImplementedError

    def dump(self, data: Mapping[str, Any], path: str, *, indent: int = 2) -> None:
        """Serialise *data* and write it to *path*, creating parent directories."""

        text = self.dumps(data, indent=indent)
        file_path = Path(path)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(text, encoding="utf-8")
        except OSError as exc:
            log_error("record_file_write_failed", path=path, format=self.format_name, error=str(exc))
            raise FileError(path, "write", exc) from exc
        log_debug("record_file_written", path=path, format=self.format_name, size=len(text))


class JSONFileDumper(BaseFileDumper):
    """Write JSON documents.

    Examples
    --------
    >>> print(JSONFileDumper().dumps({"name": "api", "port": 80}))
    {
      "name": "api",
      "port": 80
    }
    """

    format_name = "json"

    def dumps(self, data: Mapping[str, Any], *, indent: int = 2) -> str:
        try:
            return json.dumps(data, indent=indent, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise InvalidFormat(f"Cannot encode JSON: {exc}") from exc


class YAMLFileDumper(BaseFileDumper):
    """Write YAML documents with ``yaml.safe_dump``, keeping key order.

    Examples
    --------
    >>> print(YAMLFileDumper().dumps({"name": "api", "tags": ["a"]}), end="")
    name: api
    tags:
    - a
    """

    format_name = "yaml"

    def dumps(self, data: Mapping[str, Any], *, indent: int = 2) -> str:
        try:
            return yaml.safe_dump(dict(data), indent=indent, sort_keys=False, allow_unicode=True)
        except yaml.YAMLError as exc:
            raise InvalidFormat(f"Cannot encode YAML: {exc}") from exc
