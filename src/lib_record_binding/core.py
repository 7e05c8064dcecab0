"""Composition root for ``lib_record_binding``.

Purpose
-------
Provide the single entry point that wires the binding engines, the reference
linker, and the structured file adapters together while emitting structured
observability signals. Only stable, consumer-ready APIs are exported.

Contents
--------
* :func:`bind` / :func:`new` / :func:`merge` / :func:`unbind` / :func:`link` –
  engine operations with logging.
* ``bind_json`` / ``bind_yaml`` / ``new_json`` / ``new_yaml`` / ``merge_json``
  / ``merge_yaml`` / ``unbind_json`` / ``unbind_yaml`` – text helpers.
* :func:`bind_file` / :func:`new_from_file` / :func:`merge_file` /
  :func:`unbind_to_file` – file helpers choosing the format by suffix.
* :func:`read_record` – layered loading: merge several files into one record.
* :data:`_FILE_LOADERS` / :data:`_FILE_DUMPERS` – adapters keyed by suffix.

System Role
-----------
The engines in :mod:`lib_record_binding.application` never log and never
touch the file system; this module is the place that does both.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence, TypeVar

from .adapters.file_loaders.structured import (
    BaseFileDumper,
    BaseFileLoader,
    JSONFileDumper,
    JSONFileLoader,
    TOMLFileLoader,
    YAMLFileDumper,
    YAMLFileLoader,
)
from .application.binding import bind_record, merge_record, new_record
from .application.coercion import type_label
from .application.linking import LinkerOptions, LinkReport
from .application.linking import link as link_graphs
from .application.options import BindOptions
from .application.schema import blank_record, is_record_type
from .application.unbinding import unbind_record
from .domain.errors import InvalidFormat, NotFound, RecordError, TypeMismatchError, UnsupportedError
from .observability import bind_trace_id, log_debug, log_info, make_event

R = TypeVar("R")

_JSON_LOADER = JSONFileLoader()
_YAML_LOADER = YAMLFileLoader()
_JSON_DUMPER = JSONFileDumper()
_YAML_DUMPER = YAMLFileDumper()

# Structured file adapters keyed by suffix.
_FILE_LOADERS: dict[str, BaseFileLoader] = {
    ".toml": TOMLFileLoader(),
    ".json": _JSON_LOADER,
    ".yaml": _YAML_LOADER,
    ".yml": _YAML_LOADER,
}
_FILE_DUMPERS: dict[str, BaseFileDumper] = {
    ".json": _JSON_DUMPER,
    ".yaml": _YAML_DUMPER,
    ".yml": _YAML_DUMPER,
}


class LayerLoadError(RecordError):
    """Raised when a file layer of :func:`read_record` cannot be materialised.

    Why
    ----
    The composition root needs to surface adapter failures using the domain
    error taxonomy so callers can catch a single exception family.

    What
    -----
    Wraps :class:`InvalidFormat` with the offending file path.
    """


def bind(target: Any, data: Mapping[str, Any], options: BindOptions | None = None) -> None:
    """Populate *target* from *data*; absent optional fields reset to defaults.

    Examples
    --------
    >>> from dataclasses import dataclass
    >>> @dataclass
    ... class Service:
    ...     name: str = ""
    ...     port: int = 80
    >>> service = Service()
    >>> bind(service, {"name": "api", "port": "8080"})
    >>> service
    Service(name='api', port=8080)
    """

    bind_record(target, data, options)
    log_debug("record_bound", **make_event("bind", type(target).__name__, {"keys": len(data)}))


def new(record_type: type[R], data: Mapping[str, Any], options: BindOptions | None = None) -> R:
    """Allocate a blank *record_type* and bind *data* into it."""

    instance = new_record(record_type, data, options)
    log_debug("record_bound", **make_event("new", record_type.__name__, {"keys": len(data)}))
    return instance


def merge(target: Any, data: Mapping[str, Any], options: BindOptions | None = None) -> None:
    """Apply the keys present in *data* onto *target*, leaving the rest untouched."""

    merge_record(target, data, options)
    log_debug("record_merged", **make_event("merge", type(target).__name__, {"keys": len(data)}))


def unbind(source: Any, options: BindOptions | None = None) -> dict[str, Any]:
    """Return the raw mapping representation of *source*."""

    data = unbind_record(source, options)
    log_debug("record_unbound", **make_event("unbind", type(source).__name__, {"keys": len(data)}))
    return data


def link(*roots: Any, options: LinkerOptions | None = None) -> LinkReport:
    """Register every identifiable record reachable from *roots* and resolve their references.

    Why
    ----
    Records bound from independent sources (or forming cycles) refer to each
    other by identifier; linking after binding turns those identifiers into
    object references.

    Returns
    -------
    LinkReport
        Number of resolved placeholders and the paths left unresolved (only
        non-empty with ``allow_partial_resolution``).
    """

    report = link_graphs(*roots, options=options)
    log_info(
        "references_linked",
        **make_event("link", None, {"roots": len(roots), "resolved": report.resolved, "unresolved": len(report.unresolved)}),
    )
    return report


def bind_json(target: Any, text: str, options: BindOptions | None = None) -> None:
    """Bind *target* from a JSON document; the top level must be an object."""

    bind(target, _JSON_LOADER.parse(text), options)


def bind_yaml(target: Any, text: str, options: BindOptions | None = None) -> None:
    """Bind *target* from a YAML document; an empty document binds as ``{}``.

    Examples
    --------
    >>> from dataclasses import dataclass
    >>> @dataclass
    ... class Service:
    ...     name: str = ""
    ...     port: int = 80
    >>> service = Service()
    >>> bind_yaml(service, "name: api\\nport: 8080\\n")
    >>> service
    Service(name='api', port=8080)
    """

    bind(target, _YAML_LOADER.parse(text), options)


def new_json(record_type: type[R], text: str, options: BindOptions | None = None) -> R:
    """Return a new *record_type* bound from a JSON document."""

    return new(record_type, _JSON_LOADER.parse(text), options)


def new_yaml(record_type: type[R], text: str, options: BindOptions | None = None) -> R:
    """Return a new *record_type* bound from a YAML document."""

    return new(record_type, _YAML_LOADER.parse(text), options)


def merge_json(target: Any, text: str, options: BindOptions | None = None) -> None:
    """Merge the keys of a JSON document onto *target*."""

    merge(target, _JSON_LOADER.parse(text), options)


def merge_yaml(target: Any, text: str, options: BindOptions | None = None) -> None:
    """Merge the keys of a YAML document onto *target*."""

    merge(target, _YAML_LOADER.parse(text), options)


def unbind_json(source: Any, options: BindOptions | None = None, *, indent: int = 2) -> str:
    """Return *source* as a JSON document.

    Examples
    --------
    >>> from dataclasses import dataclass
    >>> @dataclass
    ... class Service:
    ...     name: str = "api"
    >>> print(unbind_json(Service(), indent=0))
    {
    "name": "api"
    }
    """

    return _JSON_DUMPER.dumps(unbind(source, options), indent=indent)


def unbind_yaml(source: Any, options: BindOptions | None = None, *, indent: int = 2) -> str:
    """Return *source* as a YAML document, keys in declaration order."""

    return _YAML_DUMPER.dumps(unbind(source, options), indent=indent)


def bind_file(target: Any, path: str | Path, options: BindOptions | None = None) -> None:
    """Bind *target* from the JSON, YAML, or TOML file at *path*."""

    bind(target, load_file(path), options)


def new_from_file(record_type: type[R], path: str | Path, options: BindOptions | None = None) -> R:
    """Return a new *record_type* bound from the file at *path*."""

    return new(record_type, load_file(path), options)


def merge_file(target: Any, path: str | Path, options: BindOptions | None = None, *, required: bool = True) -> bool:
    """Merge the file at *path* into *target*.

    Parameters
    ----------
    required:
        When ``False`` a missing file is skipped and ``False`` is returned.

    Returns
    -------
    bool
        ``True`` when the file existed and was merged.
    """

    try:
        data = load_file(path)
    except NotFound:
        if required:
            raise
        log_debug("layer_missing", **make_event("merge", type(target).__name__, {"path": str(path)}))
        return False
    merge(target, data, options)
    return True


def unbind_to_file(source: Any, path: str | Path, options: BindOptions | None = None, *, indent: int = 2) -> None:
    """Write *source* to *path* as JSON or YAML, chosen by suffix."""

    dumper = _FILE_DUMPERS.get(Path(path).suffix.lower())
    if dumper is None:
        raise UnsupportedError(f"record files with suffix {Path(path).suffix!r}", path=str(path))
    dumper.dump(unbind(source, options), str(path), indent=indent)


def load_file(path: str | Path) -> Mapping[str, Any]:
    """Return the raw mapping stored in *path*, choosing the loader by suffix."""

    loader = _FILE_LOADERS.get(Path(path).suffix.lower())
    if loader is None:
        raise UnsupportedError(f"record files with suffix {Path(path).suffix!r}", path=str(path))
    return loader.load(str(path))


def read_record(
    record_type: type[R],
    paths: Iterable[str | Path],
    options: BindOptions | None = None,
    *,
    optional: bool = True,
    prefer: Sequence[str] | None = None,
) -> R:
    """Build a *record_type* from layered files, later files overriding earlier ones.

    Why
    ----
    Applications ship defaults in the record class and let several files
    (system, user, project) override parts of it.

    What
    ----
    Starts from a blank record (declared defaults), then merges every file in
    order. Missing files are skipped when *optional* is true; malformed files
    raise :class:`LayerLoadError`.

    Side Effects
    ------------
    Clears the active trace identifier and emits ``layer_missing`` /
    ``record_merged`` events per file.

    Examples
    --------
    >>> from dataclasses import dataclass
    >>> from tempfile import TemporaryDirectory
    >>> @dataclass
    ... class Service:
    ...     name: str = "api"
    ...     port: int = 80
    >>> tmp = TemporaryDirectory()
    >>> override = Path(tmp.name) / "override.json"
    >>> _ = override.write_text('{"port": 8080}', encoding="utf-8")
    >>> read_record(Service, [Path(tmp.name) / "missing.yaml", override])
    Service(name='api', port=8080)
    >>> tmp.cleanup()
    """

    bind_trace_id(None)
    if not is_record_type(record_type):
        raise TypeMismatchError("dataclass type", type_label(record_type))
    instance = blank_record(record_type)
    for path in _order_paths([str(p) for p in paths], prefer):
        try:
            merge_file(instance, path, options, required=not optional)
        except InvalidFormat as exc:
            log_debug("layer_error", **make_event("read", record_type.__name__, {"path": path, "error": str(exc)}))
            raise LayerLoadError(f"Failed to load record file {path}: {exc}") from exc
    return instance


def _order_paths(paths: Iterable[str], prefer: Sequence[str] | None) -> list[str]:
    """Order ``paths`` so preferred suffixes appear first (stable sort).

    Examples
    --------
    >>> _order_paths(["a.json", "b.toml"], ["toml", "json"])
    ['b.toml', 'a.json']
    """

    path_list = list(paths)
    if not prefer:
        return path_list
    ranking = {suffix.lower().lstrip("."): idx for idx, suffix in enumerate(prefer)}
    return sorted(
        path_list,
        key=lambda p: ranking.get(Path(p).suffix.lower().lstrip("."), len(ranking)),
    )


__all__ = [
    "LayerLoadError",
    "bind",
    "bind_file",
    "bind_json",
    "bind_yaml",
    "link",
    "load_file",
    "merge",
    "merge_file",
    "merge_json",
    "merge_yaml",
    "new",
    "new_from_file",
    "new_json",
    "new_yaml",
    "read_record",
    "unbind",
    "unbind_json",
    "unbind_to_file",
    "unbind_yaml",
]
