"""CLI adapter for ``lib_record_binding`` built on ``lib_cli_exit_tools``.

Purpose
-------
Expose the binding engine on the command line so operators can check how a
record class sees a document without writing Python code: parse directives,
preview external key names, bind a file and inspect the result, or normalise
a file through a bind/unbind round trip.

Contents
--------
* :data:`CLICK_CONTEXT_SETTINGS` – shared Click settings ensuring ``-h`` works.
* :func:`cli` – root command that wires global traceback handling into
  ``lib_cli_exit_tools``.
* :func:`cli_info` – prints distribution metadata for quick diagnostics.
* :func:`cli_snake_case` / :func:`cli_directive` – expose the directive
  helpers.
* :func:`cli_inspect` / :func:`cli_normalize` – bind a file into a record
  class named as ``module:Class``.
* :func:`main` – entry point used by ``console_scripts`` registration.

System Role
-----------
The CLI lives in the outermost layer. It invokes the composition root and the
inspection view and never reaches into the walkers directly.
``lib_cli_exit_tools`` centralises the exit code strategy so all commands
behave consistently across shells and CI.
"""

from __future__ import annotations

import dataclasses
import importlib
import json
import sys
from importlib import metadata
from pathlib import Path
from typing import Final, Optional, Sequence

import lib_cli_exit_tools
import rich_click as click

from .application.inspection import inspect_record
from .application.schema import is_record_type
from .core import new_from_file, unbind_json, unbind_yaml
from .domain.directives import parse_directive, to_snake_case

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
_TRACEBACK_SUMMARY_LIMIT: Final[int] = 500
_TRACEBACK_VERBOSE_LIMIT: Final[int] = 10_000

FORMAT_CHOICES: Final[tuple[str, ...]] = ("json", "yaml")


def _resolve_version() -> str:
    """Return the installed package version, ``"0.0.0"`` when metadata is missing."""

    try:
        return metadata.version("lib_record_binding")
    except metadata.PackageNotFoundError:
        return "0.0.0"


@click.group(
    help="Bind, unbind and inspect typed records",
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=False,
)
@click.version_option(
    version=_resolve_version(),
    prog_name="lib_record_binding",
    message="lib_record_binding version %(version)s",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.pass_context
def cli(ctx: click.Context, traceback: bool) -> None:
    """Root command configuring traceback handling for all subcommands.

    Side Effects
        Mutates ``lib_cli_exit_tools.config.traceback`` and
        ``lib_cli_exit_tools.config.traceback_force_color``.
    """

    ctx.ensure_object(dict)
    ctx.obj["traceback"] = traceback
    lib_cli_exit_tools.config.traceback = traceback
    lib_cli_exit_tools.config.traceback_force_color = traceback


@cli.command("info", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_info() -> None:
    """Print basic distribution metadata so users can confirm installation."""

    try:
        meta = metadata.metadata("lib_record_binding")
    except metadata.PackageNotFoundError:
        click.echo("lib_record_binding (metadata unavailable)")
        return
    click.echo(f"Info for {meta.get('Name', 'lib_record_binding')}:")
    click.echo(f"  Version         : {meta.get('Version', _resolve_version())}")
    click.echo(f"  Requires-Python : {meta.get('Requires-Python', '>=3.10')}")
    summary = meta.get("Summary")
    if summary:
        click.echo(f"  Summary         : {summary}")


@cli.command("snake-case", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("names", nargs=-1, required=True)
def cli_snake_case(names: Sequence[str]) -> None:
    """Print the default external key for each attribute name.

    Examples
    --------
    >>> from click.testing import CliRunner
    >>> result = CliRunner().invoke(cli, ["snake-case", "HTTPServer"])
    >>> result.output.strip()
    'http_server'
    """

    for name in names:
        click.echo(to_snake_case(name))


@cli.command("directive", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("text")
@click.option("--indent", type=int, default=None, help="Pretty-print JSON output with the provided indent size")
def cli_directive(text: str, indent: Optional[int]) -> None:
    """Parse a field directive and print the result as JSON."""

    directive = parse_directive(text)
    click.echo(json.dumps(dataclasses.asdict(directive), indent=indent))


@cli.command("inspect", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option("--record", "record_spec", required=True, help="Record class as module:Class")
@click.option(
    "--source",
    type=click.Path(path_type=Path, exists=True, file_okay=True, dir_okay=False, readable=True),
    required=True,
    help="JSON, YAML or TOML file to bind",
)
@click.option("--show-secrets/--hide-secrets", default=False, help="Reveal +secret fields", show_default=True)
@click.option("--max-depth", type=click.IntRange(min=1), default=10, show_default=True, help="Nesting limit")
def cli_inspect(record_spec: str, source: Path, show_secrets: bool, max_depth: int) -> None:
    """Bind *source* into the record class and print the inspection view."""

    record_type = _load_record_type(record_spec)
    record = new_from_file(record_type, source)
    click.echo(inspect_record(record, show_secrets=show_secrets, max_depth=max_depth))


@cli.command("normalize", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option("--record", "record_spec", required=True, help="Record class as module:Class")
@click.option(
    "--source",
    type=click.Path(path_type=Path, exists=True, file_okay=True, dir_okay=False, readable=True),
    required=True,
    help="JSON, YAML or TOML file to bind",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(FORMAT_CHOICES, case_sensitive=False),
    default="json",
    show_default=True,
    help="Output format",
)
@click.option("--indent", type=int, default=2, show_default=True, help="Indent size of the output document")
def cli_normalize(record_spec: str, source: Path, output_format: str, indent: int) -> None:
    """Bind *source* into the record class and print it unbound again.

    Defaults are filled in, unknown keys dropped (unless the record captures
    them) and values rendered canonically.
    """

    record_type = _load_record_type(record_spec)
    record = new_from_file(record_type, source)
    if output_format.lower() == "yaml":
        click.echo(unbind_yaml(record, indent=indent), nl=False)
        return
    click.echo(unbind_json(record, indent=indent))


def _load_record_type(spec: str) -> type:
    """Import the dataclass named by ``module:Qual.Name``."""

    module_name, _, qualname = spec.partition(":")
    if not module_name or not qualname:
        raise click.BadParameter("expected module:Class", param_hint="--record")
    try:
        target: object = importlib.import_module(module_name)
    except ImportError as exc:
        raise click.BadParameter(f"cannot import {module_name}: {exc}", param_hint="--record") from exc
    for part in qualname.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise click.BadParameter(f"{module_name} has no attribute {qualname}", param_hint="--record") from exc
    if not is_record_type(target):
        raise click.BadParameter(f"{spec} is not a dataclass", param_hint="--record")
    return target  # type: ignore[return-value]


def main(argv: Optional[Sequence[str]] = None, *, restore_traceback: bool = True) -> int:
    """Execute the CLI with shared exit handling and return the exit code."""

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    previous_force_color = getattr(lib_cli_exit_tools.config, "traceback_force_color", False)
    try:
        try:
            return lib_cli_exit_tools.run_cli(
                cli,
                argv=list(argv) if argv is not None else None,
                prog_name="lib_record_binding",
            )
        except BaseException as exc:  # noqa: BLE001 - funnel through shared printers
            lib_cli_exit_tools.print_exception_message(
                trace_back=lib_cli_exit_tools.config.traceback,
                length_limit=(
                    _TRACEBACK_VERBOSE_LIMIT if lib_cli_exit_tools.config.traceback else _TRACEBACK_SUMMARY_LIMIT
                ),
            )
            return lib_cli_exit_tools.get_system_exit_code(exc)
    finally:
        if restore_traceback:
            lib_cli_exit_tools.config.traceback = previous_traceback
            lib_cli_exit_tools.config.traceback_force_color = previous_force_color


if __name__ == "__main__":  # pragma: no cover - exercised via console entry point
    raise SystemExit(main(sys.argv[1:]))
