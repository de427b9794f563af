"""CLI entry point for dsl-meta.

Invoked as::

    dslmeta [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m dslmeta.cli.main

Every command except ``version`` loads declarations first. Module names
are given as arguments, or read from a ``dslmeta.yaml`` project file
(``--config``, or the file in the current directory when no module is
named).

Commands
--------
schema      Generate the relational schema description
show        List registered descriptors, or the fields of one
validate    Run structural checks over the declarations
check       Compare the declarations against a checked-in schema file
dump        Serialize the merged registry for UI renderers
version     Show version information
"""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, NoReturn

import click
import yaml
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from dslmeta.config import CONFIG_FILENAME, ProjectConfig
from dslmeta.core.descriptors import EntityKind
from dslmeta.core.errors import MetadataError

if TYPE_CHECKING:
    from dslmeta.registry.store import MetadataStore

console = Console()
err_console = Console(stderr=True)


def _severity_color(severity_name: str) -> str:
    """Map a DiagnosticSeverity name to a Rich color string."""
    colors = {
        "ERROR": "red",
        "WARNING": "yellow",
        "INFORMATION": "blue",
        "HINT": "dim",
    }
    return colors.get(severity_name, "white")


def _fail(message: str) -> NoReturn:
    err_console.print(f"[red]Error:[/red] {message}")
    sys.exit(1)


def _source_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the options shared by every command that loads declarations."""
    func = click.argument("modules", nargs=-1)(func)
    func = click.option(
        "--extension", "-e", "extensions", multiple=True,
        help="Extension module, imported after all definition modules (repeatable)",
    )(func)
    func = click.option(
        "--path", "-p", "paths", multiple=True, type=click.Path(file_okay=False),
        help="Directory to add to the import path (repeatable)",
    )(func)
    func = click.option(
        "--config", "-c", "config_path", default=None, type=click.Path(),
        help=f"Project file (defaults to ./{CONFIG_FILENAME} when no module is given)",
    )(func)
    return func


def _project(config_path: str | None, modules: tuple[str, ...]) -> ProjectConfig:
    if config_path is None and not modules and Path(CONFIG_FILENAME).is_file():
        config_path = CONFIG_FILENAME
    if config_path is None:
        return ProjectConfig()
    try:
        return ProjectConfig.load(config_path)
    except FileNotFoundError:
        _fail(f"Config file not found: {config_path}")
    except (ValueError, yaml.YAMLError) as exc:
        _fail(f"Invalid config {config_path}: {exc}")


def _load_or_exit(
    modules: tuple[str, ...],
    extensions: tuple[str, ...],
    paths: tuple[str, ...],
    config_path: str | None,
) -> tuple["MetadataStore", ProjectConfig]:
    """Import declarations into the process-wide store, exiting on error."""
    from dslmeta.registry.loader import load_definitions
    from dslmeta.registry.store import default_store

    project = _project(config_path, modules)
    all_modules = project.modules + modules
    all_extensions = project.extensions + extensions
    if not all_modules:
        _fail(f"No modules given; pass module names or provide {CONFIG_FILENAME}")

    for entry in (str(project.root), *paths):
        if entry not in sys.path:
            sys.path.insert(0, entry)

    store = default_store()
    store.configure(project.store_config())
    try:
        load_definitions(all_modules, all_extensions, store=store, finalize=False)
    except ImportError as exc:
        _fail(f"Cannot import module: {exc}")
    except MetadataError as exc:
        _fail(str(exc))
    return store, project


def _emit(text: str, lang: str, output: str | None, what: str) -> None:
    if output:
        Path(output).parent.mkdir(parents=True, exist_ok=True)
        Path(output).write_text(text, encoding="utf-8")
        console.print(f"[green]{what} written to[/green] {output}")
    else:
        console.print(Syntax(text, lang, line_numbers=True))


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="dsl-meta")
def cli() -> None:
    """Declarative metadata toolkit: registry, extensions, schema generation."""


# ---------------------------------------------------------------------------
# version command
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from dslmeta import __version__

    table = Table(show_header=False, box=None)
    table.add_row("[bold]dsl-meta[/bold]", f"v{__version__}")
    table.add_row("Python", f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}")
    table.add_row("Platform", sys.platform)
    console.print(table)


# ---------------------------------------------------------------------------
# schema command
# ---------------------------------------------------------------------------


@cli.command(name="schema")
@_source_options
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "yaml"], case_sensitive=False),
    default=None,
    help="Output format (defaults to the project setting, then json)",
)
@click.option("--output", "-o", default=None, help="Output file path (defaults to stdout)")
def schema_command(
    modules: tuple[str, ...],
    extensions: tuple[str, ...],
    paths: tuple[str, ...],
    config_path: str | None,
    output_format: str | None,
    output: str | None,
) -> None:
    """Generate the relational schema description.

    MODULES are dotted names of modules declaring entities.
    """
    from dslmeta.schema import generate_schema

    store, project = _load_or_exit(modules, extensions, paths, config_path)
    fmt = (output_format or project.schema_format).lower()
    try:
        description = generate_schema(store)
    except MetadataError as exc:
        _fail(str(exc))

    text = description.to_json() if fmt == "json" else description.to_yaml()
    _emit(text, fmt, output, "Schema")


# ---------------------------------------------------------------------------
# show command
# ---------------------------------------------------------------------------


@cli.command(name="show")
@_source_options
@click.option("--entity", "entity_id", default=None, help="Show the fields of one descriptor")
def show_command(
    modules: tuple[str, ...],
    extensions: tuple[str, ...],
    paths: tuple[str, ...],
    config_path: str | None,
    entity_id: str | None,
) -> None:
    """List registered descriptors, or the fields of one.

    MODULES are dotted names of modules declaring entities.
    """
    from dslmeta.schema import table_name

    store, project = _load_or_exit(modules, extensions, paths, config_path)
    try:
        descriptors = store.snapshot()
        descriptor = store.get(entity_id) if entity_id else None
    except MetadataError as exc:
        _fail(str(exc))

    if descriptor is None:
        table = Table(title=project.name or "Registered metadata")
        table.add_column("Identifier", style="bold")
        table.add_column("Kind")
        table.add_column("Table")
        table.add_column("Fields", justify="right")
        table.add_column("Extensions", justify="right")
        table.add_column("Origin", style="dim")
        for d in descriptors:
            table.add_row(
                d.identifier,
                d.kind.value,
                table_name(d) if d.kind is EntityKind.ENTITY else "",
                str(len(d.fields)),
                str(len(d.extension_fields)),
                d.origin or "",
            )
        console.print(table)
        console.print(f"\n[bold]{len(descriptors)}[/bold] descriptor(s)")
        return

    table = Table(title=f"{descriptor.kind.value} {descriptor.identifier}")
    table.add_column("Field", style="bold")
    table.add_column("Type")
    table.add_column("Nullable")
    table.add_column("Key")
    table.add_column("Origin", style="dim")
    for f in descriptor.fields:
        table.add_row(
            f.name,
            f.type_name,
            "yes" if f.nullable else "",
            "pk" if f.primary_key else "",
            f"[cyan]{f.origin}[/cyan]" if f.is_extension else (descriptor.origin or ""),
        )
    console.print(table)
    if descriptor.actions:
        console.print("[bold]Actions:[/bold] " + ", ".join(descriptor.actions))


# ---------------------------------------------------------------------------
# validate command
# ---------------------------------------------------------------------------


@cli.command(name="validate")
@_source_options
@click.option("--strict", is_flag=True, default=False, help="Treat warnings as errors")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print diagnostics as JSON")
def validate_command(
    modules: tuple[str, ...],
    extensions: tuple[str, ...],
    paths: tuple[str, ...],
    config_path: str | None,
    strict: bool,
    as_json: bool,
) -> None:
    """Run structural checks over the declarations.

    MODULES are dotted names of modules declaring entities.
    """
    from dslmeta.validator import Validator

    store, _ = _load_or_exit(modules, extensions, paths, config_path)
    diagnostics = Validator(strict=strict).validate(store)
    errors = [d for d in diagnostics if d.is_error]

    if as_json:
        click.echo(json.dumps([d.to_dict() for d in diagnostics], indent=2))
        sys.exit(1 if errors else 0)

    if not diagnostics:
        console.print(f"[green]OK[/green] {len(store)} descriptor(s), no issues found")
        sys.exit(0)

    warnings = [d for d in diagnostics if not d.is_error]

    table = Table(title="Validation", show_lines=True)
    table.add_column("Severity", style="bold", min_width=10)
    table.add_column("Code", min_width=8)
    table.add_column("Location", min_width=10)
    table.add_column("Message")

    for d in diagnostics:
        color = _severity_color(d.severity.name)
        table.add_row(
            f"[{color}]{d.severity.name}[/{color}]",
            d.code,
            str(d.location),
            d.message + (f"\n[dim]hint: {d.suggestion}[/dim]" if d.suggestion else ""),
        )

    console.print(table)
    console.print(
        f"\n[bold]Summary:[/bold] {len(errors)} error(s), {len(warnings)} warning(s)"
    )

    if errors:
        sys.exit(1)


# ---------------------------------------------------------------------------
# check command
# ---------------------------------------------------------------------------


@cli.command(name="check")
@_source_options
@click.option(
    "--against", "against", default=None, type=click.Path(),
    help="Checked-in schema file (defaults to schema.output from the project file)",
)
def check_command(
    modules: tuple[str, ...],
    extensions: tuple[str, ...],
    paths: tuple[str, ...],
    config_path: str | None,
    against: str | None,
) -> None:
    """Compare the declarations against a checked-in schema file.

    Exits with status 1 when the file is missing or out of date.
    """
    from dslmeta.schema import diff_schema, generate_schema

    store, project = _load_or_exit(modules, extensions, paths, config_path)
    target = Path(against) if against else project.schema_path
    if target is None:
        _fail("No schema file given; pass --against or set schema.output in the project file")
    if not target.is_file():
        _fail(f"Schema file not found: {target}")

    text = target.read_text(encoding="utf-8")
    try:
        recorded = json.loads(text) if target.suffix == ".json" else yaml.safe_load(text)
    except (ValueError, yaml.YAMLError) as exc:
        _fail(f"Cannot parse {target}: {exc}")
    try:
        current = generate_schema(store)
    except MetadataError as exc:
        _fail(str(exc))

    changes = diff_schema(recorded or {}, current)
    if not changes:
        console.print(f"[green]OK[/green] {target} is in sync with the declarations")
        sys.exit(0)

    console.print(f"[bold]Schema drift:[/bold] {target}\n")
    for change in changes:
        line = str(change)
        if line.startswith("[+]"):
            console.print(f"[green]{line}[/green]")
        elif line.startswith("[-]"):
            console.print(f"[red]{line}[/red]")
        else:
            console.print(f"[yellow]{line}[/yellow]")

    console.print(f"\n[bold]{len(changes)}[/bold] change(s) total")
    sys.exit(1)


# ---------------------------------------------------------------------------
# dump command
# ---------------------------------------------------------------------------


@cli.command(name="dump")
@_source_options
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "yaml"], case_sensitive=False),
    default="json",
    help="Output format",
)
@click.option("--output", "-o", default=None, help="Output file path (defaults to stdout)")
def dump_command(
    modules: tuple[str, ...],
    extensions: tuple[str, ...],
    paths: tuple[str, ...],
    config_path: str | None,
    output_format: str,
    output: str | None,
) -> None:
    """Serialize the merged registry for UI renderers.

    MODULES are dotted names of modules declaring entities.
    """
    from dslmeta.registry import MetadataSerializer

    store, _ = _load_or_exit(modules, extensions, paths, config_path)
    serializer = MetadataSerializer()
    try:
        text = serializer.to_json(store) if output_format == "json" else serializer.to_yaml(store)
    except MetadataError as exc:
        _fail(str(exc))
    _emit(text, output_format, output, "Metadata")


if __name__ == "__main__":
    cli()
