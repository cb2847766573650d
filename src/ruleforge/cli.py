"""RuleForge CLI entry point."""

import importlib
import json
import logging
from pathlib import Path

import click

from ruleforge.directives import core_directives
from ruleforge.exceptions import RuleForgeError
from ruleforge.loader import ConfigurationLoader
from ruleforge.schema import validate_config_dir
from ruleforge.types import Event

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _import_modules(modules: tuple[str, ...]) -> None:
    """Import modules that register callables referenced as ``"@name"``."""
    for module in modules:
        try:
            importlib.import_module(module)
        except ImportError as e:
            click.echo(click.style(f"Cannot import {module}: {e}", fg="red"), err=True)
            raise SystemExit(1)


def _parse_params(pairs: tuple[str, ...]) -> dict:
    """``key=value`` pairs; a repeated key collects its values in a list."""
    params: dict = {}
    for pair in pairs:
        if "=" not in pair:
            raise click.BadParameter(f"expected key=value, got {pair!r}", param_hint="-p")
        key, value = pair.split("=", 1)
        if key in params:
            existing = params[key]
            params[key] = (existing if isinstance(existing, list) else [existing]) + [value]
        else:
            params[key] = value
    return params


module_option = click.option(
    "--module",
    "-m",
    "modules",
    multiple=True,
    help="Module to import first, registering callables used by the configuration.",
)


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging level.",
)
def cli(log_level: str):
    """RuleForge: declarative parameter validation CLI."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("path", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Treat warnings as errors.",
)
@module_option
def check(path: Path, strict: bool, modules: tuple[str, ...]):
    """Check configuration YAML files against the schema, then load them."""
    _import_modules(modules)

    # ── Schema (JSON Schema) validation ─────────────────────────────────────
    schema_issues = validate_config_dir(path, strict=strict)
    errors = [i for i in schema_issues if i.severity == "error"]
    warnings = [i for i in schema_issues if i.severity == "warning"]

    for issue in schema_issues:
        colour = "red" if issue.severity == "error" else "yellow"
        click.echo(click.style(str(issue), fg=colour))

    if errors:
        click.echo(
            click.style(
                f"\n{len(errors)} schema error(s) found"
                + (f", {len(warnings)} warning(s)" if warnings else ""),
                fg="red",
                bold=True,
            )
        )
        raise SystemExit(1)

    if warnings:
        click.echo(click.style(f"{len(warnings)} warning(s) found.", fg="yellow"))

    # ── Semantic (loader) validation ─────────────────────────────────────────
    loader = ConfigurationLoader(path)
    try:
        configuration = loader.load()
        # Normalizing surfaces unknown directives, mixins and alias clashes
        configuration.new().normalize()
    except RuleForgeError as e:
        click.echo(click.style(f"\nSemantic validation failed: {e}", fg="red"), err=True)
        raise SystemExit(1)

    fields = loader.list_fields()
    click.echo(f"\nLoaded {len(fields)} field(s):")
    for name in fields:
        field = configuration.fields[name]
        click.echo(f"  ✓ {name} ({len(field.directives) - 1} directive(s))")

    click.echo(click.style("\nConfiguration is valid.", fg="green", bold=True))


@cli.command()
@click.argument("path", type=click.Path(exists=True, path_type=Path))
@click.option("--param", "-p", "pairs", multiple=True, help="Parameter as key=value.")
@click.option("--field", "-f", "fields", multiple=True, help="Field to validate.")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON output.")
@module_option
def validate(
    path: Path,
    pairs: tuple[str, ...],
    fields: tuple[str, ...],
    as_json: bool,
    modules: tuple[str, ...],
):
    """Validate parameters against a configuration."""
    _import_modules(modules)
    params = _parse_params(pairs)

    try:
        context = ConfigurationLoader(path).load().new(params)
        valid = context.validate(*fields)
    except RuleForgeError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        raise SystemExit(1)

    if as_json:
        click.echo(
            json.dumps(
                {
                    "valid": valid,
                    "errors": context.errors(),
                    "fields": context.error_fields(),
                },
                indent=2,
            )
        )
    elif valid:
        click.echo(click.style("valid", fg="green"))
    else:
        for message in context.errors():
            click.echo(click.style(message, fg="red"))

    if not valid:
        raise SystemExit(1)


@cli.command()
def directives():
    """List the core directives."""
    click.echo(f"{'NAME':<14} {'MIXIN':<6} {'FIELD':<6} {'MULTI':<6} DEPENDS ON")
    for directive in core_directives():
        depends = sorted(
            {name for event in Event for name in directive.depends_on(event)}
        )
        click.echo(
            f"{directive.name:<14} "
            f"{'yes' if directive.mixin else '-':<6} "
            f"{'yes' if directive.field else '-':<6} "
            f"{'yes' if directive.multi else '-':<6} "
            f"{', '.join(depends) if len(depends) <= 3 else f'{len(depends)} directives'}"
        )
