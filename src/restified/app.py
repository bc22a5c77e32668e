"""Typer application and CLI entry point for restified.

The CLI is a thin inspection surface over the library:

* ``restified resolve TEMPLATE`` -- resolve a template against variables
  given on the command line or in a JSON file.
* ``restified builtins`` -- list the registered ``$namespace`` functions.
* ``restified config`` -- print the effective configuration.

:func:`main` is the console-script entry point declared in
``pyproject.toml``. Sub-commands report :class:`~restified.exceptions.RestifiedError`
through :mod:`restified.output` and exit with the error's ``exit_code``.

See Also:
    :mod:`restified.config`: Configuration precedence.
    :mod:`restified.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

import typer

from restified import __version__
from restified.exceptions import InvalidUsageError, RestifiedError
from restified.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="restified",
    help="Resolve API-test templates and inspect restified runtime state.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"restified {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="Project config file (default: ./restified.json)."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~restified.output.OutputManager`, turns on
    DEBUG logging for ``--verbose`` and stores the config path in
    ``ctx.obj``.
    """
    from restified.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(levelname)s %(name)s: %(message)s",
            force=True,
        )

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #


def _fail(exc: RestifiedError) -> typer.Exit:
    from restified.output import error

    error(str(exc))
    return typer.Exit(code=exc.exit_code)


def _load_config(ctx: typer.Context) -> Any:
    from restified.config import resolve_config

    config_path = (ctx.obj or {}).get("config_path")
    return resolve_config(config_path)


def _discover_builtins(registry: Any, config: Any) -> None:
    """Load entry-point namespaces, reporting what was loaded and what was skipped."""
    from restified.output import info, warning

    loaded = registry.discover(
        enabled=config.builtins.enabled, disabled=config.builtins.disabled
    )
    if loaded:
        info(f"Loaded builtin namespaces: {', '.join('$' + name for name in loaded)}")
    for name, reason in sorted(registry.failures.items()):
        warning(f"Skipped builtin namespace '${name}': {reason}")


def _parse_value(raw: str) -> Any:
    """Parse *raw* as JSON if possible, returning the raw string on failure."""
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return raw


def parse_assignments(items: Optional[list[str]]) -> dict[str, Any]:
    """Turn ``["k=v", ...]`` into a dict, JSON-decoding each value when possible.

    Raises:
        InvalidUsageError: If an item has no ``=`` or an empty key.
    """
    result: dict[str, Any] = {}
    for item in items or []:
        key, sep, raw = item.partition("=")
        key = key.strip()
        if not sep or not key:
            raise InvalidUsageError(f"Expected KEY=VALUE, got {item!r}")
        result[key] = _parse_value(raw)
    return result


def load_vars_file(path: Path) -> dict[str, Any]:
    """Read a JSON variables file.

    A file whose top level has ``global`` and/or ``local`` objects is read as
    a scope snapshot; any other object is treated as global bindings.

    Returns:
        ``{"global": {...}, "local": {...}}``.

    Raises:
        InvalidUsageError: If the file is missing, not JSON, or not an object.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise InvalidUsageError(f"Cannot read variables file {path}: {exc}") from exc
    except (json.JSONDecodeError, ValueError) as exc:
        raise InvalidUsageError(f"Invalid JSON in variables file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise InvalidUsageError(f"Variables file {path} must contain a JSON object")

    if data and set(data) <= {"global", "local"} and all(isinstance(v, dict) for v in data.values()):
        return {"global": data.get("global", {}), "local": data.get("local", {})}
    return {"global": data, "local": {}}


# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #


@app.command("resolve")
def resolve_command(
    ctx: typer.Context,
    template: str = typer.Argument(help="Template containing {{...}} placeholders."),
    local_vars: Optional[list[str]] = typer.Option(
        None, "--var", help="Local variable as KEY=VALUE (repeatable)."
    ),
    global_vars: Optional[list[str]] = typer.Option(
        None, "--global", help="Global variable as KEY=VALUE (repeatable)."
    ),
    vars_file: Optional[Path] = typer.Option(
        None, "--vars-file", help="JSON file with variables."
    ),
) -> None:
    """Resolve TEMPLATE and print the result.

    Values are parsed as JSON when possible, so ``--var user='{"id": 7}'``
    binds an object and ``{{user.id}}`` resolves to ``7``.

    Example::

        restified resolve "{{base}}/users/{{id}}" --global base=https://api.example.com --var id=42
        restified resolve "{{$random.uuid}}"
    """
    from restified.manager import StorageManager
    from restified.output import OutputFormat, debug, get_output, print_data, print_json

    try:
        config = _load_config(ctx)
        with StorageManager(config) as storage:
            _discover_builtins(storage.registry, config)
            if vars_file is not None:
                scopes = load_vars_file(vars_file)
                storage.store.set_global_batch(scopes["global"])
                storage.store.set_local_batch(scopes["local"])
            storage.store.set_global_batch(parse_assignments(global_vars))
            storage.store.set_local_batch(parse_assignments(local_vars))

            debug(f"Variables: {', '.join(storage.store.get_keys()) or '(none)'}")
            result = storage.resolve(template)
    except RestifiedError as exc:
        raise _fail(exc) from exc

    if get_output().format == OutputFormat.JSON:
        print_json({"template": template, "result": result})
    else:
        print_data(result)


@app.command("builtins")
def builtins_command(ctx: typer.Context) -> None:
    """List the registered builtin namespaces.

    Example::

        restified builtins
        restified --json builtins
    """
    from restified.builtins import default_registry
    from restified.output import print_table

    try:
        config = _load_config(ctx)
        registry = default_registry(config.builtins)
        _discover_builtins(registry, config)
    except RestifiedError as exc:
        raise _fail(exc) from exc

    rows = [[f"${row['name']}", row["description"]] for row in registry.describe()]
    print_table(["Namespace", "Description"], rows, title="Builtin namespaces")


@app.command("config")
def config_command(ctx: typer.Context) -> None:
    """Print the effective configuration as JSON.

    Example::

        restified config
        RESTIFIED_CACHE_MAX_SIZE=10 restified config
    """
    from restified.output import print_json

    try:
        config = _load_config(ctx)
    except RestifiedError as exc:
        raise _fail(exc) from exc
    print_json(config.model_dump(mode="json"))


def main() -> None:
    """CLI entry point invoked by the ``restified`` console script.

    Unhandled :class:`~restified.exceptions.RestifiedError` instances cause
    a clean exit with the error's ``exit_code``; any other exception exits
    with :data:`~restified.exit_codes.EXIT_GENERIC_FAILURE`.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from restified.output import error

        if isinstance(exc, RestifiedError):
            error(str(exc))
            sys.exit(exc.exit_code)
        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
