"""CLI adapter for ``dokku_forward_auth`` built on ``lib_cli_exit_tools``.

Purpose
-------
Expose the forward-auth trigger to Dokku and to operators. Dokku calls the
``nginx-pre-reload`` console script with a single application name; the
``dokku-forward-auth`` group adds dry runs and diagnostics.

Contents
--------
* :data:`CLICK_CONTEXT_SETTINGS` – shared Click settings ensuring ``-h`` works.
* :func:`cli` – root command wiring settings, logging and traceback handling.
* :func:`cli_info` – prints distribution metadata for quick diagnostics.
* :func:`cli_trigger` – runs the trigger for one app (optionally as dry run).
* :func:`cli_check` – prints protection and injection state as JSON.
* :func:`cli_settings` – prints the effective settings (with provenance).
* :func:`hook` – the single-argument ``nginx-pre-reload`` command.
* :func:`main` / :func:`hook_main` – entry points used by ``console_scripts``.

System Role
-----------
The CLI lives in the outermost layer. It loads settings, calls the composition
root (:mod:`dokku_forward_auth.core`) and never reaches into adapter details.
``lib_cli_exit_tools`` centralises the exit code strategy so every command
behaves consistently inside Dokku's deploy output.
"""

from __future__ import annotations

import json
import sys
from importlib import metadata
from pathlib import Path
from typing import Final, Optional, Sequence

import lib_cli_exit_tools
import rich_click as click

from .core import apply_forward_auth, load_settings, plan_forward_auth, run
from .domain.settings import Settings
from .observability import bind_app, configure_cli_logging

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
_TRACEBACK_SUMMARY_LIMIT: Final[int] = 500
_TRACEBACK_VERBOSE_LIMIT: Final[int] = 10_000
_DISTRIBUTION: Final[str] = "dokku-forward-auth"


def _resolve_version() -> str:
    """Return the installed package version, ``"0.0.0"`` when not installed."""

    try:
        return metadata.version(_DISTRIBUTION)
    except metadata.PackageNotFoundError:
        return "0.0.0"


@click.group(
    help="Inject SSO forward-auth directives into Dokku nginx configs",
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=False,
)
@click.version_option(
    version=_resolve_version(),
    prog_name=_DISTRIBUTION,
    message="dokku-forward-auth version %(version)s",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log every decision to stderr")
@click.option(
    "--config",
    "config_file",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Additional settings file (.toml, .json, .yaml)",
)
@click.pass_context
def cli(ctx: click.Context, traceback: bool, verbose: bool, config_file: Optional[Path]) -> None:
    """Root command storing global options for all subcommands.

    Side Effects
        Mutates ``lib_cli_exit_tools.config.traceback`` and
        ``lib_cli_exit_tools.config.traceback_force_color`` and attaches the
        stderr logging handler.
    """

    ctx.ensure_object(dict)
    ctx.obj["traceback"] = traceback
    ctx.obj["config_file"] = config_file
    lib_cli_exit_tools.config.traceback = traceback
    lib_cli_exit_tools.config.traceback_force_color = traceback
    configure_cli_logging(verbose)


def _settings(ctx: click.Context) -> Settings:
    settings, _provenance = load_settings(ctx.obj.get("config_file"))
    return settings


@cli.command("info", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_info() -> None:
    """Print basic distribution metadata so users can confirm installation."""

    try:
        meta = metadata.metadata(_DISTRIBUTION)
    except metadata.PackageNotFoundError:
        click.echo(f"{_DISTRIBUTION} (metadata unavailable)")
        return
    click.echo(f"Info for {meta.get('Name', _DISTRIBUTION)}:")
    click.echo(f"  Version         : {meta.get('Version', _resolve_version())}")
    click.echo(f"  Requires-Python : {meta.get('Requires-Python', '>=3.10')}")
    summary = meta.get("Summary")
    if summary:
        click.echo(f"  Summary         : {summary}")
    for entry in meta.get_all("Project-URL") or []:
        click.echo(f"  {entry}")


@cli.command("trigger", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("app")
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Print the config that would be written instead of writing it",
)
@click.pass_context
def cli_trigger(ctx: click.Context, app: str, dry_run: bool) -> None:
    """Inject forward-auth directives into APP's nginx.conf when APP is protected.

    Prints the outcome (``applied``, ``unchanged``, ``not-protected`` ...).
    With ``--dry-run`` the rewritten config is printed and nothing is written.
    """

    settings = _settings(ctx)
    if not dry_run:
        click.echo(apply_forward_auth(app, settings).value)
        return
    bind_app(app.strip() or None)
    try:
        plan = plan_forward_auth(app, settings)
    finally:
        bind_app(None)
    if plan.result is not None and plan.result.changed:
        click.echo(plan.result.text, nl=False)
        return
    click.echo(plan.outcome.value)


@cli.command("check", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("app")
@click.option("--indent", type=int, default=2, show_default=True, help="JSON indent size")
@click.pass_context
def cli_check(ctx: click.Context, app: str, indent: int) -> None:
    """Print APP's protection resolution and injection state as JSON."""

    plan = plan_forward_auth(app, _settings(ctx))
    click.echo(json.dumps(plan.as_dict(), indent=indent))


@cli.command("settings", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option(
    "--provenance/--no-provenance",
    default=False,
    help="Include the layer that supplied each setting",
)
@click.option("--indent", type=int, default=2, show_default=True, help="JSON indent size")
@click.pass_context
def cli_settings(ctx: click.Context, provenance: bool, indent: int) -> None:
    """Print the effective settings as JSON."""

    settings, meta = load_settings(ctx.obj.get("config_file"))
    if provenance:
        click.echo(json.dumps({"settings": settings.as_dict(), "provenance": meta}, indent=indent))
        return
    click.echo(json.dumps(settings.as_dict(), indent=indent))


@click.command("nginx-pre-reload", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("app", required=False, default="")
@click.pass_context
def hook(ctx: click.Context, app: str) -> None:
    """Dokku ``nginx-pre-reload`` trigger: protect APP's nginx.conf if needed.

    Exits ``0`` for every no-op and for a successful rewrite.
    """

    configure_cli_logging(False)
    settings, _provenance = load_settings()
    ctx.exit(run(app, settings))


def _run(
    command: click.Command,
    argv: Optional[Sequence[str]],
    prog_name: str,
    *,
    restore_traceback: bool,
) -> int:
    """Execute *command* with shared exit handling and return the exit code."""

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    previous_force_color = getattr(lib_cli_exit_tools.config, "traceback_force_color", False)
    try:
        try:
            return lib_cli_exit_tools.run_cli(
                command,
                argv=list(argv) if argv is not None else None,
                prog_name=prog_name,
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


def main(argv: Optional[Sequence[str]] = None, *, restore_traceback: bool = True) -> int:
    """Entry point of the ``dokku-forward-auth`` console script."""

    return _run(cli, argv, _DISTRIBUTION, restore_traceback=restore_traceback)


def hook_main(argv: Optional[Sequence[str]] = None, *, restore_traceback: bool = True) -> int:
    """Entry point of the ``nginx-pre-reload`` console script."""

    return _run(hook, argv, "nginx-pre-reload", restore_traceback=restore_traceback)


if __name__ == "__main__":  # pragma: no cover - exercised via console entry point
    raise SystemExit(main(sys.argv[1:]))
