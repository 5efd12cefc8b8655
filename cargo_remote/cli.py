"""Command line interface.

Cargo runs external subcommands as ``cargo-remote remote <args>``, so every
command lives under the ``remote`` group::

    cargo remote configure
    cargo remote begin --preinstall protobuf-compiler
    cargo remote build -c release -- --release
    cargo remote end

Errors derived from ``CargoRemoteError`` are printed and mapped to an exit
code per command family: configuration 2, sessions 3, execution 4. A remote
command that ran exits with its own status.
"""

from __future__ import annotations

import os
import shlex
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import tomli_w
import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cargo_remote.config.store import ConfigStore
from cargo_remote.constants import (
    DEFAULT_BUILD_ENV,
    DEFAULT_MANIFEST,
    DEFAULT_TOOLCHAIN,
    EXIT_CONFIG,
    EXIT_EXEC,
    EXIT_SESSION,
    READY_SENTINEL,
)
from cargo_remote.core.exceptions import CargoRemoteError, ConfigError
from cargo_remote.infra.ssh import SubprocessRunner
from cargo_remote.logging import LogConfig, configure_logging
from cargo_remote.prompt import RichPrompter, choose
from cargo_remote.remote import ExecOptions, metadata_dir, project_key, remote_exec
from cargo_remote.session import StatusReport, begin_session, end_session, status
from cargo_remote.state import StateStore
from cargo_remote.wizard import configure as configure_wizard

app = typer.Typer(name="cargo-remote", help="Cargo subcommand for remote builds.")

remote_app = typer.Typer(
    help="Build, run and clean the project on a remote server.",
    no_args_is_help=True,
)
app.add_typer(remote_app, name="remote")

config_app = typer.Typer(help="Inspect and change saved configurations.", no_args_is_help=True)
remote_app.add_typer(config_app, name="config")

console = Console()
err_console = Console(stderr=True)

# Everything after the first positional argument goes to cargo untouched.
PASSTHROUGH = {"ignore_unknown_options": True, "allow_interspersed_args": False}


@contextmanager
def _exit_on_error(code: int) -> Iterator[None]:
    try:
        yield
    except CargoRemoteError as e:
        logger.bind(component="cli").opt(exception=e).debug("Command failed")
        err_console.print(f"[bold red]error:[/bold red] {escape(str(e))}", highlight=False)
        raise typer.Exit(code=code) from e


def _config_store() -> ConfigStore:
    return ConfigStore.default()


def _state_store() -> StateStore:
    return StateStore.default()


@app.callback()
def _root() -> None:
    """Cargo subcommand for remote builds."""


@remote_app.callback()
def _remote(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level."),
) -> None:
    configure_logging(LogConfig.from_env(verbose=verbose))


# =============================================================================
# Configuration
# =============================================================================


@remote_app.command("configure")
def configure() -> None:
    """Add or replace a configuration interactively."""
    with _exit_on_error(EXIT_CONFIG):
        saved = configure_wizard(_config_store(), RichPrompter())
    typer.echo(f"Configured {saved.name}")


@config_app.command("list")
def config_list() -> None:
    """List saved configurations; the default is marked with *."""
    with _exit_on_error(EXIT_CONFIG):
        configs = _config_store().load()
    if not configs.items:
        typer.echo("Cargo remote isn't configured. Use `cargo remote configure`")
        return
    for i, c in enumerate(configs.items):
        mark = "*" if configs.default == c.name else " "
        typer.echo(f"{i} [{mark}] {c.name} {c.mode.value}")


@config_app.command("show")
def config_show(
    name: str | None = typer.Option(None, "--name", help="Config name."),
    index: int | None = typer.Option(None, "--index", help="Position in `config list`."),
) -> None:
    """Show one configuration as TOML (the API key is masked)."""
    store = _config_store()
    typer.echo(f"Path: {store.path}")
    with _exit_on_error(EXIT_CONFIG):
        configs = store.load()
        if not configs.items:
            typer.echo("No config found!")
            return
        if len(configs.items) == 1:
            config = configs.items[0]
        elif name is not None:
            config = configs.get(name)
            if config is None:
                raise ConfigError(f"config {name!r} not found")
        elif index is not None:
            if not 0 <= index < len(configs.items):
                raise ConfigError(f"no config at index {index}")
            config = configs.items[index]
        else:
            raise ConfigError("provide --name or --index")

    record = config.to_record()
    if "api_key" in record:
        record["api_key"] = "********"
    typer.echo(tomli_w.dumps(record), nl=False)


@config_app.command("delete")
def config_delete(
    name: str | None = typer.Option(None, "--name", help="Config name."),
    index: int | None = typer.Option(None, "--index", help="Position in `config list`."),
) -> None:
    """Delete a configuration by name or index."""
    store = _config_store()
    with _exit_on_error(EXIT_CONFIG):
        configs = store.load()
        removed = configs.remove(name=name, index=index)
        store.save(configs)
    typer.echo(f"Deleted {removed.name}")


@config_app.command("edit")
def config_edit() -> None:
    """Open the config file in $EDITOR (default vi)."""
    path = _config_store().path
    editor = os.environ.get("EDITOR") or "vi"
    with _exit_on_error(EXIT_CONFIG):
        try:
            code = SubprocessRunner().interactive([*shlex.split(editor), str(path)])
        except OSError as e:
            raise ConfigError(f"could not start editor {editor!r}: {e}") from e
    if code != 0:
        typer.echo(f"File: {path}")


# =============================================================================
# Sessions
# =============================================================================


@remote_app.command("begin")
def begin(
    config: str | None = typer.Option(None, "--config", help="Cloud config to rent from."),
    preinstall: str | None = typer.Option(
        None, "--preinstall", help="Comma-separated extra apt packages."
    ),
) -> None:
    """Rent a cloud server for this project (takes a few minutes to boot)."""
    packages = [p for p in (preinstall or "").split(",") if p.strip()]
    with _exit_on_error(EXIT_SESSION):
        key = project_key(metadata_dir(Path(DEFAULT_MANIFEST)))
        handle = begin_session(
            _config_store(), _state_store(), key, choose,
            override=config, preinstall=packages,
        )
    typer.echo(f"Started {handle}")
    typer.echo(
        f"The server is ready once {READY_SENTINEL} exists; check with `cargo remote status`."
    )


@remote_app.command("end")
def end() -> None:
    """Delete a rented server."""
    with _exit_on_error(EXIT_SESSION):
        handle = end_session(_config_store(), _state_store(), choose)
    typer.echo(f"Ended {handle}")


def render_status(report: StatusReport) -> None:
    if not report.manual and not report.cloud:
        console.print("No manual servers configured and no running sessions.")

    if report.manual:
        table = Table(title="Manual servers")
        table.add_column("Config")
        table.add_column("Host")
        table.add_column("State")
        for m in report.manual:
            state = "[green]up[/green]" if m.up else "[red]down[/red]"
            if m.error:
                state += f" ({escape(m.error)})"
            table.add_row(m.name, m.host, state)
        console.print(table)

    if report.cloud:
        table = Table(title="Cloud sessions")
        table.add_column("Config")
        table.add_column("Server")
        table.add_column("Host")
        table.add_column("State")
        for c in report.cloud:
            r = c.readiness
            if r.ready:
                state = "[green]ready[/green]"
            elif r.error:
                state = f"[red]unreachable[/red] ({escape(r.error)})"
            else:
                state = f"[yellow]booting[/yellow] {escape(r.cloud_init)}".rstrip()
            table.add_row(
                c.config.name, f"{c.handle.provider} {c.handle.id}",
                f"{c.handle.host}:{c.handle.port}", state,
            )
        console.print(table)

    for h in report.pruned:
        console.print(f"Removed stale session {escape(str(h))}", highlight=False)


@remote_app.command("status")
def show_status() -> None:
    """Ping manual servers and reconcile rented ones."""
    with _exit_on_error(EXIT_SESSION):
        report = status(_config_store(), _state_store())
    render_status(report)


# =============================================================================
# Execution
# =============================================================================


def _exec_command(command: str, help_text: str) -> None:
    @remote_app.command(command, help=help_text, context_settings=PASSTHROUGH)
    def _run(
        args: list[str] | None = typer.Argument(None, help="Arguments passed to cargo."),
        build_env: str = typer.Option(
            DEFAULT_BUILD_ENV, "--build-env", "-b", help="Environment for the remote cargo."
        ),
        rustup_default: str = typer.Option(
            DEFAULT_TOOLCHAIN, "--rustup-default", "-d", help="Toolchain for `rustup default`."
        ),
        copy_back: str | None = typer.Option(
            None, "--copy-back", "-c", help="Copy target/<DIR> back, e.g. release."
        ),
        no_copy_lock: bool = typer.Option(
            False, "--no-copy-lock", help="Do not copy Cargo.lock back."
        ),
        manifest_path: Path = typer.Option(
            Path(DEFAULT_MANIFEST), "--manifest-path", help="Path to Cargo.toml."
        ),
        hidden: bool = typer.Option(
            False, "--transfer-hidden", "-h", help="Also transfer hidden files."
        ),
        config: str | None = typer.Option(None, "--config", help="Use only this config."),
    ) -> None:
        options = ExecOptions(
            build_env=build_env,
            toolchain=rustup_default,
            copy_back=copy_back,
            no_copy_lock=no_copy_lock,
            manifest_path=manifest_path,
            hidden=hidden,
            config=config,
        )
        with _exit_on_error(EXIT_EXEC):
            code = remote_exec(
                command, list(args or []), options, _config_store(), _state_store(), choose
            )
        raise typer.Exit(code=code)


_exec_command("run", "Run the project on the remote server.")
_exec_command("build", "Build the project on the remote server (see --copy-back).")
_exec_command("clean", "Clean the target directory on the remote server.")


def main() -> None:
    app()
