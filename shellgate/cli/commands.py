"""CLI commands for shellgate."""

import asyncio
import json
import sys
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from shellgate import __logo__, __version__
from shellgate.exec.errors import ShellGateError

app = typer.Typer(
    name="shellgate",
    help=f"{__logo__} shellgate - policy-checked command execution",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} shellgate v{__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", callback=version_callback, is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
):
    """shellgate - policy-checked command execution."""
    _configure_logging(verbose)


def _load(config_path: Path | None):
    from shellgate.config.loader import load_config
    return load_config(config_path)


def _fail(error: ShellGateError) -> None:
    err_console.print(f"[red]Error ({error.code}):[/red] {escape(str(error))}")
    raise typer.Exit(1)


def _print_outcome(outcome) -> None:
    if outcome.stdout:
        console.print(outcome.stdout, end="", markup=False, highlight=False)
    if outcome.stderr:
        err_console.print(outcome.stderr, end="", markup=False, highlight=False)
    if not outcome.stdout and not outcome.stderr:
        console.print(f"[dim]{outcome.text}[/dim]")
    if not outcome.success:
        raise typer.Exit(outcome.exit_code or 1)


async def _run_and_close(gateway, coro):
    try:
        return await coro
    finally:
        await gateway.close()


# ============================================================================
# Local Commands
# ============================================================================


@app.command("init-config")
def init_config(
    path: Path = typer.Argument(None, help="Where to write the config (default ~/.shellgate/config.json)"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
):
    """Write a default configuration file."""
    from shellgate.config.loader import create_default_config, get_config_path

    target = path or get_config_path()
    if target.exists() and not force:
        console.print(f"[yellow]Config already exists at {target}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    written = create_default_config(target)
    console.print(f"[green]✓[/green] Created config at {written}")


@app.command("exec")
def exec_command(
    command: str = typer.Argument(..., help="Command line to run"),
    shell: str = typer.Option("cmd", "--shell", "-s", help="Configured shell name"),
    cwd: str = typer.Option(None, "--cwd", "-C", help="Absolute working directory"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file"),
):
    """Validate and run a command in a local shell."""
    from shellgate.gateway import CommandGateway

    gateway = CommandGateway.from_config(_load(config_path))
    try:
        outcome = asyncio.run(_run_and_close(gateway, gateway.execute_local(shell, command, cwd)))
    except ShellGateError as e:
        _fail(e)
    _print_outcome(outcome)


@app.command("check-dirs")
def check_dirs(
    paths: list[str] = typer.Argument(..., help="Directories to check"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file"),
):
    """Check directories against the allowed paths."""
    from shellgate.gateway import CommandGateway

    gateway = CommandGateway.from_config(_load(config_path))
    result = gateway.check_directories(paths)
    if result.all_pass:
        console.print("[green]✓[/green] All specified directories are within allowed paths.")
        return

    err_console.print("[red]Outside allowed paths:[/red]")
    for failing in result.failing:
        err_console.print(f"  {escape(failing)}")
    err_console.print(f"[dim]Allowed: {escape(', '.join(gateway.policy.allowed_paths))}[/dim]")
    raise typer.Exit(1)


@app.command("config")
def show_config(
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file"),
):
    """Print the effective configuration (passwords redacted)."""
    config = _load(config_path)
    console.print_json(json.dumps(config.to_safe_dict()))


# ============================================================================
# SSH Commands
# ============================================================================

ssh_app = typer.Typer(help="Manage and use SSH connections")
app.add_typer(ssh_app, name="ssh")


@ssh_app.command("exec")
def ssh_exec(
    connection_id: str = typer.Argument(..., help="Connection id"),
    command: str = typer.Argument(..., help="Command line to run remotely"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file"),
):
    """Validate and run a command on a configured SSH connection."""
    from shellgate.gateway import CommandGateway

    gateway = CommandGateway.from_config(_load(config_path))
    try:
        outcome = asyncio.run(_run_and_close(gateway, gateway.execute_remote(connection_id, command)))
    except ShellGateError as e:
        _fail(e)
    _print_outcome(outcome)


@ssh_app.command("list")
def ssh_list(
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file"),
):
    """List configured SSH connections."""
    from shellgate.config.connections import read_connections

    connections = read_connections(config_path)
    if not connections:
        console.print("[yellow]No SSH connections configured.[/yellow]")
        return

    table = Table(title="SSH Connections")
    table.add_column("ID", style="cyan")
    table.add_column("Host")
    table.add_column("Port", justify="right")
    table.add_column("User")
    table.add_column("Auth", style="dim")

    for connection_id, conn in connections.items():
        auth = "key" if conn.get("private_key_path") else "password" if conn.get("password") else "-"
        table.add_row(connection_id, conn["host"], str(conn["port"]), conn["username"], auth)

    console.print(table)


@ssh_app.command("add")
def ssh_add(
    connection_id: str = typer.Argument(..., help="Connection id"),
    host: str = typer.Option(..., "--host", help="Remote host"),
    user: str = typer.Option(..., "--user", "-u", help="Remote username"),
    port: int = typer.Option(22, "--port", "-p", help="Remote port"),
    password: str = typer.Option(None, "--password", help="Password (stored in the config file)"),
    key: str = typer.Option(None, "--key", "-k", help="Private key file"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file"),
):
    """Add or replace an SSH connection."""
    from pydantic import ValidationError

    from shellgate.config.connections import create_connection
    from shellgate.config.schema import SSHConnectionConfig

    if not password and not key:
        err_console.print("[red]Either --password or --key is required[/red]")
        raise typer.Exit(1)

    try:
        connection = SSHConnectionConfig(
            host=host, port=port, username=user, password=password, private_key_path=key,
        )
    except ValidationError as e:
        err_console.print(f"[red]Invalid connection:[/red] {e}")
        raise typer.Exit(1)

    create_connection(connection_id, connection, config_path)
    console.print(f"[green]✓[/green] Saved connection [cyan]{connection_id}[/cyan]")


@ssh_app.command("remove")
def ssh_remove(
    connection_id: str = typer.Argument(..., help="Connection id"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file"),
):
    """Remove an SSH connection."""
    from shellgate.config.connections import delete_connection

    if not delete_connection(connection_id, config_path):
        err_console.print(f"[red]Unknown connection: {connection_id}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Removed connection [cyan]{connection_id}[/cyan]")


if __name__ == "__main__":
    app()
