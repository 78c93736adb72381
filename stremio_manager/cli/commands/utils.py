"""
Shared helpers for CLI commands.
"""
from contextlib import contextmanager

import typer
from rich.console import Console

from stremio_manager.core.exceptions import StremioManagerError

console = Console()

MASTER_PASSWORD_OPTION = typer.Option(
    None,
    "--master-password",
    envvar="STREMIO_MANAGER_MASTER_PASSWORD",
    help="Master password, when the vault is protected by one",
    hide_input=True,
)


def confirm_action(message: str, force: bool = False) -> bool:
    """Ask for confirmation unless force is set."""
    if force:
        return True
    return typer.confirm(message, default=False)


@contextmanager
def handle_errors():
    """Turn application errors into a red message and exit code 1."""
    try:
        yield
    except StremioManagerError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)


def format_datetime(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"
