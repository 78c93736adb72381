"""
Main CLI application using Typer.

Entry point: python -m stremio_manager.cli
CLI Name: stremio-manager
"""
import typer

from stremio_manager import __version__ as app_version

app = typer.Typer(
    name="stremio-manager",
    help="Stremio Account Manager - manage addon collections across Stremio accounts",
)

@app.command()
def version():
    """Show CLI version information."""
    typer.echo(f"Stremio Manager CLI version {app_version}")

# Register command groups
from stremio_manager.cli.commands import accounts, library, vault
app.add_typer(accounts.app, name="accounts")
app.add_typer(library.app, name="library")
app.add_typer(vault.app, name="vault")
