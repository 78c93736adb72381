"""
Vault commands: master password and wipe.
"""
import typer

from stremio_manager.cli.commands.utils import confirm_action, console, handle_errors
from stremio_manager.cli.context import open_store
from stremio_manager.cli.logging import setup_cli_logging
from stremio_manager.core.storage import StorageKeys, wipe_all_data
from stremio_manager.services.vault_service import MasterPasswordVault

app = typer.Typer(help="Vault protection and reset")


@app.command("setup")
def setup_master_password(
    password: str = typer.Option(..., prompt=True, confirmation_prompt=True, hide_input=True),
):
    """Protect the vault with a master password. Only possible on an empty vault."""
    setup_cli_logging("vault")
    with handle_errors():
        store = open_store()
        if store.get(StorageKeys.ACCOUNTS):
            console.print("[red]Accounts are already stored with the device key; reset the vault first.[/red]")
            raise typer.Exit(code=1)
        MasterPasswordVault(store).setup(password)

    console.print("[green]Master password configured.[/green]")


@app.command("reset")
def reset_vault(
    password: str = typer.Option(..., prompt="New master password", confirmation_prompt=True, hide_input=True),
    force: bool = typer.Option(False, "--force", help="Skip confirmation prompt"),
):
    """Wipe all stored data and set a new master password."""
    setup_cli_logging("vault")
    if not confirm_action("This deletes all accounts and saved addons. Continue?", force):
        raise typer.Exit(code=0)

    with handle_errors():
        MasterPasswordVault(open_store()).reset(password)

    console.print("[green]Vault reset with a new master password.[/green]")


@app.command("wipe")
def wipe_vault(force: bool = typer.Option(False, "--force", help="Skip confirmation prompt")):
    """Delete every stored account, saved addon and key."""
    setup_cli_logging("vault")
    if not confirm_action("This deletes all accounts and saved addons. Continue?", force):
        raise typer.Exit(code=0)

    failed = wipe_all_data(open_store())
    if failed:
        console.print(f"[yellow]Could not remove: {', '.join(failed)}[/yellow]")
        raise typer.Exit(code=1)
    console.print("Vault wiped.")
