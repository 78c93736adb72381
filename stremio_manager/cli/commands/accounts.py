"""
Account commands.
"""
from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from stremio_manager.addons.registry import (
    current_debrid_key,
    current_debrid_service,
    get_addon_type,
    get_addon_type_name,
)
from stremio_manager.cli.commands.utils import (
    MASTER_PASSWORD_OPTION,
    confirm_action,
    console,
    format_datetime,
    handle_errors,
)
from stremio_manager.cli.context import build_context, run_async
from stremio_manager.cli.logging import setup_cli_logging
from stremio_manager.core.logging_config import mask_url_secrets
from stremio_manager.models.enums import AccountStatus, DebridService
from stremio_manager.services.account_service import mask_api_key

app = typer.Typer(help="Manage Stremio accounts")


def debrid_summary(transport_url: str) -> str:
    """Describe the debrid setup encoded in an addon URL, with the key masked."""
    addon_type = get_addon_type(transport_url)
    if addon_type is None:
        return "-"
    name = get_addon_type_name(addon_type)
    service = current_debrid_service(transport_url)
    key = current_debrid_key(transport_url)
    if service is None or key is None:
        return f"{name}: none"
    return f"{name}: {DebridService(service).value} {mask_api_key(key)}"


@app.command("list")
def list_accounts(master_password: Optional[str] = MASTER_PASSWORD_OPTION):
    """List stored accounts."""
    setup_cli_logging("accounts")
    with handle_errors():
        ctx = build_context(master_password)
        accounts = ctx.accounts.list_accounts()

    if not accounts:
        console.print("No accounts stored.")
        return

    table = Table(title="Accounts")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Email")
    table.add_column("Status")
    table.add_column("Addons", justify="right")
    table.add_column("Last sync")
    for account in accounts:
        status = "[green]active[/green]" if account.status == AccountStatus.ACTIVE else "[red]error[/red]"
        table.add_row(
            account.id,
            account.name,
            account.email or "-",
            status,
            str(len(account.addons)),
            format_datetime(account.last_sync),
        )
    console.print(table)


@app.command("add")
def add_account(
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Display name (defaults to the email)"),
    auth_key: Optional[str] = typer.Option(None, "--auth-key", help="Existing auth key"),
    email: Optional[str] = typer.Option(None, "--email", "-e", help="Account email"),
    password: Optional[str] = typer.Option(None, "--password", "-p", help="Account password", hide_input=True),
    master_password: Optional[str] = MASTER_PASSWORD_OPTION,
):
    """Add an account with an auth key or email and password."""
    setup_cli_logging("accounts")
    if not auth_key and not email:
        raise typer.BadParameter("Pass --auth-key or --email.")
    if email and not password:
        password = typer.prompt("Password", hide_input=True)

    with handle_errors():
        ctx = build_context(master_password)
        if auth_key:
            if not name:
                raise typer.BadParameter("--name is required with --auth-key.")
            account = run_async(ctx.accounts.add_account_by_auth_key(auth_key, name))
        else:
            account = run_async(ctx.accounts.add_account_by_credentials(email, password, name))

    console.print(f"[green]Added account '{account.name}' with {len(account.addons)} addon(s).[/green]")


@app.command("sync")
def sync_accounts(
    account_id: Optional[str] = typer.Argument(None, help="Account to sync; all accounts when omitted"),
    master_password: Optional[str] = MASTER_PASSWORD_OPTION,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
):
    """Refresh addon collections from Stremio."""
    setup_cli_logging("accounts", verbose=verbose)
    with handle_errors():
        ctx = build_context(master_password)
        if account_id:
            account = run_async(ctx.accounts.sync_account(account_id))
            console.print(f"[green]Synced '{account.name}': {len(account.addons)} addon(s).[/green]")
            return

        results = run_async(ctx.accounts.sync_all_accounts())

    table = Table(title="Sync results")
    table.add_column("Account", style="cyan")
    table.add_column("Result")
    for result in results:
        table.add_row(result.name, "[green]ok[/green]" if result.success else f"[red]{result.error}[/red]")
    console.print(table)
    if any(not result.success for result in results):
        raise typer.Exit(code=1)


@app.command("remove")
def remove_account(
    account_id: str = typer.Argument(..., help="Account ID"),
    force: bool = typer.Option(False, "--force", help="Skip confirmation prompt"),
    master_password: Optional[str] = MASTER_PASSWORD_OPTION,
):
    """Remove an account from the vault."""
    setup_cli_logging("accounts")
    with handle_errors():
        ctx = build_context(master_password)
        account = ctx.accounts.get_account(account_id)
        if not confirm_action(f"Remove account '{account.name}'?", force):
            raise typer.Exit(code=0)
        run_async(ctx.accounts.remove_account(account_id))

    console.print(f"Removed account '{account.name}'.")


@app.command("addons")
def list_addons(
    account_id: str = typer.Argument(..., help="Account ID"),
    master_password: Optional[str] = MASTER_PASSWORD_OPTION,
):
    """Show the cached addon collection of an account."""
    setup_cli_logging("accounts")
    with handle_errors():
        account = build_context(master_password).accounts.get_account(account_id)

    table = Table(title=f"Addons of {account.name}")
    table.add_column("#", justify="right")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Version")
    table.add_column("Flags")
    table.add_column("Debrid")
    table.add_column("URL")
    for position, addon in enumerate(account.addons, start=1):
        flags = ", ".join(flag for flag, on in (("protected", addon.is_protected), ("official", addon.is_official)) if on)
        table.add_row(
            str(position),
            addon.addon_id,
            addon.manifest.name,
            addon.manifest.version,
            flags,
            debrid_summary(addon.transport_url),
            mask_url_secrets(addon.transport_url),
        )
    console.print(table)


@app.command("install")
def install_addon(
    account_id: str = typer.Argument(..., help="Account ID"),
    url: str = typer.Argument(..., help="Addon install URL"),
    master_password: Optional[str] = MASTER_PASSWORD_OPTION,
):
    """Install an addon on an account."""
    setup_cli_logging("accounts")
    with handle_errors():
        ctx = build_context(master_password)
        account = run_async(ctx.accounts.install_addon(account_id, url))

    console.print(f"[green]Installed. '{account.name}' now has {len(account.addons)} addon(s).[/green]")


@app.command("export")
def export_accounts(
    output: Path = typer.Argument(..., help="File to write"),
    include_credentials: bool = typer.Option(
        False, "--include-credentials", help="Write auth keys, passwords and API keys in plaintext",
    ),
    include_saved_addons: bool = typer.Option(False, "--include-saved-addons", help="Include the saved addon library"),
    master_password: Optional[str] = MASTER_PASSWORD_OPTION,
):
    """Export accounts to a JSON file."""
    setup_cli_logging("accounts")
    if include_credentials and not confirm_action("The export will contain plaintext credentials. Continue?"):
        raise typer.Exit(code=0)

    with handle_errors():
        ctx = build_context(master_password)
        payload = ctx.transfer.export_json(include_credentials, include_saved_addons)

    output.write_text(payload, encoding="utf-8")
    console.print(f"Exported {len(ctx.accounts.list_accounts())} account(s) to {output}.")


@app.command("import")
def import_accounts(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, help="Export file to import"),
    master_password: Optional[str] = MASTER_PASSWORD_OPTION,
):
    """Import accounts from a JSON export."""
    setup_cli_logging("accounts")
    with handle_errors():
        ctx = build_context(master_password)
        summary = ctx.transfer.import_export(source.read_text(encoding="utf-8"))

    console.print(f"[green]Imported {summary.accounts_imported} account(s).[/green]")
    if summary.accounts_without_credentials:
        console.print(
            f"[yellow]{summary.accounts_without_credentials} account(s) have no credentials; "
            f"update them before syncing.[/yellow]"
        )
    if summary.saved_addons_imported or summary.saved_addons_skipped:
        console.print(
            f"Saved addons: {summary.saved_addons_imported} imported, {summary.saved_addons_skipped} already present."
        )
