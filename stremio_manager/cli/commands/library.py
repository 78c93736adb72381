"""
Saved addon library commands.
"""
from typing import List, Optional

import typer
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table

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
from stremio_manager.models.enums import MergeStrategy

app = typer.Typer(help="Manage the saved addon library")


def _health_label(addon) -> str:
    if addon.health is None:
        return "[dim]unchecked[/dim]"
    return "[green]online[/green]" if addon.health.is_online else "[red]offline[/red]"


@app.command("list")
def list_saved_addons(
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Filter by name, description or tag"),
    tag: Optional[str] = typer.Option(None, "--tag", "-t", help="Only addons with this tag"),
    master_password: Optional[str] = MASTER_PASSWORD_OPTION,
):
    """List saved addons."""
    setup_cli_logging("library")
    with handle_errors():
        addons = build_context(master_password).library.list_saved_addons(search=search, tag=tag)

    if not addons:
        console.print("No saved addons.")
        return

    table = Table(title="Saved addons")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Addon")
    table.add_column("Version")
    table.add_column("Tags")
    table.add_column("Health")
    table.add_column("Last used")
    for addon in addons:
        table.add_row(
            addon.id,
            addon.name,
            addon.manifest.id,
            addon.manifest.version,
            ", ".join(addon.tags),
            _health_label(addon),
            format_datetime(addon.last_used),
        )
    console.print(table)


@app.command("add")
def add_saved_addon(
    name: str = typer.Argument(..., help="Name for the saved addon"),
    url: str = typer.Argument(..., help="Addon install URL"),
    tags: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Tag (repeatable)"),
    master_password: Optional[str] = MASTER_PASSWORD_OPTION,
):
    """Save an addon from its install URL."""
    setup_cli_logging("library")
    with handle_errors():
        ctx = build_context(master_password)
        saved = run_async(ctx.library.create_saved_addon(name, url, tags or []))

    console.print(f"[green]Saved '{saved.name}' ({saved.manifest.id} {saved.manifest.version}).[/green]")


@app.command("remove")
def remove_saved_addon(
    saved_addon_id: str = typer.Argument(..., help="Saved addon ID"),
    force: bool = typer.Option(False, "--force", help="Skip confirmation prompt"),
    master_password: Optional[str] = MASTER_PASSWORD_OPTION,
):
    """Delete a saved addon."""
    setup_cli_logging("library")
    with handle_errors():
        ctx = build_context(master_password)
        saved = ctx.library.get(saved_addon_id)
        if not confirm_action(f"Delete saved addon '{saved.name}'?", force):
            raise typer.Exit(code=0)
        ctx.library.delete_saved_addon(saved_addon_id)

    console.print(f"Deleted saved addon '{saved.name}'.")


@app.command("health")
def check_health(master_password: Optional[str] = MASTER_PASSWORD_OPTION):
    """Check which saved addons are online."""
    setup_cli_logging("library")
    with handle_errors():
        ctx = build_context(master_password)
        total = len(ctx.library.list_saved_addons())
        if total == 0:
            console.print("No saved addons.")
            return

        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            console=console,
        ) as progress:
            task = progress.add_task("Checking addons", total=total)
            addons = run_async(ctx.library.check_health(
                on_progress=lambda completed, _total: progress.update(task, completed=completed),
            ))

    summary = ctx.library.health_summary()
    table = Table(title="Addon health")
    table.add_column("Name", style="cyan")
    table.add_column("URL")
    table.add_column("Health")
    for addon in addons:
        table.add_row(addon.name, mask_url_secrets(addon.install_url), _health_label(addon))
    console.print(table)
    console.print(f"Online: {summary.online}  Offline: {summary.offline}  Unchecked: {summary.unchecked}")


@app.command("updates")
def check_updates(master_password: Optional[str] = MASTER_PASSWORD_OPTION):
    """Compare saved manifest versions with the published ones."""
    setup_cli_logging("library")
    with handle_errors():
        updates = run_async(build_context(master_password).library.check_updates())

    table = Table(title="Saved addon updates")
    table.add_column("Name", style="cyan")
    table.add_column("Saved")
    table.add_column("Latest")
    for info in updates:
        latest = f"[yellow]{info.latest_version}[/yellow]" if info.has_update else info.latest_version
        table.add_row(info.name, info.installed_version, latest)
    console.print(table)


@app.command("apply")
def apply_saved_addons(
    account_id: str = typer.Argument(..., help="Account to apply the addons to"),
    saved_addon_ids: List[str] = typer.Argument(..., help="Saved addon IDs, in the order to apply"),
    strategy: MergeStrategy = typer.Option(
        MergeStrategy.REPLACE_MATCHING, "--strategy", help="How to treat addons the account already has",
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Only report what would change"),
    master_password: Optional[str] = MASTER_PASSWORD_OPTION,
):
    """Apply saved addons to an account."""
    setup_cli_logging("library")
    with handle_errors():
        ctx = build_context(master_password)
        saved = ctx.library.get_many(saved_addon_ids)
        if dry_run:
            result = run_async(ctx.accounts.preview_saved_addons(account_id, saved, strategy))
        else:
            result = run_async(ctx.accounts.apply_saved_addons(account_id, saved, strategy))
            ctx.library.mark_used(addon.id for addon in saved)

    table = Table(title="Merge preview" if dry_run else "Merge result")
    table.add_column("Addon", style="cyan")
    table.add_column("Outcome")
    for added in result.added:
        table.add_row(added.addon_id, "[green]added[/green]")
    for updated in result.updated:
        table.add_row(updated.addon_id, "[green]updated[/green]")
    for skipped in result.skipped:
        table.add_row(skipped.addon_id, f"[yellow]skipped ({skipped.reason.value})[/yellow]")
    for protected in result.protected:
        table.add_row(protected.addon_id, "[dim]protected[/dim]")
    console.print(table)
