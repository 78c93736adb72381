"""
Service wiring for CLI commands.
"""
import asyncio
from dataclasses import dataclass
from typing import Awaitable, Optional, TypeVar

from stremio_manager.core.database import create_db_and_tables, create_db_engine
from stremio_manager.core.encryption import CredentialCipher
from stremio_manager.core.exceptions import VaultLockedError
from stremio_manager.core.http_client import close_http_client
from stremio_manager.core.storage import KeyValueStore, SqlKeyValueStore
from stremio_manager.integrations.stremio_client import StremioClient
from stremio_manager.services.account_service import AccountService
from stremio_manager.services.addon_health import HealthProber
from stremio_manager.services.addon_merger import AddonMerger
from stremio_manager.services.saved_addon_service import SavedAddonLibrary
from stremio_manager.services.transfer_service import TransferService
from stremio_manager.services.vault_service import MasterPasswordVault

T = TypeVar("T")


@dataclass
class CliContext:
    store: KeyValueStore
    vault: MasterPasswordVault
    accounts: AccountService
    library: SavedAddonLibrary
    transfer: TransferService


def open_store(database_url: Optional[str] = None) -> KeyValueStore:
    engine = create_db_engine(database_url)
    create_db_and_tables(engine)
    return SqlKeyValueStore(engine)


def build_context(
    master_password: Optional[str] = None,
    store: Optional[KeyValueStore] = None,
    client: Optional[StremioClient] = None,
) -> CliContext:
    """
    Build and initialize the services used by CLI commands.

    Raises:
        VaultLockedError: The vault has a master password and none (or a wrong one) was given
    """
    store = store or open_store()
    vault = MasterPasswordVault(store)

    if vault.is_configured:
        if not master_password:
            raise VaultLockedError("The vault is protected; pass --master-password or set STREMIO_MANAGER_MASTER_PASSWORD")
        cipher = vault.unlock(master_password)
    else:
        cipher = CredentialCipher.for_device(store)

    client = client or StremioClient()
    merger = AddonMerger(client.fetch_addon_manifest)
    accounts = AccountService(store, client, cipher, merger)
    library = SavedAddonLibrary(store, client.fetch_addon_manifest, HealthProber())
    accounts.initialize()
    library.initialize()

    return CliContext(
        store=store,
        vault=vault,
        accounts=accounts,
        library=library,
        transfer=TransferService(accounts, library),
    )


def run_async(awaitable: Awaitable[T]) -> T:
    """Run a coroutine to completion and close the shared HTTP client."""
    async def runner() -> T:
        try:
            return await awaitable
        finally:
            await close_http_client()

    return asyncio.run(runner())
