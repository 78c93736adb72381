"""
Account service for managing remote accounts and their addon collections.

The service owns the in-memory account list and persists it as a whole after
every change. Operations on the same account are serialized with a
per-account lock, because each one reads the full remote collection, changes
it and writes it back. Operations on different accounts run independently.

Status rules:
- a successful sync marks the account active and refreshes last_sync
- a failed sync marks it as error and keeps the cached addons
- addon writes refresh addons and last_sync but leave status alone
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from stremio_manager.addons.debrid import apply_debrid_key, remove_debrid_key
from stremio_manager.addons.registry import is_debrid_supported_addon
from stremio_manager.core.concurrency import run_in_windows
from stremio_manager.core.config import settings
from stremio_manager.core.encryption import CredentialCipher
from stremio_manager.core.exceptions import (
    AccountNotFoundError,
    ApiKeyNotFoundError,
    InvalidCredentialsError,
    InvalidServiceTypeError,
    ManifestFetchFailedError,
    ProtectedAddonError,
    StremioManagerError,
    ValidationError,
)
from stremio_manager.core.logging_config import LogCategory, log_account_action, log_error
from stremio_manager.core.storage import KeyValueStore, StorageKeys
from stremio_manager.core.time_utils import utc_now
from stremio_manager.integrations.stremio_client import StremioClient
from stremio_manager.models.enums import AccountStatus, MergeStrategy, as_debrid_service
from stremio_manager.schemas.account import Account, AccountSyncResult, ApiKey, ApiKeyInput
from stremio_manager.schemas.addon import AddonDescriptor
from stremio_manager.schemas.merge import (
    AddonUpdateInfo,
    BulkDebridResult,
    MergeResult,
    ReinstallResult,
    RemoveResult,
)
from stremio_manager.schemas.saved_addon import SavedAddon
from stremio_manager.services.addon_merger import AddonMerger
from stremio_manager.utils.validators import require_name

logger = logging.getLogger(LogCategory.SYNC)


def mask_api_key(api_key: str) -> str:
    """Mask an API key for display, keeping the last four characters."""
    if len(api_key) <= 4:
        return "••••"
    return "••••••••" + api_key[-4:]


class AccountService:
    """Service class for account operations."""

    def __init__(
        self,
        store: KeyValueStore,
        client: StremioClient,
        cipher: CredentialCipher,
        merger: Optional[AddonMerger] = None,
    ):
        self.store = store
        self.client = client
        self.cipher = cipher
        self.merger = merger or AddonMerger(client.fetch_addon_manifest)
        self._accounts: List[Account] = []
        self._locks: Dict[str, asyncio.Lock] = {}

    # ------------------------------------------------------------------
    # Repository
    # ------------------------------------------------------------------

    def initialize(self) -> List[Account]:
        """Load accounts from storage."""
        raw = self.store.get(StorageKeys.ACCOUNTS) or []
        try:
            self._accounts = [Account.model_validate(item) for item in raw]
        except (PydanticValidationError, TypeError) as e:
            log_error(e, action="load_accounts")
            raise ValidationError("Failed to load saved accounts") from e
        logger.info(f"Loaded {len(self._accounts)} account(s)")
        return self.list_accounts()

    def _persist(self) -> None:
        self.store.set(
            StorageKeys.ACCOUNTS,
            [account.model_dump(mode="json", by_alias=True) for account in self._accounts],
        )

    def list_accounts(self) -> List[Account]:
        return list(self._accounts)

    def get_account(self, account_id: str) -> Account:
        """Get an account by ID."""
        account = next((acc for acc in self._accounts if acc.id == account_id), None)
        if account is None:
            raise AccountNotFoundError(f"Account '{account_id}' not found")
        return account

    def _commit(self, account_id: str, **changes: Any) -> Account:
        """Apply field changes to the current record of an account and persist."""
        updated = self.get_account(account_id).model_copy(update=changes)
        self._accounts = [updated if acc.id == account_id else acc for acc in self._accounts]
        self._persist()
        return updated

    def _add(self, account: Account) -> Account:
        self._accounts = [*self._accounts, account]
        self._persist()
        log_account_action(account.id, "added", name=account.name, addons=len(account.addons))
        return account

    @asynccontextmanager
    async def _account_lock(self, account_id: str):
        lock = self._locks.setdefault(account_id, asyncio.Lock())
        async with lock:
            yield self.get_account(account_id)

    def _auth_key(self, account: Account) -> str:
        if not account.auth_key:
            raise InvalidCredentialsError(
                f"Account '{account.name}' has no stored auth key; update its credentials"
            )
        return self.cipher.decrypt(account.auth_key)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def add_account_by_auth_key(self, auth_key: str, name: str) -> Account:
        """Add an account after validating its auth key against the remote API."""
        name = require_name(name, "Account name")
        auth_key = (auth_key or "").strip()
        if not auth_key:
            raise ValidationError("Auth key is required")

        addons = await self.client.get_addon_collection(auth_key)
        return self._add(Account(
            name=name,
            auth_key=self.cipher.encrypt(auth_key),
            addons=addons,
            last_sync=utc_now(),
            status=AccountStatus.ACTIVE,
        ))

    async def add_account_by_credentials(self, email: str, password: str, name: Optional[str] = None) -> Account:
        """Log in with email and password and add the resulting account."""
        email = (email or "").strip()
        if not email or not password:
            raise ValidationError("Email and password are required")
        name = require_name(name or email, "Account name")

        login = await self.client.login(email, password)
        addons = await self.client.get_addon_collection(login.auth_key)
        return self._add(Account(
            name=name,
            email=email,
            auth_key=self.cipher.encrypt(login.auth_key),
            password=self.cipher.encrypt(password),
            addons=addons,
            last_sync=utc_now(),
            status=AccountStatus.ACTIVE,
        ))

    def add_imported_accounts(self, accounts: Sequence[Account]) -> List[Account]:
        """Append already-encrypted accounts with a single write."""
        self._accounts = [*self._accounts, *accounts]
        self._persist()
        for account in accounts:
            log_account_action(account.id, "imported", name=account.name, status=account.status.value)
        return list(accounts)

    async def remove_account(self, account_id: str) -> None:
        async with self._account_lock(account_id):
            self._accounts = [acc for acc in self._accounts if acc.id != account_id]
            self._persist()
        self._locks.pop(account_id, None)
        log_account_action(account_id, "removed")

    async def update_account(
        self,
        account_id: str,
        name: Optional[str] = None,
        auth_key: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None,
    ) -> Account:
        """
        Rename an account and/or replace its credentials.

        New credentials are validated against the remote API before anything
        is stored; if validation fails the stored record is left untouched.
        """
        async with self._account_lock(account_id):
            changes: Dict[str, Any] = {}
            if name is not None:
                changes["name"] = require_name(name, "Account name")

            if auth_key:
                addons = await self.client.get_addon_collection(auth_key.strip())
                changes.update(auth_key=self.cipher.encrypt(auth_key.strip()))
            elif email or password:
                if not (email and password):
                    raise ValidationError("Email and password must be supplied together")
                login = await self.client.login(email.strip(), password)
                addons = await self.client.get_addon_collection(login.auth_key)
                changes.update(
                    email=email.strip(),
                    password=self.cipher.encrypt(password),
                    auth_key=self.cipher.encrypt(login.auth_key),
                )
            else:
                addons = None

            if addons is not None:
                changes.update(addons=addons, status=AccountStatus.ACTIVE, last_sync=utc_now())

            updated = self._commit(account_id, **changes)

        log_account_action(account_id, "updated", fields=sorted(changes))
        return updated

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    async def _fetch_remote(self, account: Account) -> List[AddonDescriptor]:
        return await self.client.get_addon_collection(self._auth_key(account))

    async def sync_account(self, account_id: str) -> Account:
        """
        Refresh an account's addons from the remote collection.

        On failure the account is marked as error, its cached addons are kept
        and the error is re-raised.
        """
        async with self._account_lock(account_id) as account:
            try:
                addons = await self._fetch_remote(account)
            except StremioManagerError as e:
                self._commit(account_id, status=AccountStatus.ERROR)
                log_account_action(account_id, "sync failed", error=str(e))
                raise

            updated = self._commit(account_id, addons=addons, status=AccountStatus.ACTIVE, last_sync=utc_now())

        log_account_action(account_id, "synced", addons=len(addons))
        return updated

    async def sync_all_accounts(self) -> List[AccountSyncResult]:
        """
        Sync every account, one at a time.

        A failure on one account does not stop the others. Storage is written
        once, after the last account.
        """
        results: List[AccountSyncResult] = []

        for account_id in [acc.id for acc in self._accounts]:
            lock = self._locks.setdefault(account_id, asyncio.Lock())
            async with lock:
                try:
                    account = self.get_account(account_id)
                except AccountNotFoundError:
                    continue

                try:
                    addons = await self._fetch_remote(account)
                    updated = account.model_copy(update={
                        "addons": addons,
                        "status": AccountStatus.ACTIVE,
                        "last_sync": utc_now(),
                    })
                    results.append(AccountSyncResult(account_id=account_id, name=account.name, success=True))
                except StremioManagerError as e:
                    updated = account.model_copy(update={"status": AccountStatus.ERROR})
                    results.append(AccountSyncResult(
                        account_id=account_id, name=account.name, success=False, error=str(e),
                    ))
                    log_account_action(account_id, "sync failed", error=str(e))

                self._accounts = [updated if acc.id == account_id else acc for acc in self._accounts]

        self._persist()
        failed = sum(1 for result in results if not result.success)
        logger.info(f"Synced {len(results) - failed}/{len(results)} account(s)")
        return results

    # ------------------------------------------------------------------
    # Addon collection writes
    # ------------------------------------------------------------------

    async def _write_addons(self, account_id: str, auth_key: str, addons: List[AddonDescriptor]) -> Account:
        await self.client.set_addon_collection(auth_key, addons)
        return self._commit(account_id, addons=addons, last_sync=utc_now())

    @staticmethod
    def _index_of(addons: Sequence[AddonDescriptor], addon_id: str) -> Optional[int]:
        return next((i for i, addon in enumerate(addons) if addon.addon_id == addon_id), None)

    async def install_addon(self, account_id: str, install_url: str) -> Account:
        """
        Install an addon from its URL.

        An addon with the same id is replaced in place; a protected one raises
        ProtectedAddonError.
        """
        async with self._account_lock(account_id) as account:
            auth_key = self._auth_key(account)
            new_addon = await self.client.fetch_addon_manifest(install_url)
            addons = list(await self.client.get_addon_collection(auth_key))

            index = self._index_of(addons, new_addon.addon_id)
            if index is None:
                addons.append(new_addon)
            elif addons[index].is_protected:
                raise ProtectedAddonError(new_addon.addon_id, "replace")
            else:
                addons[index] = new_addon

            updated = await self._write_addons(account_id, auth_key, addons)

        log_account_action(account_id, "installed addon", addon_id=new_addon.addon_id, url=install_url)
        return updated

    async def remove_addon(self, account_id: str, addon_id: str) -> Account:
        """Remove one addon. Removing a protected addon raises ProtectedAddonError."""
        async with self._account_lock(account_id) as account:
            auth_key = self._auth_key(account)
            addons = list(await self.client.get_addon_collection(auth_key))

            index = self._index_of(addons, addon_id)
            if index is not None and addons[index].is_protected:
                raise ProtectedAddonError(addon_id, "remove")

            remaining = [addon for addon in addons if addon.addon_id != addon_id]
            updated = await self._write_addons(account_id, auth_key, remaining)

        log_account_action(account_id, "removed addon", addon_id=addon_id)
        return updated

    async def remove_addons(self, account_id: str, addon_ids: Sequence[str]) -> RemoveResult:
        """Remove several addons, keeping and reporting protected ones."""
        async with self._account_lock(account_id) as account:
            auth_key = self._auth_key(account)
            current = await self.client.get_addon_collection(auth_key)
            result = self.merger.remove_addons(current, addon_ids)
            if result.removed:
                await self._write_addons(account_id, auth_key, result.addons)

        log_account_action(
            account_id, "removed addons", removed=len(result.removed), protected=len(result.protected_ids),
        )
        return result

    async def reorder_addons(self, account_id: str, new_order: Sequence[AddonDescriptor]) -> Account:
        """
        Write the collection in the given order.

        new_order must hold exactly the installed addons, so a reorder can
        never drop or add one.
        """
        ids = [addon.addon_id for addon in new_order]
        if len(ids) != len(set(ids)):
            raise ValidationError("Addon order contains duplicate addon ids")

        async with self._account_lock(account_id) as account:
            auth_key = self._auth_key(account)
            current = await self.client.get_addon_collection(auth_key)
            if sorted(ids) != sorted(addon.addon_id for addon in current):
                raise ValidationError("Addon order must contain exactly the installed addons")
            updated = await self._write_addons(account_id, auth_key, list(new_order))

        log_account_action(account_id, "reordered addons", count=len(ids))
        return updated

    async def reinstall_addon(self, account_id: str, addon_id: str) -> ReinstallResult:
        """
        Refetch an installed addon's manifest from its own URL, keeping its position.

        Missing and protected addons are left alone and reported with no
        updated_addon.
        """
        async with self._account_lock(account_id) as account:
            auth_key = self._auth_key(account)
            addons = list(await self.client.get_addon_collection(auth_key))

            index = self._index_of(addons, addon_id)
            if index is None or addons[index].is_protected:
                return ReinstallResult(addons=addons)

            existing = addons[index]
            fresh = await self.client.fetch_addon_manifest(existing.transport_url)
            addons[index] = fresh
            await self._write_addons(account_id, auth_key, addons)

        log_account_action(
            account_id, "reinstalled addon", addon_id=addon_id,
            previous_version=existing.manifest.version, new_version=fresh.manifest.version,
        )
        return ReinstallResult(
            addons=addons,
            updated_addon=fresh,
            previous_version=existing.manifest.version,
            new_version=fresh.manifest.version,
        )

    async def check_addon_updates(self, account_id: str) -> List[AddonUpdateInfo]:
        """
        Compare installed addon versions with their published manifests.

        Protected and official addons are not checked. Manifests are fetched
        with `update_check_concurrency` requests in flight (one by default);
        addons whose manifest cannot be fetched are left out.
        """
        account = self.get_account(account_id)
        checkable = [addon for addon in account.addons if not addon.is_protected and not addon.is_official]

        async def check(addon: AddonDescriptor) -> Optional[AddonUpdateInfo]:
            try:
                latest = await self.client.fetch_addon_manifest(addon.transport_url)
            except ManifestFetchFailedError as e:
                logger.warning(f"Update check failed for '{addon.addon_id}': {e}")
                return None
            return AddonUpdateInfo(
                addon_id=addon.addon_id,
                name=addon.manifest.name,
                transport_url=addon.transport_url,
                installed_version=addon.manifest.version,
                latest_version=latest.manifest.version,
                has_update=latest.manifest.version != addon.manifest.version,
            )

        results = await run_in_windows(checkable, check, settings.update_check_concurrency)
        return [info for info in results if info is not None]

    # ------------------------------------------------------------------
    # Saved addons
    # ------------------------------------------------------------------

    async def apply_saved_addons(
        self,
        account_id: str,
        saved_addons: Sequence[SavedAddon],
        strategy: MergeStrategy = MergeStrategy.REPLACE_MATCHING,
    ) -> MergeResult:
        """Merge saved addons into the account's remote collection."""
        async with self._account_lock(account_id) as account:
            auth_key = self._auth_key(account)
            current = await self.client.get_addon_collection(auth_key)
            addons, result = await self.merger.merge(current, saved_addons, strategy)
            if result.changed:
                await self._write_addons(account_id, auth_key, addons)

        log_account_action(
            account_id, "applied saved addons", strategy=strategy.value,
            added=len(result.added), updated=len(result.updated),
        )
        return result

    async def preview_saved_addons(
        self,
        account_id: str,
        saved_addons: Sequence[SavedAddon],
        strategy: MergeStrategy = MergeStrategy.REPLACE_MATCHING,
    ) -> MergeResult:
        """Report what apply_saved_addons would do against the cached addons."""
        account = self.get_account(account_id)
        return await self.merger.preview(account.addons, saved_addons, strategy)

    # ------------------------------------------------------------------
    # API keys
    # ------------------------------------------------------------------

    def list_api_keys(self, account_id: str) -> List[ApiKey]:
        return list(self.get_account(account_id).api_keys)

    def list_debrid_keys(self, account_id: str) -> List[ApiKey]:
        return self.get_account(account_id).debrid_keys()

    def _get_api_key(self, account: Account, key_id: str) -> ApiKey:
        api_key = account.find_api_key(key_id)
        if api_key is None:
            raise ApiKeyNotFoundError(f"API key '{key_id}' not found on account '{account.name}'")
        return api_key

    def reveal_api_key(self, account_id: str, key_id: str) -> str:
        """Return the plaintext value of a stored API key."""
        return self.cipher.decrypt(self._get_api_key(self.get_account(account_id), key_id).api_key)

    async def add_api_key(self, account_id: str, key_input: ApiKeyInput) -> ApiKey:
        async with self._account_lock(account_id) as account:
            api_key = ApiKey(
                service=key_input.service,
                api_key=self.cipher.encrypt(key_input.api_key),
                label=key_input.label,
                metadata=key_input.metadata,
            )
            self._commit(account_id, api_keys=[*account.api_keys, api_key])

        log_account_action(account_id, "added api key", service=api_key.service, key_id=api_key.id)
        return api_key

    async def update_api_key(
        self,
        account_id: str,
        key_id: str,
        api_key: Optional[str] = None,
        label: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ApiKey:
        """Change a stored key's value, label or metadata."""
        async with self._account_lock(account_id) as account:
            existing = self._get_api_key(account, key_id)
            changes: Dict[str, Any] = {}
            if api_key is not None:
                if not api_key.strip():
                    raise ValidationError("API key cannot be blank")
                changes["api_key"] = self.cipher.encrypt(api_key.strip())
            if label is not None:
                changes["label"] = label or None
            if metadata is not None:
                changes["metadata"] = metadata

            updated_key = existing.model_copy(update=changes)
            self._commit(
                account_id,
                api_keys=[updated_key if key.id == key_id else key for key in account.api_keys],
            )

        log_account_action(account_id, "updated api key", key_id=key_id)
        return updated_key

    async def remove_api_key(self, account_id: str, key_id: str) -> None:
        async with self._account_lock(account_id) as account:
            self._get_api_key(account, key_id)
            self._commit(account_id, api_keys=[key for key in account.api_keys if key.id != key_id])

        log_account_action(account_id, "removed api key", key_id=key_id)

    # ------------------------------------------------------------------
    # Debrid keys on addons
    # ------------------------------------------------------------------

    def _decrypted_debrid_key(self, account: Account, key_id: str) -> ApiKey:
        stored = self._get_api_key(account, key_id)
        if as_debrid_service(stored.service) is None:
            raise InvalidServiceTypeError(f"'{stored.service}' is not a debrid service")
        return stored.model_copy(update={"api_key": self.cipher.decrypt(stored.api_key)})

    @staticmethod
    def _require_installed(addons: Sequence[AddonDescriptor], addon_id: str) -> int:
        index = next((i for i, addon in enumerate(addons) if addon.addon_id == addon_id), None)
        if index is None:
            raise ValidationError(f"Addon '{addon_id}' is not installed")
        if addons[index].is_protected:
            raise ProtectedAddonError(addon_id)
        return index

    async def apply_debrid_to_addon(self, account_id: str, addon_id: str, key_id: str) -> Account:
        """Embed one of the account's debrid keys in an installed addon's URL."""
        async with self._account_lock(account_id) as account:
            debrid_key = self._decrypted_debrid_key(account, key_id)
            auth_key = self._auth_key(account)
            addons = list(await self.client.get_addon_collection(auth_key))

            index = self._require_installed(addons, addon_id)
            addons[index] = apply_debrid_key(addons[index], debrid_key)
            updated = await self._write_addons(account_id, auth_key, addons)

        log_account_action(account_id, "applied debrid key", addon_id=addon_id, service=debrid_key.service)
        return updated

    async def remove_debrid_from_addon(self, account_id: str, addon_id: str) -> Account:
        async with self._account_lock(account_id) as account:
            auth_key = self._auth_key(account)
            addons = list(await self.client.get_addon_collection(auth_key))

            index = self._require_installed(addons, addon_id)
            addons[index] = remove_debrid_key(addons[index])
            updated = await self._write_addons(account_id, auth_key, addons)

        log_account_action(account_id, "removed debrid key", addon_id=addon_id)
        return updated

    async def _bulk_debrid(self, account_id, addon_ids, transform, action: str) -> BulkDebridResult:
        result = BulkDebridResult()

        async with self._account_lock(account_id) as account:
            auth_key = self._auth_key(account)
            addons = list(await self.client.get_addon_collection(auth_key))

            if addon_ids is None:
                targets = [
                    addon.addon_id for addon in addons
                    if not addon.is_protected and is_debrid_supported_addon(addon.transport_url)
                ]
            else:
                targets = list(addon_ids)

            for addon_id in targets:
                try:
                    index = self._require_installed(addons, addon_id)
                    addons[index] = transform(addons[index])
                    result.success += 1
                except StremioManagerError as e:
                    result.failed += 1
                    result.errors.append(f"{addon_id}: {e}")

            if result.success:
                await self._write_addons(account_id, auth_key, addons)

        log_account_action(account_id, action, success=result.success, failed=result.failed)
        return result

    async def bulk_apply_debrid_key(
        self,
        account_id: str,
        key_id: str,
        addon_ids: Optional[Sequence[str]] = None,
    ) -> BulkDebridResult:
        """
        Apply a debrid key to several addons with a single collection write.

        With no addon_ids, every unprotected addon whose URL format supports
        debrid keys is targeted. Per-addon failures are counted, not raised.
        """
        debrid_key = self._decrypted_debrid_key(self.get_account(account_id), key_id)
        return await self._bulk_debrid(
            account_id, addon_ids, lambda addon: apply_debrid_key(addon, debrid_key), "bulk applied debrid key",
        )

    async def bulk_remove_debrid(
        self,
        account_id: str,
        addon_ids: Optional[Sequence[str]] = None,
    ) -> BulkDebridResult:
        return await self._bulk_debrid(account_id, addon_ids, remove_debrid_key, "bulk removed debrid key")
