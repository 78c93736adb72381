"""
Saved addon library: reusable addon configurations kept independently of
accounts and applied to them through the merge engine.
"""
import logging
from typing import Dict, Iterable, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from stremio_manager.core.concurrency import ProgressCallback, run_in_windows
from stremio_manager.core.config import settings
from stremio_manager.core.exceptions import ManifestFetchFailedError, SavedAddonNotFoundError, ValidationError
from stremio_manager.core.logging_config import LogCategory, log_error, log_info
from stremio_manager.core.storage import KeyValueStore, StorageKeys
from stremio_manager.core.time_utils import utc_now
from stremio_manager.schemas.addon import AddonDescriptor
from stremio_manager.schemas.merge import AddonUpdateInfo
from stremio_manager.schemas.saved_addon import HealthSummary, SavedAddon
from stremio_manager.services.addon_health import HealthProber, health_summary
from stremio_manager.services.addon_merger import FetchManifest, urls_equivalent
from stremio_manager.utils.validators import require_name, require_tags

logger = logging.getLogger(LogCategory.SYNC)


class SavedAddonLibrary:
    """Service class for saved addon operations."""

    def __init__(self, store: KeyValueStore, fetch_manifest: FetchManifest, prober: Optional[HealthProber] = None):
        self.store = store
        self.fetch_manifest = fetch_manifest
        self.prober = prober or HealthProber()
        self._addons: List[SavedAddon] = []

    def initialize(self) -> List[SavedAddon]:
        """Load the library from storage."""
        raw = self.store.get(StorageKeys.ADDON_LIBRARY) or []
        try:
            self._addons = [SavedAddon.model_validate(item) for item in raw]
        except (PydanticValidationError, TypeError) as e:
            log_error(e, action="load_addon_library")
            raise ValidationError("Failed to load the saved addon library") from e
        return list(self._addons)

    def _persist(self) -> None:
        self.store.set(
            StorageKeys.ADDON_LIBRARY,
            [addon.model_dump(mode="json", by_alias=True) for addon in self._addons],
        )

    def _replace(self, updated: SavedAddon) -> SavedAddon:
        self._addons = [updated if addon.id == updated.id else addon for addon in self._addons]
        self._persist()
        return updated

    def list_saved_addons(self, search: Optional[str] = None, tag: Optional[str] = None) -> List[SavedAddon]:
        """List saved addons sorted by name, optionally filtered by text and tag."""
        addons: Iterable[SavedAddon] = self._addons
        if search:
            needle = search.strip().lower()
            addons = [
                addon for addon in addons
                if needle in addon.name.lower()
                or needle in addon.manifest.name.lower()
                or needle in addon.manifest.description.lower()
                or any(needle in t for t in addon.tags)
            ]
        if tag:
            addons = [addon for addon in addons if tag in addon.tags]
        return sorted(addons, key=lambda addon: addon.name.lower())

    def get(self, saved_addon_id: str) -> SavedAddon:
        addon = next((a for a in self._addons if a.id == saved_addon_id), None)
        if addon is None:
            raise SavedAddonNotFoundError(f"Saved addon '{saved_addon_id}' not found")
        return addon

    def get_many(self, saved_addon_ids: Sequence[str]) -> List[SavedAddon]:
        """Get several saved addons, in the order requested."""
        return [self.get(saved_addon_id) for saved_addon_id in saved_addon_ids]

    def all_tags(self) -> List[str]:
        return sorted({tag for addon in self._addons for tag in addon.tags})

    async def create_saved_addon(self, name: str, install_url: str, tags: Sequence[str] = ()) -> SavedAddon:
        """
        Save an addon from its install URL.

        The manifest is fetched to validate the URL and stored as a snapshot.
        """
        name = require_name(name, "Saved addon name")
        tags = require_tags(tags)
        if not install_url or not install_url.strip():
            raise ValidationError("Install URL is required")

        descriptor = await self.fetch_manifest(install_url.strip())
        saved = SavedAddon(
            name=name,
            install_url=descriptor.transport_url,
            manifest=descriptor.manifest,
            tags=tags,
        )
        self._addons = [*self._addons, saved]
        self._persist()
        log_info("Saved addon created", saved_addon_id=saved.id, addon_id=saved.manifest.id)
        return saved

    def save_from_installed(
        self,
        addon: AddonDescriptor,
        name: Optional[str] = None,
        tags: Sequence[str] = (),
    ) -> SavedAddon:
        """Save an addon already installed on an account, reusing its manifest."""
        saved = SavedAddon(
            name=require_name(name or addon.manifest.name, "Saved addon name"),
            install_url=addon.transport_url,
            manifest=addon.manifest.model_copy(deep=True),
            tags=require_tags(tags),
        )
        self._addons = [*self._addons, saved]
        self._persist()
        log_info("Saved addon created from installed addon", saved_addon_id=saved.id, addon_id=saved.manifest.id)
        return saved

    async def update_saved_addon(
        self,
        saved_addon_id: str,
        name: Optional[str] = None,
        install_url: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
    ) -> SavedAddon:
        """Update a saved addon. A changed install URL refreshes the manifest snapshot."""
        existing = self.get(saved_addon_id)
        changes: Dict[str, object] = {"updated_at": utc_now()}

        if name is not None:
            changes["name"] = require_name(name, "Saved addon name")
        if tags is not None:
            changes["tags"] = require_tags(tags)
        if install_url is not None and not urls_equivalent(install_url, existing.install_url):
            descriptor = await self.fetch_manifest(install_url.strip())
            changes["install_url"] = descriptor.transport_url
            changes["manifest"] = descriptor.manifest
            changes["health"] = None

        return self._replace(self.get(saved_addon_id).model_copy(update=changes))

    async def refresh_manifest(self, saved_addon_id: str) -> SavedAddon:
        """Replace the manifest snapshot with the one currently published."""
        existing = self.get(saved_addon_id)
        descriptor = await self.fetch_manifest(existing.install_url)
        return self._replace(self.get(saved_addon_id).model_copy(update={
            "manifest": descriptor.manifest,
            "updated_at": utc_now(),
        }))

    def delete_saved_addon(self, saved_addon_id: str) -> None:
        self.get(saved_addon_id)
        self._addons = [addon for addon in self._addons if addon.id != saved_addon_id]
        self._persist()
        log_info("Saved addon deleted", saved_addon_id=saved_addon_id)

    def mark_used(self, saved_addon_ids: Iterable[str]) -> None:
        """Record that saved addons were just applied to an account."""
        ids = set(saved_addon_ids)
        if not ids:
            return
        now = utc_now()
        self._addons = [
            addon.model_copy(update={"last_used": now}) if addon.id in ids else addon
            for addon in self._addons
        ]
        self._persist()

    async def check_health(self, on_progress: Optional[ProgressCallback] = None) -> List[SavedAddon]:
        """Probe every saved addon and store the results."""
        checked = {addon.id: addon.health for addon in await self.prober.probe_all(self._addons, on_progress)}
        # Only health is taken from the probe; other fields may have changed meanwhile
        self._addons = [
            addon.model_copy(update={"health": checked[addon.id]}) if addon.id in checked else addon
            for addon in self._addons
        ]
        self._persist()
        return self.list_saved_addons()

    async def check_updates(self) -> List[AddonUpdateInfo]:
        """
        Compare each snapshot's version with the published manifest.

        Requests are bounded by `update_check_concurrency`. Addons whose
        manifest cannot be fetched are left out.
        """
        async def check(saved: SavedAddon) -> Optional[AddonUpdateInfo]:
            try:
                latest = await self.fetch_manifest(saved.install_url)
            except ManifestFetchFailedError as e:
                logger.warning(f"Update check failed for saved addon '{saved.name}': {e}")
                return None
            return AddonUpdateInfo(
                addon_id=saved.id,
                name=saved.name,
                transport_url=saved.install_url,
                installed_version=saved.manifest.version,
                latest_version=latest.manifest.version,
                has_update=latest.manifest.version != saved.manifest.version,
            )

        results = await run_in_windows(list(self._addons), check, settings.update_check_concurrency)
        return [info for info in results if info is not None]

    def health_summary(self) -> HealthSummary:
        return health_summary(self._addons)

    def import_saved_addons(self, addons: Iterable[SavedAddon]) -> int:
        """Add saved addons whose id is not already in the library. Returns the number added."""
        existing = {addon.id for addon in self._addons}
        new: List[SavedAddon] = []
        for addon in addons:
            if addon.id not in existing:
                existing.add(addon.id)
                new.append(addon)
        if new:
            self._addons = [*self._addons, *new]
            self._persist()
        return len(new)
