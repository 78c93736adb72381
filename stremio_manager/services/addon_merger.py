"""
Merging saved addons into an account's addon collection.

Rules applied per saved addon, in input order:
- existing + protected        -> left alone, reported as protected
- existing + replace-matching -> fresh manifest replaces the entry at its
                                 index; a failed fetch skips the addon
                                 rather than writing a stale manifest
- existing + add-only         -> skipped as already-exists
- new                         -> appended from a fresh manifest, or from the
                                 saved manifest snapshot when the fetch fails

The fetched manifest decides where an addon lands: when a URL now serves an
id that is installed at another position, that entry is the one considered,
so a collection never ends up holding the same id twice.
"""
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from stremio_manager.core.exceptions import ManifestFetchFailedError
from stremio_manager.core.logging_config import LogCategory
from stremio_manager.models.enums import MergeStrategy, SkipReason
from stremio_manager.schemas.addon import AddonDescriptor
from stremio_manager.schemas.merge import (
    AddedAddon,
    MergeResult,
    ProtectedAddon,
    RemoveResult,
    SkippedAddon,
    UpdatedAddon,
)
from stremio_manager.schemas.saved_addon import SavedAddon

logger = logging.getLogger(LogCategory.SYNC)

FetchManifest = Callable[[str], Awaitable[AddonDescriptor]]


class AddonMerger:
    """Applies saved addons to addon collections."""

    def __init__(self, fetch_manifest: FetchManifest):
        """
        Args:
            fetch_manifest: Coroutine returning a descriptor for an install URL,
                raising ManifestFetchFailedError when it cannot
        """
        self.fetch_manifest = fetch_manifest

    async def merge(
        self,
        current: Sequence[AddonDescriptor],
        saved: Sequence[SavedAddon],
        strategy: MergeStrategy = MergeStrategy.REPLACE_MATCHING,
    ) -> Tuple[List[AddonDescriptor], MergeResult]:
        """
        Merge saved addons into current.

        The input collection is not mutated; a new list is returned together
        with the per-addon outcome.
        """
        addons = list(current)
        result = MergeResult()

        for saved_addon in saved:
            addon_id = saved_addon.manifest.id
            index = _index_of(addons, addon_id)

            if index is None:
                descriptor = await self._fetch_or_cached(saved_addon)
                # The URL may now serve an id that is already installed
                target = _index_of(addons, descriptor.addon_id)
                if target is None:
                    addons.append(descriptor)
                    result.added.append(AddedAddon(
                        addon_id=descriptor.addon_id,
                        name=descriptor.manifest.name,
                        install_url=descriptor.transport_url,
                    ))
                else:
                    self._replace_existing(addons, target, descriptor, strategy, result)
                continue

            existing = addons[index]

            if existing.is_protected:
                result.protected.append(ProtectedAddon(addon_id=addon_id, name=existing.manifest.name))
                continue

            if strategy == MergeStrategy.ADD_ONLY:
                result.skipped.append(SkippedAddon(addon_id=addon_id, reason=SkipReason.ALREADY_EXISTS))
                continue

            try:
                fresh = await self.fetch_manifest(saved_addon.install_url)
            except ManifestFetchFailedError as e:
                logger.warning(f"Skipping update of '{addon_id}': {e}")
                result.skipped.append(SkippedAddon(addon_id=addon_id, reason=SkipReason.FETCH_FAILED))
                continue

            target = _index_of(addons, fresh.addon_id)
            if target is not None and target != index:
                logger.warning(
                    f"Skipping update of '{addon_id}': its URL now serves '{fresh.addon_id}', "
                    f"which is already installed"
                )
                result.skipped.append(SkippedAddon(addon_id=addon_id, reason=SkipReason.ALREADY_EXISTS))
                continue

            addons[index] = fresh
            result.updated.append(UpdatedAddon(
                addon_id=addon_id,
                old_url=existing.transport_url,
                new_url=fresh.transport_url,
            ))

        logger.info(
            f"Merged {len(saved)} saved addon(s): added={len(result.added)} updated={len(result.updated)} "
            f"skipped={len(result.skipped)} protected={len(result.protected)}"
        )
        return addons, result

    async def preview(
        self,
        current: Sequence[AddonDescriptor],
        saved: Sequence[SavedAddon],
        strategy: MergeStrategy = MergeStrategy.REPLACE_MATCHING,
    ) -> MergeResult:
        """
        Report what merge() would do. Manifests are still fetched.
        """
        _, result = await self.merge(current, saved, strategy)
        return result

    @staticmethod
    def _replace_existing(
        addons: List[AddonDescriptor],
        index: int,
        descriptor: AddonDescriptor,
        strategy: MergeStrategy,
        result: MergeResult,
    ) -> None:
        existing = addons[index]
        if existing.is_protected:
            result.protected.append(ProtectedAddon(addon_id=existing.addon_id, name=existing.manifest.name))
        elif strategy == MergeStrategy.ADD_ONLY:
            result.skipped.append(SkippedAddon(addon_id=existing.addon_id, reason=SkipReason.ALREADY_EXISTS))
        else:
            addons[index] = descriptor
            result.updated.append(UpdatedAddon(
                addon_id=existing.addon_id,
                old_url=existing.transport_url,
                new_url=descriptor.transport_url,
            ))

    async def _fetch_or_cached(self, saved_addon: SavedAddon) -> AddonDescriptor:
        try:
            return await self.fetch_manifest(saved_addon.install_url)
        except ManifestFetchFailedError as e:
            logger.warning(f"Using cached manifest for '{saved_addon.manifest.id}': {e}")
            return AddonDescriptor(
                transport_url=saved_addon.install_url,
                manifest=saved_addon.manifest.model_copy(deep=True),
            )

    @staticmethod
    def remove_addons(current: Sequence[AddonDescriptor], addon_ids: Sequence[str]) -> RemoveResult:
        """
        Remove addons by id. Protected addons are always kept and reported.
        """
        wanted = set(addon_ids)
        kept: List[AddonDescriptor] = []
        removed: List[str] = []
        protected_ids: List[str] = []

        for addon in current:
            if addon.addon_id not in wanted:
                kept.append(addon)
            elif addon.is_protected:
                kept.append(addon)
                protected_ids.append(addon.addon_id)
            else:
                removed.append(addon.addon_id)

        return RemoveResult(addons=kept, removed=removed, protected_ids=protected_ids)


def _index_of(addons: Sequence[AddonDescriptor], addon_id: str) -> Optional[int]:
    return next((i for i, addon in enumerate(addons) if addon.addon_id == addon_id), None)


def _normalize_url(url: str) -> str:
    try:
        parts = urlsplit(url)
        query = urlencode(sorted(parse_qsl(parts.query, keep_blank_values=True)))
        normalized = urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))
    except ValueError:
        normalized = url
    return normalized.lower().rstrip("/")


def urls_equivalent(first: str, second: str) -> bool:
    """Compare install URLs ignoring case, query order and a trailing slash."""
    return _normalize_url(first) == _normalize_url(second)
