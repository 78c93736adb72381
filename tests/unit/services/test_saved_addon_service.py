"""
Unit tests for the saved addon library.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from stremio_manager.core.exceptions import (
    ManifestFetchFailedError,
    SavedAddonNotFoundError,
    ValidationError,
)
from stremio_manager.core.storage import StorageKeys
from stremio_manager.schemas.saved_addon import AddonHealth
from stremio_manager.services.addon_health import HealthProber
from stremio_manager.services.saved_addon_service import SavedAddonLibrary
from tests.lib import make_addon, make_saved


@pytest.fixture
def fetch_manifest():
    return AsyncMock()


@pytest.fixture
def prober():
    return MagicMock(spec=HealthProber)


@pytest.fixture
def library(store, fetch_manifest, prober):
    return SavedAddonLibrary(store, fetch_manifest, prober)


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_stores_manifest_snapshot(self, library, fetch_manifest, store):
        fetch_manifest.return_value = make_addon("torrentio", url="https://t.example.com/manifest.json", version="0.0.14")

        saved = await library.create_saved_addon("  My Torrentio ", " https://t.example.com/manifest.json ", ["Movies", "movies", "4K Only"])

        fetch_manifest.assert_awaited_once_with("https://t.example.com/manifest.json")
        assert saved.name == "My Torrentio"
        assert saved.manifest.version == "0.0.14"
        assert saved.tags == ["movies", "4k-only"]
        assert store.get(StorageKeys.ADDON_LIBRARY)[0]["installUrl"] == "https://t.example.com/manifest.json"

    @pytest.mark.asyncio
    async def test_create_with_unreachable_url_saves_nothing(self, library, fetch_manifest):
        fetch_manifest.side_effect = ManifestFetchFailedError("https://bad.example.com", "HTTP 404")

        with pytest.raises(ManifestFetchFailedError):
            await library.create_saved_addon("Bad", "https://bad.example.com")

        assert library.list_saved_addons() == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name,url", [("", "https://x"), ("x" * 101, "https://x"), ("Ok", "  ")])
    async def test_create_rejects_invalid_input(self, library, fetch_manifest, name, url):
        with pytest.raises(ValidationError):
            await library.create_saved_addon(name, url)

        fetch_manifest.assert_not_awaited()

    def test_save_from_installed(self, library):
        saved = library.save_from_installed(make_addon("cinemeta"), tags=["meta"])

        assert saved.name == "Cinemeta"
        assert saved.install_url == "https://cinemeta.example.com/manifest.json"
        assert saved.tags == ["meta"]

    def test_initialize_round_trip(self, library, store, fetch_manifest):
        library.save_from_installed(make_addon("cinemeta"))

        reloaded = SavedAddonLibrary(store, fetch_manifest)
        assert [a.manifest.id for a in reloaded.initialize()] == ["cinemeta"]

    def test_initialize_rejects_corrupt_data(self, store, fetch_manifest):
        store.set(StorageKeys.ADDON_LIBRARY, [{"name": "missing fields"}])

        with pytest.raises(ValidationError):
            SavedAddonLibrary(store, fetch_manifest).initialize()


class TestQueries:
    @pytest.fixture
    def populated(self, library):
        library.import_saved_addons([
            make_saved("b", name="Beta", tags=["movies"]),
            make_saved("a", name="alpha", tags=["series"]),
            make_saved("c", name="Gamma", tags=["movies", "anime"]),
        ])
        return library

    def test_list_is_sorted_by_name(self, populated):
        assert [a.name for a in populated.list_saved_addons()] == ["alpha", "Beta", "Gamma"]

    def test_search_and_tag_filters(self, populated):
        assert [a.name for a in populated.list_saved_addons(search="ANIME")] == ["Gamma"]
        assert [a.name for a in populated.list_saved_addons(tag="movies")] == ["Beta", "Gamma"]
        assert [a.name for a in populated.list_saved_addons(search="beta", tag="series")] == []

    def test_all_tags(self, populated):
        assert populated.all_tags() == ["anime", "movies", "series"]

    def test_get_many_keeps_requested_order(self, populated):
        ids = [a.id for a in populated.list_saved_addons()]

        assert populated.get_many([ids[2], ids[0]]) == [populated.get(ids[2]), populated.get(ids[0])]

    def test_get_unknown(self, library):
        with pytest.raises(SavedAddonNotFoundError):
            library.get("missing")


class TestUpdate:
    @pytest.mark.asyncio
    async def test_equivalent_url_does_not_refetch(self, library, fetch_manifest):
        saved = make_saved("a", url="https://a.example.com/manifest.json?b=2&a=1")
        library.import_saved_addons([saved])

        updated = await library.update_saved_addon(
            saved.id, name="Renamed", install_url="https://A.example.com/manifest.json?a=1&b=2",
        )

        fetch_manifest.assert_not_awaited()
        assert updated.name == "Renamed"
        assert updated.install_url == saved.install_url

    @pytest.mark.asyncio
    async def test_new_url_refreshes_snapshot_and_clears_health(self, library, fetch_manifest):
        saved = make_saved("a").model_copy(update={"health": AddonHealth(is_online=False)})
        library.import_saved_addons([saved])
        fetch_manifest.return_value = make_addon("a", url="https://mirror.example.com/manifest.json", version="2.0.0")

        updated = await library.update_saved_addon(saved.id, install_url="https://mirror.example.com/manifest.json")

        assert updated.install_url == "https://mirror.example.com/manifest.json"
        assert updated.manifest.version == "2.0.0"
        assert updated.health is None
        assert updated.updated_at >= saved.updated_at

    @pytest.mark.asyncio
    async def test_refresh_manifest(self, library, fetch_manifest):
        saved = make_saved("a")
        library.import_saved_addons([saved])
        fetch_manifest.return_value = make_addon("a", version="3.0.0")

        refreshed = await library.refresh_manifest(saved.id)

        fetch_manifest.assert_awaited_once_with(saved.install_url)
        assert refreshed.manifest.version == "3.0.0"
        assert refreshed.install_url == saved.install_url

    def test_delete_and_mark_used(self, library):
        first, second = make_saved("a"), make_saved("b")
        library.import_saved_addons([first, second])

        library.mark_used([first.id])
        assert library.get(first.id).last_used is not None
        assert library.get(second.id).last_used is None

        library.delete_saved_addon(first.id)
        assert [a.id for a in library.list_saved_addons()] == [second.id]
        with pytest.raises(SavedAddonNotFoundError):
            library.delete_saved_addon(first.id)


class TestChecks:
    @pytest.mark.asyncio
    async def test_check_health_stores_results(self, library, prober, store):
        online, offline = make_saved("a"), make_saved("b")
        library.import_saved_addons([online, offline])
        prober.probe_all = AsyncMock(return_value=[
            online.model_copy(update={"health": AddonHealth(is_online=True)}),
            offline.model_copy(update={"health": AddonHealth(is_online=False)}),
        ])

        await library.check_health()

        summary = library.health_summary()
        assert (summary.online, summary.offline, summary.unchecked) == (1, 1, 0)
        stored = {item["id"]: item["health"]["isOnline"] for item in store.get(StorageKeys.ADDON_LIBRARY)}
        assert stored == {online.id: True, offline.id: False}

    @pytest.mark.asyncio
    async def test_check_health_keeps_concurrent_edits(self, library, prober):
        saved = make_saved("a")
        library.import_saved_addons([saved])

        async def probe_all(addons, on_progress=None):
            library._replace(library.get(saved.id).model_copy(update={"name": "Renamed meanwhile"}))
            return [addons[0].model_copy(update={"health": AddonHealth(is_online=True)})]

        prober.probe_all = probe_all

        await library.check_health()

        stored = library.get(saved.id)
        assert stored.name == "Renamed meanwhile"
        assert stored.health.is_online

    @pytest.mark.asyncio
    async def test_check_updates(self, library, fetch_manifest):
        current, stale, broken = make_saved("a", version="1.0.0"), make_saved("b", version="1.0.0"), make_saved("c")
        library.import_saved_addons([current, stale, broken])

        async def fetch(url):
            if url.startswith("https://c."):
                raise ManifestFetchFailedError(url, "timeout")
            return make_addon("x", version="1.0.0" if url.startswith("https://a.") else "1.5.0")

        fetch_manifest.side_effect = fetch

        updates = {info.addon_id: info for info in await library.check_updates()}

        assert set(updates) == {current.id, stale.id}
        assert not updates[current.id].has_update
        assert updates[stale.id].has_update
        assert updates[stale.id].latest_version == "1.5.0"


class TestImport:
    def test_import_skips_known_and_duplicate_ids(self, library):
        saved = make_saved("a")
        library.import_saved_addons([saved])

        other = make_saved("b")
        added = library.import_saved_addons([saved, other, other])

        assert added == 1
        assert len(library.list_saved_addons()) == 2

    def test_import_nothing_does_not_write(self, library, store):
        assert library.import_saved_addons([]) == 0
        assert store.get(StorageKeys.ADDON_LIBRARY) is None
