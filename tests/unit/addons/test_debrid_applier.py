"""
Unit tests for applying and removing debrid keys on addons.
"""
import pytest

from stremio_manager.addons.debrid import apply_debrid_key, remove_debrid_key
from stremio_manager.core.exceptions import InvalidServiceTypeError, UnsupportedAddonTypeError
from stremio_manager.schemas.account import ApiKey
from stremio_manager.schemas.addon import AddonFlags
from tests.lib import make_addon

TORRENTIO_URL = "https://torrentio.strem.fun/qualityfilter=480p|sort=size/manifest.json"


def torrentio_addon(url: str = TORRENTIO_URL):
    addon = make_addon("com.stremio.torrentio.addon", url=url)
    return addon.model_copy(update={"flags": AddonFlags(official=False)})


def test_apply_writes_key_and_keeps_other_params():
    addon = torrentio_addon()

    updated = apply_debrid_key(addon, ApiKey(service="realdebrid", api_key="RDKEY"))

    assert updated.transport_url == (
        "https://torrentio.strem.fun/qualityfilter=480p|realdebrid=RDKEY|sort=size/manifest.json"
    )
    assert updated.manifest == addon.manifest
    assert updated.flags == addon.flags
    assert addon.transport_url == TORRENTIO_URL


def test_apply_replaces_existing_service():
    addon = torrentio_addon("https://torrentio.strem.fun/realdebrid=OLD/manifest.json")

    updated = apply_debrid_key(addon, ApiKey(service="TorBox", api_key="TBKEY"))

    assert updated.transport_url == "https://torrentio.strem.fun/torbox=TBKEY/manifest.json"


def test_remove_after_apply_restores_original_url():
    addon = torrentio_addon()

    restored = remove_debrid_key(apply_debrid_key(addon, ApiKey(service="torbox", api_key="TBKEY")))

    assert restored.transport_url == TORRENTIO_URL


def test_remove_on_unconfigured_addon_is_a_no_op():
    addon = torrentio_addon("https://torrentio.strem.fun/manifest.json")

    assert remove_debrid_key(addon).transport_url == addon.transport_url


def test_unsupported_addon_is_rejected():
    with pytest.raises(UnsupportedAddonTypeError):
        apply_debrid_key(make_addon("cinemeta"), ApiKey(service="realdebrid", api_key="RDKEY"))
    with pytest.raises(UnsupportedAddonTypeError):
        remove_debrid_key(make_addon("cinemeta"))


def test_non_debrid_key_is_rejected():
    with pytest.raises(InvalidServiceTypeError):
        apply_debrid_key(torrentio_addon(), ApiKey(service="tmdb", api_key="TMDBKEY"))
