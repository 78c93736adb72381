"""
Unit tests for addon health probing.
"""
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from stremio_manager.schemas.saved_addon import AddonHealth
from stremio_manager.services.addon_health import HealthProber, health_summary
from tests.lib import make_saved


def response(status_code: int):
    mock = MagicMock()
    mock.status_code = status_code
    return mock


@pytest.fixture
def http_client():
    client = AsyncMock()
    client.head.return_value = response(200)
    return client


@pytest.mark.asyncio
async def test_probe_uses_head_on_manifest_url(http_client):
    prober = HealthProber(http_client=http_client, timeout=2)

    health = await prober.probe("https://addon.example.com/config")

    assert health.is_online is True
    http_client.head.assert_awaited_once_with(
        "https://addon.example.com/config/manifest.json", timeout=2, follow_redirects=True,
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [301, 404, 500])
async def test_non_200_is_offline(http_client, status_code):
    http_client.head.return_value = response(status_code)

    health = await HealthProber(http_client=http_client).probe("https://addon.example.com/manifest.json")

    assert health.is_online is False


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [
    httpx.ConnectError("refused"),
    httpx.ReadTimeout("slow"),
    httpx.InvalidURL("Invalid non-printable ASCII character in URL"),
])
async def test_network_errors_are_offline(http_client, error):
    http_client.head.side_effect = error

    health = await HealthProber(http_client=http_client).probe("https://addon.example.com/manifest.json")

    assert health.is_online is False
    assert health.last_checked is not None


@pytest.mark.asyncio
async def test_probe_all_reports_progress_per_window_and_keeps_order(http_client):
    addons = [make_saved(f"addon{i}") for i in range(12)]
    offline_url = addons[7].install_url

    async def head(url, **kwargs):
        return response(503 if url == offline_url else 200)

    http_client.head.side_effect = head
    progress = []

    checked = await HealthProber(http_client=http_client, concurrency=5).probe_all(
        addons, on_progress=lambda done, total: progress.append((done, total)),
    )

    assert progress == [(5, 12), (10, 12), (12, 12)]
    assert [a.id for a in checked] == [a.id for a in addons]
    assert checked[7].health.is_online is False
    assert all(a.health.is_online for i, a in enumerate(checked) if i != 7)
    assert all(a.health is None for a in addons)


@pytest.mark.asyncio
async def test_malformed_urls_do_not_abort_the_batch(http_client):
    control_char = make_saved("bad", url="https://bad.example.com/\x01/manifest.json")
    broken_host = make_saved("ipv6", url="http://[::1/manifest.json")
    good = make_saved("good")

    async def head(url, **kwargs):
        if "\x01" in url:
            raise httpx.InvalidURL("Invalid non-printable ASCII character in URL")
        return response(200)

    http_client.head.side_effect = head

    checked = await HealthProber(http_client=http_client).probe_all([control_char, broken_host, good])

    assert [a.id for a in checked] == [control_char.id, broken_host.id, good.id]
    assert [a.health.is_online for a in checked] == [False, False, True]


def test_health_summary_counts_unchecked():
    online = make_saved("a").model_copy(update={"health": AddonHealth(is_online=True)})
    offline = make_saved("b").model_copy(update={"health": AddonHealth(is_online=False)})

    summary = health_summary([online, offline, make_saved("c")])

    assert (summary.online, summary.offline, summary.unchecked) == (1, 1, 1)
