"""
Unit tests for the Stremio API client.
"""
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from stremio_manager.core.exceptions import (
    InvalidCredentialsError,
    ManifestFetchFailedError,
    NetworkUnavailableError,
    RemoteApiError,
)
from stremio_manager.integrations.stremio_client import StremioClient, manifest_url_for
from tests.lib import make_addon

API_URL = "https://api.example.com"

SAMPLE_ADDON = {
    "transportUrl": "https://v3-cinemeta.strem.io/manifest.json",
    "transportName": "http",
    "manifest": {
        "id": "com.linvo.cinemeta",
        "name": "Cinemeta",
        "version": "3.0.13",
        "idPrefixes": ["tt"],
        "catalogs": [],
        "resources": ["meta"],
        "types": ["movie", "series"],
        "addonCatalogs": [],
    },
    "flags": {"official": True, "protected": True},
}

SAMPLE_MANIFEST = {
    "id": "com.stremio.torrentio.addon",
    "name": "Torrentio",
    "version": "0.0.14",
    "description": "Provides torrent streams",
    "resources": ["stream"],
}


def response(status_code: int = 200, body=None):
    mock = MagicMock()
    mock.status_code = status_code
    mock.json.return_value = body if body is not None else {}
    mock.text = ""
    return mock


@pytest.fixture
def http_client():
    return AsyncMock()


@pytest.fixture
def stremio(http_client):
    return StremioClient(base_url=API_URL, http_client=http_client)


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_success(self, stremio, http_client):
        http_client.post.return_value = response(body={
            "result": {"authKey": "AUTH", "user": {"_id": "u1", "email": "me@example.com"}},
        })

        login = await stremio.login("me@example.com", "secret")

        assert login.auth_key == "AUTH"
        assert login.user.id == "u1"
        args, kwargs = http_client.post.call_args
        assert args[0] == f"{API_URL}/api/login"
        assert kwargs["json"] == {"type": "Auth", "email": "me@example.com", "password": "secret"}

    @pytest.mark.asyncio
    async def test_login_unauthorized(self, stremio, http_client):
        http_client.post.return_value = response(401)

        with pytest.raises(InvalidCredentialsError):
            await stremio.login("me@example.com", "wrong")

    @pytest.mark.asyncio
    async def test_login_error_body(self, stremio, http_client):
        http_client.post.return_value = response(body={"error": {"message": "Wrong passphrase", "code": 2}})

        with pytest.raises(InvalidCredentialsError, match="Wrong passphrase"):
            await stremio.login("me@example.com", "wrong")

    @pytest.mark.asyncio
    async def test_login_without_auth_key(self, stremio, http_client):
        http_client.post.return_value = response(body={"result": {}})

        with pytest.raises(InvalidCredentialsError):
            await stremio.login("me@example.com", "secret")

    @pytest.mark.asyncio
    async def test_network_failure(self, stremio, http_client):
        http_client.post.side_effect = httpx.ConnectError("Connection refused")

        with pytest.raises(NetworkUnavailableError):
            await stremio.login("me@example.com", "secret")


class TestAddonCollection:
    @pytest.mark.asyncio
    async def test_get_collection_parses_descriptors(self, stremio, http_client):
        http_client.post.return_value = response(body={"result": {"addons": [SAMPLE_ADDON], "lastModified": 1}})

        addons = await stremio.get_addon_collection("AUTH")

        assert len(addons) == 1
        assert addons[0].addon_id == "com.linvo.cinemeta"
        assert addons[0].is_protected
        assert addons[0].manifest.id_prefixes == ["tt"]
        assert http_client.post.call_args.kwargs["json"] == {
            "type": "AddonCollectionGet", "authKey": "AUTH", "update": True,
        }

    @pytest.mark.asyncio
    async def test_get_collection_keeps_unknown_fields_on_write_back(self, stremio, http_client):
        http_client.post.return_value = response(body={"result": {"addons": [SAMPLE_ADDON]}})

        addons = await stremio.get_addon_collection("AUTH")

        assert addons[0].to_wire()["manifest"]["addonCatalogs"] == []

    @pytest.mark.asyncio
    async def test_empty_collection(self, stremio, http_client):
        http_client.post.return_value = response(body={"result": {"addons": []}})

        assert await stremio.get_addon_collection("AUTH") == []

    @pytest.mark.asyncio
    async def test_expired_auth_key(self, stremio, http_client):
        http_client.post.return_value = response(401)

        with pytest.raises(InvalidCredentialsError):
            await stremio.get_addon_collection("EXPIRED")

    @pytest.mark.asyncio
    async def test_server_error(self, stremio, http_client):
        http_client.post.return_value = response(500, {"error": "boom"})

        with pytest.raises(RemoteApiError) as exc_info:
            await stremio.get_addon_collection("AUTH")
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_set_collection_sends_wire_format(self, stremio, http_client):
        http_client.post.return_value = response(body={"result": {"success": True}})
        addon = make_addon("a")

        await stremio.set_addon_collection("AUTH", [addon])

        payload = http_client.post.call_args.kwargs["json"]
        assert payload["type"] == "AddonCollectionSet"
        assert payload["authKey"] == "AUTH"
        assert payload["addons"] == [{
            "transportUrl": addon.transport_url,
            "manifest": {"id": "a", "name": "A", "version": "1.0.0", "description": ""},
        }]

    @pytest.mark.asyncio
    async def test_set_collection_rejected(self, stremio, http_client):
        http_client.post.return_value = response(body={"result": {"success": False}})

        with pytest.raises(RemoteApiError):
            await stremio.set_addon_collection("AUTH", [])


class TestManifest:
    @pytest.mark.asyncio
    async def test_fetch_manifest(self, stremio, http_client):
        http_client.get.return_value = response(body=SAMPLE_MANIFEST)
        url = "https://torrentio.strem.fun/realdebrid=KEY/manifest.json"

        addon = await stremio.fetch_addon_manifest(url)

        assert addon.transport_url == url
        assert addon.manifest.version == "0.0.14"
        assert http_client.get.call_args.args[0] == url

    @pytest.mark.asyncio
    async def test_fetch_appends_manifest_path(self, stremio, http_client):
        http_client.get.return_value = response(body=SAMPLE_MANIFEST)

        await stremio.fetch_addon_manifest("https://addon.example.com/config/")

        assert http_client.get.call_args.args[0] == "https://addon.example.com/config/manifest.json"

    @pytest.mark.asyncio
    async def test_manifest_missing_required_field(self, stremio, http_client):
        http_client.get.return_value = response(body={"id": "x", "name": "X"})

        with pytest.raises(ManifestFetchFailedError, match="version"):
            await stremio.fetch_addon_manifest("https://addon.example.com/manifest.json")

    @pytest.mark.asyncio
    async def test_manifest_not_found(self, stremio, http_client):
        http_client.get.return_value = response(404)

        with pytest.raises(ManifestFetchFailedError):
            await stremio.fetch_addon_manifest("https://addon.example.com/manifest.json")

    @pytest.mark.asyncio
    async def test_unreachable_addon_hides_key_in_error(self, stremio, http_client):
        http_client.get.side_effect = httpx.ConnectError("Connection refused")

        with pytest.raises(ManifestFetchFailedError) as exc_info:
            await stremio.fetch_addon_manifest("https://torrentio.strem.fun/realdebrid=SECRET/manifest.json")
        assert "SECRET" not in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_url_rejected_by_http_client(self, stremio, http_client):
        http_client.get.side_effect = httpx.InvalidURL("Invalid non-printable ASCII character in URL")

        with pytest.raises(ManifestFetchFailedError) as exc_info:
            await stremio.fetch_addon_manifest("https://addon.example.com/\x01/manifest.json")
        assert exc_info.value.reason == "invalid URL"

    @pytest.mark.asyncio
    async def test_protocol_error_is_a_fetch_failure(self, stremio, http_client):
        http_client.get.side_effect = httpx.TooManyRedirects("Exceeded maximum allowed redirects.")

        with pytest.raises(ManifestFetchFailedError) as exc_info:
            await stremio.fetch_addon_manifest("https://addon.example.com/manifest.json")
        assert exc_info.value.reason == "cannot reach addon URL"

    @pytest.mark.asyncio
    async def test_validate_reports_url_rejected_by_http_client(self, stremio, http_client):
        http_client.get.side_effect = httpx.InvalidURL("Invalid non-printable ASCII character in URL")

        result = await stremio.validate_addon_url("https://addon.example.com/\x01/manifest.json")

        assert not result.valid
        assert "invalid URL" in result.error

    @pytest.mark.asyncio
    async def test_validate_addon_url(self, stremio, http_client):
        http_client.get.return_value = response(body=SAMPLE_MANIFEST)

        valid = await stremio.validate_addon_url("https://torrentio.strem.fun/manifest.json")
        invalid = await stremio.validate_addon_url("torrentio.strem.fun")
        empty = await stremio.validate_addon_url("")

        assert valid.valid and valid.addon.addon_id == "com.stremio.torrentio.addon"
        assert not invalid.valid and invalid.error == "Invalid URL format"
        assert not empty.valid and empty.error == "URL is required"


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://a.example.com/manifest.json", "https://a.example.com/manifest.json"),
        ("https://a.example.com", "https://a.example.com/manifest.json"),
        ("https://a.example.com/cfg/", "https://a.example.com/cfg/manifest.json"),
        ("https://a.example.com/cfg?x=1", "https://a.example.com/cfg/manifest.json?x=1"),
    ],
)
def test_manifest_url_for(url, expected):
    assert manifest_url_for(url) == expected
