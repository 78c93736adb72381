"""
Client for the Stremio account API and addon manifests.

The account API is an RPC-style JSON API: every call is a POST whose body
names the request type, and whose response wraps the payload in `result` or
reports a failure in `error`.

Endpoints used:
- POST /api/login                 -> {authKey, user}
- POST /api/addonCollectionGet    -> {addons, lastModified}
- POST /api/addonCollectionSet    -> {success}

Errors are mapped onto the application taxonomy:
- transport failures              -> NetworkUnavailableError
- rejected login / auth key (401) -> InvalidCredentialsError
- any other error response        -> RemoteApiError
- unreachable or invalid manifest -> ManifestFetchFailedError
"""
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit, urlunsplit

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError as PydanticValidationError

from stremio_manager.core.config import settings
from stremio_manager.core.exceptions import (
    InvalidCredentialsError,
    ManifestFetchFailedError,
    NetworkUnavailableError,
    RemoteApiError,
)
from stremio_manager.core.http_client import get_http_client
from stremio_manager.core.logging_config import LogCategory, mask_url_secrets
from stremio_manager.schemas.addon import AddonDescriptor, AddonManifest

logger = logging.getLogger(LogCategory.REMOTE)

REQUIRED_MANIFEST_FIELDS = ("id", "name", "version")


class RemoteUser(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = ""
    email: str = ""
    avatar: Optional[str] = None


class LoginResponse(BaseModel):
    auth_key: str
    user: RemoteUser


class ValidationResult(BaseModel):
    valid: bool
    error: Optional[str] = None
    addon: Optional[AddonDescriptor] = None


def manifest_url_for(transport_url: str) -> str:
    """Return the manifest URL for an addon install URL."""
    parts = urlsplit(transport_url)
    path = parts.path.rstrip("/")
    if not path.endswith("/manifest.json"):
        path = f"{path}/manifest.json"
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, ""))


class StremioClient:
    """
    Client for the remote account API.

    Handles:
    - Login with email/password
    - Reading and overwriting an account's addon collection
    - Fetching and validating addon manifests
    """

    def __init__(self, base_url: Optional[str] = None, http_client: Optional[httpx.AsyncClient] = None):
        """
        Initialize the client.

        Args:
            base_url: API root, defaults to settings.stremio_api_url
            http_client: Client to use instead of the shared one (tests)
        """
        self.base_url = (base_url or settings.stremio_api_url).rstrip("/")
        self._http_client = http_client

    async def _client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        return await get_http_client()

    @staticmethod
    def _safe_json(response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _error_message(data: Dict[str, Any], default: str) -> str:
        error = data.get("error")
        if isinstance(error, dict):
            return error.get("message") or default
        if isinstance(error, str) and error:
            return error
        return default

    async def _call(self, method: str, payload: Dict[str, Any], *, auth_error: str) -> Dict[str, Any]:
        """
        POST an RPC request and return its `result` object.

        Raises:
            NetworkUnavailableError: The API could not be reached
            InvalidCredentialsError: The API answered 401
            RemoteApiError: Any other error response
        """
        url = f"{self.base_url}/api/{method}"
        try:
            client = await self._client()
            response = await client.post(url, json=payload, timeout=settings.api_timeout)
        except httpx.TransportError as e:
            logger.warning(f"{method} failed: {type(e).__name__}: {e}")
            raise NetworkUnavailableError(
                "Cannot reach the Stremio API - check your internet connection"
            ) from e

        data = self._safe_json(response)

        if response.status_code == 401:
            raise InvalidCredentialsError(auth_error)

        if response.status_code != 200:
            detail = self._error_message(data, response.text or "Unknown error")
            logger.error(f"{method} failed: HTTP {response.status_code} - {detail}")
            raise RemoteApiError(f"{method} failed: {detail}", status_code=response.status_code)

        if data.get("error"):
            raise RemoteApiError(self._error_message(data, f"{method} failed"), status_code=response.status_code)

        result = data.get("result")
        return result if isinstance(result, dict) else {}

    async def login(self, email: str, password: str) -> LoginResponse:
        """
        Log in with email and password.

        Raises:
            InvalidCredentialsError: Email or password rejected
            NetworkUnavailableError: API unreachable
        """
        try:
            result = await self._call(
                "login",
                {"type": "Auth", "email": email, "password": password},
                auth_error="Invalid email or password",
            )
        except RemoteApiError as e:
            # The API reports bad credentials as an error body with HTTP 200
            raise InvalidCredentialsError(str(e) or "Invalid email or password") from e

        auth_key = result.get("authKey")
        if not auth_key:
            raise InvalidCredentialsError("Invalid login response - no auth key")

        user = result.get("user") or {}
        logger.info("Login successful")
        return LoginResponse(
            auth_key=auth_key,
            user=RemoteUser(id=user.get("_id", ""), email=user.get("email", email), avatar=user.get("avatar")),
        )

    async def get_addon_collection(self, auth_key: str) -> List[AddonDescriptor]:
        """
        Return the account's addon collection. An empty collection is valid.
        """
        result = await self._call(
            "addonCollectionGet",
            {"type": "AddonCollectionGet", "authKey": auth_key, "update": True},
            auth_error="Invalid or expired auth key",
        )
        addons = result.get("addons") or []
        try:
            return [AddonDescriptor.model_validate(addon) for addon in addons]
        except PydanticValidationError as e:
            raise RemoteApiError(f"Addon collection has an unexpected shape: {e.error_count()} error(s)") from e

    async def set_addon_collection(self, auth_key: str, addons: List[AddonDescriptor]) -> None:
        """
        Overwrite the account's addon collection, in the given order.
        """
        result = await self._call(
            "addonCollectionSet",
            {
                "type": "AddonCollectionSet",
                "authKey": auth_key,
                "addons": [addon.to_wire() for addon in addons],
            },
            auth_error="Invalid or expired auth key",
        )
        if result.get("success") is False:
            raise RemoteApiError("Failed to update addon collection")

    async def fetch_addon_manifest(self, transport_url: str) -> AddonDescriptor:
        """
        Fetch an addon manifest and wrap it in a descriptor for transport_url.

        Raises:
            ManifestFetchFailedError: Unreachable URL, non-200 response, or a
                manifest missing id, name or version
        """
        safe_url = mask_url_secrets(transport_url)
        try:
            manifest_url = manifest_url_for(transport_url)
        except ValueError as e:
            raise ManifestFetchFailedError(safe_url, "invalid URL") from e

        try:
            client = await self._client()
            response = await client.get(manifest_url, timeout=settings.manifest_timeout, follow_redirects=True)
        except httpx.InvalidURL as e:
            raise ManifestFetchFailedError(safe_url, "invalid URL") from e
        except httpx.HTTPError as e:
            raise ManifestFetchFailedError(safe_url, "cannot reach addon URL") from e

        if response.status_code == 404:
            raise ManifestFetchFailedError(safe_url, "addon manifest not found at this URL")
        if response.status_code != 200:
            raise ManifestFetchFailedError(safe_url, f"HTTP {response.status_code}")

        data = self._safe_json(response)
        missing = [field for field in REQUIRED_MANIFEST_FIELDS if not data.get(field)]
        if missing:
            raise ManifestFetchFailedError(safe_url, f"invalid manifest, missing {', '.join(missing)}")

        try:
            manifest = AddonManifest.model_validate(data)
        except PydanticValidationError as e:
            raise ManifestFetchFailedError(safe_url, f"invalid manifest ({e.error_count()} error(s))") from e

        logger.debug(f"Fetched manifest {manifest.id}@{manifest.version} from {safe_url}")
        return AddonDescriptor(transport_url=transport_url, manifest=manifest)

    async def validate_addon_url(self, url: str) -> ValidationResult:
        """
        Check that url points at a reachable addon with a valid manifest.

        Never raises for a bad URL; the reason is returned in `error`.
        """
        if not url or not url.strip():
            return ValidationResult(valid=False, error="URL is required")

        parts = urlsplit(url.strip())
        if parts.scheme not in ("http", "https") or not parts.netloc:
            return ValidationResult(valid=False, error="Invalid URL format")

        try:
            addon = await self.fetch_addon_manifest(url.strip())
        except ManifestFetchFailedError as e:
            return ValidationResult(valid=False, error=str(e))

        return ValidationResult(valid=True, addon=addon)
