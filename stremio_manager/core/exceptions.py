"""
Custom application exceptions.
"""


class StremioManagerError(Exception):
    """Base exception for the account manager."""
    pass


class DecryptionError(StremioManagerError):
    """Raised when ciphertext is corrupt or was produced with another key."""
    pass


class InvalidCredentialsError(StremioManagerError):
    """Raised when the remote service rejects a login or an auth key."""
    pass


class NetworkUnavailableError(StremioManagerError):
    """Raised when the remote account API cannot be reached."""
    pass


class RemoteApiError(StremioManagerError):
    """Raised when the remote account API answers with an error."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class UnsupportedAddonTypeError(StremioManagerError):
    """Raised when no registered URL codec recognizes an addon."""
    pass


class InvalidServiceTypeError(StremioManagerError):
    """Raised when an API key's service cannot configure the requested addon."""
    pass


class ManifestFetchFailedError(StremioManagerError):
    """Raised when an addon manifest is unreachable or invalid."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to fetch addon manifest from {url}: {reason}")
        self.url = url
        self.reason = reason


class AccountNotFoundError(StremioManagerError):
    """Raised when an account is not found."""
    pass


class ApiKeyNotFoundError(StremioManagerError):
    """Raised when an API key is not found on an account."""
    pass


class SavedAddonNotFoundError(StremioManagerError):
    """Raised when a saved addon is not found in the library."""
    pass


class ProtectedAddonError(StremioManagerError):
    """Raised when an operation targets an addon the platform marks as protected."""

    def __init__(self, addon_id: str, action: str = "change"):
        super().__init__(f"Addon '{addon_id}' is protected and cannot be {action}d")
        self.addon_id = addon_id


class ValidationError(StremioManagerError):
    """Raised when validation fails (malformed import payload, bad input)."""
    pass


class VaultLockedError(StremioManagerError):
    """Raised when the vault is not configured or the master password is wrong."""
    pass
