"""
Symmetric encryption for credentials stored in the local vault.

Auth keys, account passwords and debrid API keys are encrypted with Fernet
before they are persisted and decrypted only for the duration of a remote
operation.

Key Derivation:
- PBKDF2-HMAC-SHA256 over a passphrase and a random 16-byte salt
- Device variant: the passphrase is a fixed application constant and the
  salt is generated on first use and stored in plain local storage
- Hardened variant: the passphrase is the user's master password, which is
  never persisted

Security Notes:
- Tokens are encrypted with AES-128-CBC + HMAC-SHA256 (via Fernet)
- Losing the salt (or the master password) makes every stored secret unreadable
- There is no key rotation; a new master password means wiping the vault
- Never log or expose decrypted secrets

Usage:
    from stremio_manager.core.encryption import CredentialCipher

    cipher = CredentialCipher.for_device(store)
    encrypted = cipher.encrypt("auth-key")
    original = cipher.decrypt(encrypted)
"""
import base64
import os
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from stremio_manager.core.config import settings
from stremio_manager.core.exceptions import DecryptionError
from stremio_manager.core.logging_config import log_error, log_info
from stremio_manager.core.storage import KeyValueStore, StorageKeys

SALT_BYTES = 16


def generate_salt() -> str:
    """Return a new random salt as a hex string."""
    return os.urandom(SALT_BYTES).hex()


def get_or_create_salt(store: KeyValueStore, key: str = StorageKeys.DEVICE_SALT) -> str:
    """
    Load the salt stored under key, generating and persisting one on first use.
    """
    salt = store.get(key)
    if not salt:
        salt = generate_salt()
        store.set(key, salt)
        log_info("Generated new vault salt", key=key)
    return salt


def derive_fernet_key(passphrase: str, salt: str, iterations: Optional[int] = None) -> bytes:
    """
    Derive a Fernet key from a passphrase and a hex salt.

    Returns:
        URL-safe base64-encoded 32-byte key
    """
    if not passphrase:
        raise ValueError("Cannot derive a key from an empty passphrase")

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,  # Fernet requires exactly 32 bytes
        salt=bytes.fromhex(salt),
        iterations=iterations or settings.kdf_iterations,
    )
    return base64.urlsafe_b64encode(kdf.derive(passphrase.encode('utf-8')))


class CredentialCipher:
    """Encrypts and decrypts secrets with a key derived once at construction."""

    def __init__(self, passphrase: str, salt: str, iterations: Optional[int] = None):
        self._fernet = Fernet(derive_fernet_key(passphrase, salt, iterations))

    @classmethod
    def for_device(cls, store: KeyValueStore, iterations: Optional[int] = None) -> "CredentialCipher":
        """Cipher keyed by the application passphrase and the persisted device salt."""
        salt = get_or_create_salt(store, StorageKeys.DEVICE_SALT)
        return cls(settings.app_passphrase, salt, iterations)

    @classmethod
    def from_master_password(
        cls,
        master_password: str,
        salt: str,
        iterations: Optional[int] = None,
    ) -> "CredentialCipher":
        """Cipher keyed by a user-supplied master password."""
        return cls(master_password, salt, iterations)

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt a secret.

        Args:
            plaintext: The secret to encrypt (auth key, password, API key)
        """
        if not plaintext or not plaintext.strip():
            raise ValueError("Cannot encrypt empty value")

        return self._fernet.encrypt(plaintext.encode('utf-8')).decode('utf-8')

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt a secret produced by encrypt().

        Raises:
            DecryptionError: If the ciphertext is corrupt or was encrypted with another key
        """
        if not ciphertext or not ciphertext.strip():
            raise DecryptionError("Cannot decrypt empty value")

        try:
            return self._fernet.decrypt(ciphertext.encode('utf-8')).decode('utf-8')
        except (InvalidToken, UnicodeDecodeError) as e:
            log_error(e, action="credential_decryption")
            raise DecryptionError(
                "Failed to decrypt stored credential. It may be corrupted, or the vault "
                "salt or master password has changed since it was saved."
            ) from e

    def try_decrypt(self, ciphertext: Optional[str]) -> Optional[str]:
        """Decrypt when a value is present, returning None for missing values."""
        if not ciphertext:
            return None
        return self.decrypt(ciphertext)


def is_encrypted(value: Optional[str]) -> bool:
    """
    Check if a string appears to be a Fernet token.

    This is a heuristic check - it doesn't guarantee the token is valid,
    just that it has the expected format.
    """
    if not value:
        return False

    # Fernet tokens always start with "gAAAAA" (version byte 0x80 + timestamp)
    return value.startswith("gAAAAA")
