"""
Master password protection for the vault.

When a master password is configured, credentials are encrypted with a key
derived from it instead of the device key. The password itself is never
stored; a Fernet token of a known constant is kept as a verifier so a wrong
password can be rejected before any credential is touched.
"""
import logging
from typing import List, Optional

from stremio_manager.core.encryption import CredentialCipher, generate_salt
from stremio_manager.core.exceptions import DecryptionError, ValidationError, VaultLockedError
from stremio_manager.core.logging_config import LogCategory
from stremio_manager.core.storage import KeyValueStore, StorageKeys, wipe_all_data

logger = logging.getLogger(LogCategory.SECURITY)

MIN_PASSWORD_LENGTH = 8
VERIFIER_PLAINTEXT = "stremio-manager:vault-verifier"


class MasterPasswordVault:
    """Sets up, unlocks and resets the master password."""

    def __init__(self, store: KeyValueStore, iterations: Optional[int] = None):
        self.store = store
        self.iterations = iterations

    @property
    def is_configured(self) -> bool:
        return bool(self.store.get(StorageKeys.USER_SALT) and self.store.get(StorageKeys.PASSWORD_VERIFIER))

    def setup(self, password: str) -> CredentialCipher:
        """
        Configure a new master password and return its cipher.

        Raises:
            ValidationError: Password too short, or a master password is already set
        """
        if self.is_configured:
            raise ValidationError("A master password is already configured; reset the vault to change it")
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Master password must be at least {MIN_PASSWORD_LENGTH} characters")

        salt = generate_salt()
        cipher = CredentialCipher.from_master_password(password, salt, self.iterations)
        self.store.set(StorageKeys.USER_SALT, salt)
        self.store.set(StorageKeys.PASSWORD_VERIFIER, cipher.encrypt(VERIFIER_PLAINTEXT))
        logger.info("Master password configured")
        return cipher

    def unlock(self, password: str) -> CredentialCipher:
        """
        Return the cipher for password after checking it against the verifier.

        Raises:
            VaultLockedError: No master password configured, or password is wrong
        """
        if not self.is_configured:
            raise VaultLockedError("No master password is configured")

        salt = self.store.get(StorageKeys.USER_SALT)
        verifier = self.store.get(StorageKeys.PASSWORD_VERIFIER)
        try:
            cipher = CredentialCipher.from_master_password(password, salt, self.iterations)
            matches = cipher.decrypt(verifier) == VERIFIER_PLAINTEXT
        except (DecryptionError, ValueError):
            matches = False

        if not matches:
            logger.warning("Vault unlock failed: wrong master password")
            raise VaultLockedError("Incorrect master password")

        logger.info("Vault unlocked")
        return cipher

    def reset(self, new_password: str) -> CredentialCipher:
        """
        Wipe every stored secret and configure new_password.

        There is no key rotation: accounts and the addon library are lost.
        """
        if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Master password must be at least {MIN_PASSWORD_LENGTH} characters")

        failed: List[str] = wipe_all_data(self.store)
        if failed:
            logger.warning(f"Vault reset continuing with {len(failed)} key(s) left behind")
        # setup() refuses to run over leftover verifier state
        for key in (StorageKeys.USER_SALT, StorageKeys.PASSWORD_VERIFIER):
            if key in failed:
                raise VaultLockedError(f"Could not clear '{key}'; the vault cannot be reset")
        return self.setup(new_password)
