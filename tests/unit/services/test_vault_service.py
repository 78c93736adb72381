"""
Unit tests for master password setup, unlock and reset.
"""
import pytest

from stremio_manager.core.exceptions import ValidationError, VaultLockedError
from stremio_manager.core.storage import StorageKeys
from stremio_manager.services.vault_service import MasterPasswordVault
from tests.lib import TEST_KDF_ITERATIONS


@pytest.fixture
def vault(store):
    return MasterPasswordVault(store, iterations=TEST_KDF_ITERATIONS)


def test_setup_stores_salt_and_verifier_only(vault, store):
    assert not vault.is_configured

    vault.setup("correct horse")

    assert vault.is_configured
    assert store.get(StorageKeys.USER_SALT)
    verifier = store.get(StorageKeys.PASSWORD_VERIFIER)
    assert verifier and "correct horse" not in verifier
    assert "correct horse" not in str({key: store.get(key) for key in store.keys()})


def test_setup_rejects_short_password(vault):
    with pytest.raises(ValidationError, match="at least 8"):
        vault.setup("short")

    assert not vault.is_configured


def test_setup_twice_is_rejected(vault):
    vault.setup("correct horse")

    with pytest.raises(ValidationError, match="already configured"):
        vault.setup("another password")


def test_unlock_returns_cipher_that_reads_existing_secrets(vault):
    token = vault.setup("correct horse").encrypt("AUTH-1")

    cipher = vault.unlock("correct horse")

    assert cipher.decrypt(token) == "AUTH-1"


def test_unlock_with_wrong_password(vault):
    vault.setup("correct horse")

    with pytest.raises(VaultLockedError, match="Incorrect master password"):
        vault.unlock("wrong horse")


def test_unlock_without_setup(vault):
    with pytest.raises(VaultLockedError):
        vault.unlock("correct horse")


def test_reset_wipes_data_and_sets_new_password(vault, store):
    vault.setup("correct horse")
    store.set(StorageKeys.ACCOUNTS, [{"name": "Main"}])
    store.set(StorageKeys.ADDON_LIBRARY, [{"name": "Saved"}])

    vault.reset("battery staple")

    assert store.get(StorageKeys.ACCOUNTS) is None
    assert store.get(StorageKeys.ADDON_LIBRARY) is None
    vault.unlock("battery staple")
    with pytest.raises(VaultLockedError):
        vault.unlock("correct horse")


def test_reset_validates_before_wiping(vault, store):
    vault.setup("correct horse")
    store.set(StorageKeys.ACCOUNTS, [{"name": "Main"}])

    with pytest.raises(ValidationError):
        vault.reset("short")

    assert store.get(StorageKeys.ACCOUNTS) == [{"name": "Main"}]
    vault.unlock("correct horse")
