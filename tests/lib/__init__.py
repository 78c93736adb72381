"""
Builders for test data.
"""
from typing import Optional

from stremio_manager.core.encryption import CredentialCipher, generate_salt
from stremio_manager.schemas.addon import AddonDescriptor, AddonFlags, AddonManifest
from stremio_manager.schemas.saved_addon import SavedAddon

TEST_KDF_ITERATIONS = 1000


def make_cipher(passphrase: str = "test-passphrase") -> CredentialCipher:
    return CredentialCipher(passphrase, generate_salt(), iterations=TEST_KDF_ITERATIONS)


def make_manifest(addon_id: str, version: str = "1.0.0", name: Optional[str] = None) -> AddonManifest:
    return AddonManifest(id=addon_id, name=name or addon_id.title(), version=version)


def make_addon(
    addon_id: str,
    url: Optional[str] = None,
    version: str = "1.0.0",
    protected: bool = False,
    official: bool = False,
) -> AddonDescriptor:
    flags = AddonFlags(protected=protected, official=official) if (protected or official) else None
    return AddonDescriptor(
        transport_url=url or f"https://{addon_id}.example.com/manifest.json",
        manifest=make_manifest(addon_id, version),
        flags=flags,
    )


def make_saved(
    addon_id: str,
    url: Optional[str] = None,
    version: str = "1.0.0",
    name: Optional[str] = None,
    tags=(),
) -> SavedAddon:
    return SavedAddon(
        name=name or f"Saved {addon_id}",
        install_url=url or f"https://{addon_id}.example.com/v2/manifest.json",
        manifest=make_manifest(addon_id, version),
        tags=list(tags),
    )
