"""
Apply or remove debrid API keys on supported addons.

The transformation is a value copy: the decrypted key is written into the
addon URL, so rotating the stored key later does not change addons that were
already configured.
"""
from dataclasses import replace

from stremio_manager.addons.codec import AddonUrlCodec
from stremio_manager.addons.registry import find_codec
from stremio_manager.core.exceptions import InvalidServiceTypeError, UnsupportedAddonTypeError
from stremio_manager.models.enums import as_debrid_service
from stremio_manager.schemas.account import ApiKey
from stremio_manager.schemas.addon import AddonDescriptor


def _resolve_codec(addon: AddonDescriptor) -> AddonUrlCodec:
    codec = find_codec(addon.transport_url)
    if codec is None:
        raise UnsupportedAddonTypeError(
            f"Addon '{addon.manifest.name}' is not supported for debrid configuration"
        )
    return codec


def _with_url(addon: AddonDescriptor, transport_url: str) -> AddonDescriptor:
    return addon.model_copy(update={"transport_url": transport_url}, deep=True)


def apply_debrid_key(addon: AddonDescriptor, api_key: ApiKey) -> AddonDescriptor:
    """
    Return a copy of addon configured with api_key.

    Args:
        addon: Installed addon; not modified
        api_key: Key whose api_key field holds the decrypted secret

    Raises:
        UnsupportedAddonTypeError: No codec recognizes the addon URL
        InvalidServiceTypeError: The key is not for a debrid service
    """
    codec = _resolve_codec(addon)

    service = as_debrid_service(api_key.service)
    if service is None:
        raise InvalidServiceTypeError(
            f"API key service \"{api_key.service}\" is not a debrid service"
        )

    config = codec.parse(addon.transport_url)
    config = replace(config, debrid_service=service, debrid_key=api_key.api_key)
    return _with_url(addon, codec.build(config))


def remove_debrid_key(addon: AddonDescriptor) -> AddonDescriptor:
    """
    Return a copy of addon with its debrid configuration cleared.

    Raises:
        UnsupportedAddonTypeError: No codec recognizes the addon URL
    """
    codec = _resolve_codec(addon)

    config = codec.parse(addon.transport_url)
    config = replace(config, debrid_service=None, debrid_key=None)
    return _with_url(addon, codec.build(config))
