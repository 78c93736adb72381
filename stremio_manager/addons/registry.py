"""
Registry of addon URL codecs.

Codecs are tried in registration order and the first whose detect() matches
wins.
"""
from typing import Dict, List, Optional

from stremio_manager.addons.codec import AddonUrlCodec
from stremio_manager.addons.torrentio import TorrentioCodec
from stremio_manager.models.enums import DebridService
from stremio_manager.schemas.addon import AddonDescriptor

CODEC_REGISTRY: List[AddonUrlCodec] = [
    TorrentioCodec(),
]


def register_codec(codec: AddonUrlCodec) -> None:
    """Append a codec. Keys must be unique."""
    if any(existing.key == codec.key for existing in CODEC_REGISTRY):
        raise ValueError(f"Codec '{codec.key}' is already registered")
    CODEC_REGISTRY.append(codec)


def find_codec(transport_url: str) -> Optional[AddonUrlCodec]:
    for codec in CODEC_REGISTRY:
        if codec.detect(transport_url):
            return codec
    return None


def get_codec(addon_type: str) -> Optional[AddonUrlCodec]:
    return next((codec for codec in CODEC_REGISTRY if codec.key == addon_type), None)


def get_addon_type(transport_url: str) -> Optional[str]:
    """Type key (e.g. 'torrentio') of the codec handling the URL, or None."""
    codec = find_codec(transport_url)
    return codec.key if codec else None


def is_debrid_supported_addon(transport_url: str) -> bool:
    return find_codec(transport_url) is not None


def find_addons_by_type(addons: List[AddonDescriptor], addon_type: str) -> List[AddonDescriptor]:
    codec = get_codec(addon_type)
    if codec is None:
        return []
    return [addon for addon in addons if codec.detect(addon.transport_url)]


def supported_addon_types() -> List[Dict[str, str]]:
    return [{"key": codec.key, "name": codec.name} for codec in CODEC_REGISTRY]


def get_addon_type_name(addon_type: str) -> str:
    codec = get_codec(addon_type)
    return codec.name if codec else addon_type


def current_debrid_service(transport_url: str) -> Optional[DebridService]:
    codec = find_codec(transport_url)
    if codec is None:
        return None
    return codec.parse(transport_url).debrid_service


def current_debrid_key(transport_url: str) -> Optional[str]:
    codec = find_codec(transport_url)
    if codec is None:
        return None
    return codec.parse(transport_url).debrid_key or None
