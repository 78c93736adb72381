"""
Provider-aware rewriting of addon install URLs.
"""
from .codec import AddonUrlCodec, AddonUrlConfig
from .debrid import apply_debrid_key, remove_debrid_key
from .registry import (
    find_addons_by_type,
    find_codec,
    get_addon_type,
    is_debrid_supported_addon,
    register_codec,
    supported_addon_types,
)
from .torrentio import TorrentioCodec, TorrentioConfig

__all__ = [
    "AddonUrlCodec",
    "AddonUrlConfig",
    "TorrentioCodec",
    "TorrentioConfig",
    "apply_debrid_key",
    "remove_debrid_key",
    "find_addons_by_type",
    "find_codec",
    "get_addon_type",
    "is_debrid_supported_addon",
    "register_codec",
    "supported_addon_types",
]
