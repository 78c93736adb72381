"""
Provider URL codec interface.

Some addons carry their whole configuration inside the install URL. A codec
translates between such a URL and a structured config for one provider:

- detect(url): hostname allow-list match
- parse(url): URL -> config
- build(config): config -> URL

Codecs are registered in stremio_manager.addons.registry and looked up by
first match. New providers add a module implementing this protocol; nothing
else changes.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Tuple, runtime_checkable
from urllib.parse import urlsplit

from stremio_manager.models.enums import DebridService

MANIFEST_FILENAME = "manifest.json"


@dataclass
class AddonUrlConfig:
    """
    Fields every debrid-capable codec understands.

    other_params keeps parameters the codec does not recognize, verbatim and
    in their original order, so they survive a parse/build round trip.
    """
    base_url: str
    debrid_service: Optional[DebridService] = None
    debrid_key: Optional[str] = None
    other_params: List[str] = field(default_factory=list)


@runtime_checkable
class AddonUrlCodec(Protocol):
    key: str
    name: str
    hostnames: Tuple[str, ...]

    def detect(self, url: str) -> bool:
        ...

    def parse(self, url: str) -> AddonUrlConfig:
        ...

    def build(self, config: AddonUrlConfig) -> str:
        ...


def hostname_of(url: str) -> Optional[str]:
    """Lower-cased hostname of url, or None when url is not an absolute http(s) URL."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return None
    if parts.scheme not in ("http", "https"):
        return None
    return parts.hostname
