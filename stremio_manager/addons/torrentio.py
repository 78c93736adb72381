"""
Torrentio URL codec.

Torrentio URLs encode their configuration as one pipe-delimited path segment:

    https://torrentio.strem.fun/qualityfilter=480p|realdebrid=KEY/manifest.json

An unconfigured addon is just https://torrentio.strem.fun/manifest.json.
"""
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

from stremio_manager.addons.codec import AddonUrlConfig, MANIFEST_FILENAME, hostname_of
from stremio_manager.models.enums import DebridService

TORRENTIO_HOSTNAMES = (
    "torrentio.strem.fun",
    "torrentio.strem.now.sh",
    "torrentio.strem.io",
)

PARAM_SEPARATOR = "|"
QUALITY_FILTER_PARAM = "qualityfilter"


@dataclass
class TorrentioConfig(AddonUrlConfig):
    quality_filter: Optional[str] = None


class TorrentioCodec:
    key = "torrentio"
    name = "Torrentio"
    hostnames = TORRENTIO_HOSTNAMES

    def detect(self, url: str) -> bool:
        return hostname_of(url) in self.hostnames

    def parse(self, url: str) -> TorrentioConfig:
        parts = urlsplit(url)
        config = TorrentioConfig(base_url=f"{parts.scheme}://{parts.hostname}")

        segment = next(
            (part for part in parts.path.split("/") if part and part != MANIFEST_FILENAME),
            None,
        )
        if not segment:
            return config

        # Browsers and clients sometimes percent-encode the separator
        segment = segment.replace("%7C", PARAM_SEPARATOR).replace("%7c", PARAM_SEPARATOR)

        for param in segment.split(PARAM_SEPARATOR):
            if not param:
                continue
            name, sep, value = param.partition("=")
            # A flag without a value is carried through untouched
            if not sep or not value:
                config.other_params.append(param)
            elif name == QUALITY_FILTER_PARAM:
                config.quality_filter = value
            elif name in (DebridService.REALDEBRID.value, DebridService.TORBOX.value):
                config.debrid_service = DebridService(name)
                config.debrid_key = value
            else:
                config.other_params.append(param)

        return config

    def build(self, config: AddonUrlConfig) -> str:
        params = []

        quality_filter = getattr(config, "quality_filter", None)
        if quality_filter:
            params.append(f"{QUALITY_FILTER_PARAM}={quality_filter}")

        if config.debrid_service and config.debrid_key:
            params.append(f"{DebridService(config.debrid_service).value}={config.debrid_key}")

        params.extend(config.other_params)

        if params:
            return f"{config.base_url}/{PARAM_SEPARATOR.join(params)}/{MANIFEST_FILENAME}"
        return f"{config.base_url}/{MANIFEST_FILENAME}"
