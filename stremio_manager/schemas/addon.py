"""
Addon descriptors as exchanged with the remote addon collection API.

Unknown manifest and descriptor keys are preserved so that a collection read
from the remote service can be written back without losing data.
"""
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field

from stremio_manager.schemas.base import CamelModel


class AddonManifest(CamelModel):
    """Addon manifest. `id` is the addon's identity within a collection."""
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    version: str = ""
    description: str = ""
    logo: Optional[str] = None
    background: Optional[str] = None
    types: Optional[List[str]] = None
    catalogs: Optional[List[Any]] = None
    resources: Optional[List[Any]] = None
    id_prefixes: Optional[List[str]] = None
    behavior_hints: Optional[Dict[str, Any]] = None


class AddonFlags(CamelModel):
    model_config = ConfigDict(extra="allow")

    official: bool = False
    protected: bool = False


class AddonDescriptor(CamelModel):
    """An installed addon: install URL plus manifest snapshot."""
    model_config = ConfigDict(extra="allow")

    transport_url: str = Field(..., description="Install URL, may embed provider configuration and secrets")
    transport_name: Optional[str] = None
    manifest: AddonManifest
    flags: Optional[AddonFlags] = None

    @property
    def addon_id(self) -> str:
        return self.manifest.id

    @property
    def is_protected(self) -> bool:
        return bool(self.flags and self.flags.protected)

    @property
    def is_official(self) -> bool:
        return bool(self.flags and self.flags.official)
