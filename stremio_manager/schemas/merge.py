"""
Outcome reports for addon collection operations.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from stremio_manager.models.enums import SkipReason
from stremio_manager.schemas.addon import AddonDescriptor
from stremio_manager.schemas.base import CamelModel


class AddedAddon(CamelModel):
    addon_id: str
    name: str
    install_url: str


class UpdatedAddon(CamelModel):
    addon_id: str
    old_url: str
    new_url: str


class SkippedAddon(CamelModel):
    addon_id: str
    reason: SkipReason


class ProtectedAddon(CamelModel):
    addon_id: str
    name: str


class MergeResult(CamelModel):
    """
    Per saved addon outcome of a merge.

    Every saved addon considered lands in exactly one bucket.
    """
    added: List[AddedAddon] = Field(default_factory=list)
    updated: List[UpdatedAddon] = Field(default_factory=list)
    skipped: List[SkippedAddon] = Field(default_factory=list)
    protected: List[ProtectedAddon] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.added) + len(self.updated) + len(self.skipped) + len(self.protected)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.updated)


class RemoveResult(BaseModel):
    addons: List[AddonDescriptor]
    removed: List[str] = Field(default_factory=list)
    protected_ids: List[str] = Field(default_factory=list)


class AddonUpdateInfo(CamelModel):
    addon_id: str
    name: str
    transport_url: str
    installed_version: str
    latest_version: str
    has_update: bool


class ReinstallResult(BaseModel):
    addons: List[AddonDescriptor]
    updated_addon: Optional[AddonDescriptor] = None
    previous_version: Optional[str] = None
    new_version: Optional[str] = None


class BulkDebridResult(BaseModel):
    success: int = 0
    failed: int = 0
    errors: List[str] = Field(default_factory=list)
