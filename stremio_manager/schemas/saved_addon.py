"""
Saved addons: reusable addon configurations kept independently of accounts.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from stremio_manager.core.time_utils import utc_now
from stremio_manager.schemas.account import new_id
from stremio_manager.schemas.addon import AddonManifest
from stremio_manager.schemas.base import CamelModel


class AddonHealth(CamelModel):
    is_online: bool
    last_checked: datetime = Field(default_factory=utc_now)


class SavedAddon(CamelModel):
    id: str = Field(default_factory=new_id)
    name: str
    install_url: str
    manifest: AddonManifest = Field(..., description="Manifest snapshot taken when the addon was saved")
    tags: List[str] = Field(default_factory=list)
    health: Optional[AddonHealth] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    last_used: Optional[datetime] = None


class HealthSummary(BaseModel):
    online: int = 0
    offline: int = 0
    unchecked: int = 0
