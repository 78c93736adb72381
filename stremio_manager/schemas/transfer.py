"""
Data Transfer Objects (DTOs) for import/export operations.

The export envelope is the only file format owned by the core:

    {
        "version": "1.0.0",
        "exportedAt": "2026-01-01T00:00:00Z",
        "accounts": [...],
        "savedAddons": [...]      # optional
    }

Credentials (auth key, password, API keys) appear in plaintext and only
when the user explicitly opts in at export time.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from stremio_manager.core.time_utils import parse_iso_datetime, utc_now
from stremio_manager.schemas.addon import AddonDescriptor
from stremio_manager.schemas.base import CamelModel
from stremio_manager.schemas.saved_addon import SavedAddon


class ApiKeyExportDTO(CamelModel):
    """Plaintext API key, present only in credential exports."""
    service: str = Field(..., min_length=1)
    api_key: str = Field(..., min_length=1)
    label: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None


class AccountExportDTO(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: Optional[str] = None
    auth_key: Optional[str] = Field(None, description="Plaintext auth key (credential exports only)")
    password: Optional[str] = Field(None, description="Plaintext password (credential exports only)")
    addons: List[AddonDescriptor] = Field(default_factory=list)
    api_keys: Optional[List[ApiKeyExportDTO]] = None

    @field_validator('addons')
    @classmethod
    def validate_unique_addon_ids(cls, v: List[AddonDescriptor]) -> List[AddonDescriptor]:
        seen = set()
        for addon in v:
            if addon.addon_id in seen:
                raise ValueError(f"Duplicate addon id '{addon.addon_id}' in account addons")
            seen.add(addon.addon_id)
        return v


class AccountExport(CamelModel):
    """Versioned export envelope."""
    version: str = Field(..., min_length=1)
    exported_at: datetime = Field(default_factory=utc_now)
    accounts: List[AccountExportDTO]
    saved_addons: Optional[List[SavedAddon]] = None

    @field_validator('exported_at', mode='before')
    @classmethod
    def parse_exported_at(cls, v):
        if v is None:
            return utc_now()
        return parse_iso_datetime(v)


class ImportSummary(CamelModel):
    accounts_imported: int = 0
    accounts_without_credentials: int = 0
    saved_addons_imported: int = 0
    saved_addons_skipped: int = 0
