"""
Account records kept in the local vault.

Secrets (auth key, password, API keys) are stored as ciphertext; the models
never hold plaintext at rest.
"""
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from stremio_manager.core.time_utils import utc_now
from stremio_manager.models.enums import AccountStatus, is_debrid_service
from stremio_manager.schemas.addon import AddonDescriptor
from stremio_manager.schemas.base import CamelModel


def new_id() -> str:
    return str(uuid.uuid4())


class ApiKeyInput(CamelModel):
    """Plaintext API key as entered by the user."""
    service: str = Field(..., min_length=1, description="Service identifier, e.g. realdebrid, tmdb")
    api_key: str = Field(..., min_length=1, description="Plaintext key, encrypted before storage")
    label: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @field_validator('service')
    @classmethod
    def normalize_service(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator('api_key')
    @classmethod
    def strip_key(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("API key cannot be blank")
        return v


class ApiKey(CamelModel):
    """
    API key owned by one account.

    `api_key` is ciphertext while stored. Copies handed to the debrid key
    applier carry the decrypted value and are never persisted.
    """
    id: str = Field(default_factory=new_id)
    service: str
    api_key: str
    label: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def is_debrid(self) -> bool:
        return is_debrid_service(self.service)


class Account(CamelModel):
    """A remote streaming account and its cached addon collection."""
    id: str = Field(default_factory=new_id)
    name: str
    email: Optional[str] = None
    auth_key: Optional[str] = Field(None, description="Encrypted auth key")
    password: Optional[str] = Field(None, description="Encrypted password")
    addons: List[AddonDescriptor] = Field(default_factory=list)
    api_keys: List[ApiKey] = Field(default_factory=list)
    last_sync: datetime = Field(default_factory=utc_now)
    status: AccountStatus = AccountStatus.ACTIVE

    def find_api_key(self, key_id: str) -> Optional[ApiKey]:
        return next((key for key in self.api_keys if key.id == key_id), None)

    def debrid_keys(self) -> List[ApiKey]:
        return [key for key in self.api_keys if key.is_debrid]


class AccountSyncResult(CamelModel):
    """Outcome of syncing one account during a bulk sync."""
    account_id: str
    name: str
    success: bool
    error: Optional[str] = None
