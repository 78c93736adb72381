"""
Enums and constants for the application.
"""
from enum import Enum
from typing import Optional


class AccountStatus(str, Enum):
    """Health of an account's last remote interaction."""
    ACTIVE = "active"
    ERROR = "error"


class MergeStrategy(str, Enum):
    """How a saved addon is applied when the account already has its id."""
    REPLACE_MATCHING = "replace-matching"
    ADD_ONLY = "add-only"


class SkipReason(str, Enum):
    """Why a saved addon was left out of a merge."""
    FETCH_FAILED = "fetch-failed"
    ALREADY_EXISTS = "already-exists"


class DebridService(str, Enum):
    """Debrid services whose keys can be embedded in addon URLs."""
    REALDEBRID = "realdebrid"
    TORBOX = "torbox"


class ApiServiceType(str, Enum):
    """
    Known API key services.

    ApiKey.service stays an open string; anything not listed here is CUSTOM.
    """
    REALDEBRID = "realdebrid"
    TORBOX = "torbox"
    TMDB = "tmdb"
    TRAKT = "trakt"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, service: str) -> "ApiServiceType":
        try:
            return cls((service or "").strip().lower())
        except ValueError:
            return cls.CUSTOM


def as_debrid_service(service: str) -> Optional[DebridService]:
    """Return the DebridService for a service identifier, or None."""
    kind = ApiServiceType.parse(service)
    if kind is ApiServiceType.REALDEBRID:
        return DebridService.REALDEBRID
    if kind is ApiServiceType.TORBOX:
        return DebridService.TORBOX
    return None


def is_debrid_service(service: str) -> bool:
    return as_debrid_service(service) is not None
