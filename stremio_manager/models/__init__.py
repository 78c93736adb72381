# Import all models for easy access
from .enums import (
    AccountStatus,
    ApiServiceType,
    DebridService,
    MergeStrategy,
    SkipReason,
)
from .stored_value import StoredValue

__all__ = [
    "AccountStatus",
    "ApiServiceType",
    "DebridService",
    "MergeStrategy",
    "SkipReason",
    "StoredValue",
]
