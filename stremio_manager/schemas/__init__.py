from .account import Account, AccountSyncResult, ApiKey, ApiKeyInput
from .addon import AddonDescriptor, AddonFlags, AddonManifest
from .merge import (
    AddedAddon,
    AddonUpdateInfo,
    BulkDebridResult,
    MergeResult,
    ProtectedAddon,
    ReinstallResult,
    RemoveResult,
    SkippedAddon,
    UpdatedAddon,
)
from .saved_addon import AddonHealth, HealthSummary, SavedAddon

__all__ = [
    "Account",
    "AccountSyncResult",
    "ApiKey",
    "ApiKeyInput",
    "AddonDescriptor",
    "AddonFlags",
    "AddonManifest",
    "AddedAddon",
    "AddonUpdateInfo",
    "BulkDebridResult",
    "MergeResult",
    "ProtectedAddon",
    "ReinstallResult",
    "RemoveResult",
    "SkippedAddon",
    "UpdatedAddon",
    "AddonHealth",
    "HealthSummary",
    "SavedAddon",
]
