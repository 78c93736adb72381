"""
Key-value persistence for the local vault.

Services never talk to the database directly; they read and overwrite whole
JSON documents through a KeyValueStore:

- SqlKeyValueStore: SQLModel-backed store used by the application
- InMemoryKeyValueStore: process-local store for tests and dry runs

A write replaces the full document for its key in a single transaction, so a
crash can lose a pending update but never leave it half written.
"""
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from stremio_manager.core.logging_config import LogCategory, log_error, log_info
from stremio_manager.core.time_utils import utc_now
from stremio_manager.models.stored_value import StoredValue

logger = logging.getLogger(LogCategory.STORAGE)


class StorageKeys:
    """Keys used in the vault."""

    ACCOUNTS = "stremio-manager:accounts"
    ADDON_LIBRARY = "stremio-manager:addon-library"
    # Per-account addon snapshots from older releases. Never written now;
    # listed so a vault wipe still clears vaults that carry it.
    ACCOUNT_ADDONS = "stremio-manager:account-addons"
    DEVICE_SALT = "stremio-manager:salt"
    USER_SALT = "stremio-manager:user-salt"
    PASSWORD_VERIFIER = "stremio-manager:password-hash"

    @classmethod
    def all(cls) -> List[str]:
        return [
            cls.ACCOUNTS,
            cls.ADDON_LIBRARY,
            cls.ACCOUNT_ADDONS,
            cls.DEVICE_SALT,
            cls.USER_SALT,
            cls.PASSWORD_VERIFIER,
        ]


class KeyValueStore(ABC):
    """Opaque storage for JSON-compatible values."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the stored value or None when the key is absent."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Replace the value stored under key."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete key. Removing a missing key is not an error."""

    @abstractmethod
    def keys(self) -> List[str]:
        """List stored keys."""


class InMemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store. Values are JSON round-tripped like the SQL store."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data.keys())


class SqlKeyValueStore(KeyValueStore):
    """Store backed by the stored_values table."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def get(self, key: str) -> Optional[Any]:
        with Session(self.engine) as session:
            row = session.get(StoredValue, key)
            if row is None:
                return None
            try:
                return json.loads(row.value)
            except json.JSONDecodeError as e:
                log_error(e, key=key)
                raise ValueError(f"Stored value for '{key}' is not valid JSON") from e

    def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value)
        with Session(self.engine) as session:
            row = session.get(StoredValue, key)
            if row is None:
                row = StoredValue(key=key, value=payload)
            else:
                row.value = payload
                row.updated_at = utc_now()
            session.add(row)
            session.commit()
        logger.debug(f"Stored '{key}' ({len(payload)} bytes)")

    def remove(self, key: str) -> None:
        with Session(self.engine) as session:
            row = session.get(StoredValue, key)
            if row is not None:
                session.delete(row)
                session.commit()

    def keys(self) -> List[str]:
        with Session(self.engine) as session:
            return list(session.exec(select(StoredValue.key)).all())


def wipe_all_data(store: KeyValueStore) -> List[str]:
    """
    Remove every vault key from the store.

    Each key is removed independently; a failure is logged and the remaining
    keys are still removed.

    Returns:
        Keys that could not be removed.
    """
    failed: List[str] = []
    for key in StorageKeys.all():
        try:
            store.remove(key)
        except Exception as e:
            log_error(e, action="wipe", key=key)
            failed.append(key)

    if failed:
        logger.warning(f"Vault wipe incomplete, {len(failed)} key(s) could not be removed: {failed}")
    else:
        log_info("Vault wiped")
    return failed
