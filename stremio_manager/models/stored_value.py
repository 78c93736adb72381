"""
Database model backing the local key-value vault.

Every persisted collection (accounts, saved addon library, salts) is a
single row holding a JSON document, so each write replaces the whole
collection in one transaction.
"""
from datetime import datetime

from sqlalchemy import Column, Text
from sqlmodel import Field, SQLModel

from stremio_manager.core.time_utils import utc_now


class StoredValue(SQLModel, table=True):
    """One JSON document stored under a string key."""
    __tablename__ = "stored_values"

    key: str = Field(primary_key=True, max_length=255)
    value: str = Field(sa_column=Column(Text, nullable=False))
    updated_at: datetime = Field(default_factory=utc_now, nullable=False)
