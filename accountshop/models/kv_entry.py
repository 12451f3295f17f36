# accountshop/models/kv_entry.py
from datetime import datetime, timezone

from sqlalchemy import Column, Text
from sqlmodel import SQLModel, Field


class KeyValueEntry(SQLModel, table=True):
    """
    Persistent key-value slot.

    Used for the analytics event log ("page_views") and UI preferences
    ("theme"). Values are opaque serialized strings.
    """

    __tablename__ = "kv_entries"

    key: str = Field(primary_key=True, max_length=128)
    value: str = Field(sa_column=Column(Text, nullable=False))
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
