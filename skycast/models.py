"""
ORM models.

A single key/value table. Values are opaque strings (JSON for the city list
and cache envelopes, plain text for the active city and unit preference).
"""

from sqlalchemy import String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from .db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class KeyValueEntry(Base):
    __tablename__ = "kv_entries"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text)

    # Last write time, handy when inspecting the file by hand
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
