"""
Key-value document model
"""

from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, JSON

from contenthub.core.db import Base


def _utcnow():
    return datetime.now(timezone.utc)


class KVEntry(Base):
    __tablename__ = "kv_store"

    key = Column(String(255), primary_key=True, index=True)
    value = Column(JSON, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)
