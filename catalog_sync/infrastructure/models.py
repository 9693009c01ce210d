"""SQLAlchemy models for infrastructure tables.

Provides the key/value state table used for import checkpoints.
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, String
from sqlalchemy.dialects.postgresql import JSONB

from catalog_sync.infrastructure.database import Base


class StateEntry(Base):
    """Durable key/value state entry.

    Stores small JSON values that must survive process restarts,
    such as pending catalog updates of a running feed import.
    """

    __tablename__ = "key_value_state"

    name = Column(String(255), primary_key=True)
    value = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
