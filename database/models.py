"""
SQLAlchemy ORM model for the shared queue table — Cross-database compatible.

Supports: PostgreSQL, MySQL 8+, SQLite.

Key design decisions:
  - One table holds every queue; the ``queue`` column partitions it.
  - Integer autoincrement primary key: ids are strictly increasing, which
    gives FIFO order within equal priority.
  - Header and property maps are stored as serialized TEXT, not JSON columns,
    so the codec owns the format on every backend.
  - ``delayed_until`` is plain epoch seconds to avoid timezone handling in
    the claim query.
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy import (
    Boolean, Integer, SmallInteger, String, Text, Index,
)
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

QUEUE_TABLE = "enqueue"


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all ORM models."""
    pass


# ──────────────────────────────────────────────────────────────
#  Queue rows
# ──────────────────────────────────────────────────────────────

class QueueMessageRow(Base):
    __tablename__ = QUEUE_TABLE

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    queue: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    headers: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    properties: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    priority: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=0)
    delayed_until: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    redelivered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Claim marker. Never written here; claiming deletes the row.
    consumer_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        Index("ix_enqueue_claim", "queue", "consumer_id", "priority", "delayed_until"),
        Index("ix_enqueue_priority_id", "priority", "id"),
        # never reuse the id of a deleted row
        {"sqlite_autoincrement": True},
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id, "queue": self.queue, "body": self.body,
            "headers": self.headers, "properties": self.properties,
            "priority": self.priority, "delayed_until": self.delayed_until,
            "redelivered": self.redelivered, "consumer_id": self.consumer_id,
        }
