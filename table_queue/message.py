"""
Queue message and destination models.

A QueueMessage built by application code has ``id = None``; only the codec
assigns a store id when it decodes a claimed row.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class QueueDestination:
    """A named partition of the shared queue table."""
    queue_name: str

    def __post_init__(self):
        if not self.queue_name:
            raise ValueError("queue_name must be a non-empty string")


@dataclass
class QueueMessage:
    """A unit of work on a table queue."""
    body: str = ""
    headers: dict[str, Any] = field(default_factory=dict)
    properties: dict[str, Any] = field(default_factory=dict)
    priority: int = 0
    redelivered: bool = False
    delivery_delay: Optional[int] = None   # milliseconds, producer only
    id: Optional[int] = None

    def get_header(self, name: str, default: Any = None) -> Any:
        return self.headers.get(name, default)

    def get_property(self, name: str, default: Any = None) -> Any:
        return self.properties.get(name, default)

