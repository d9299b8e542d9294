"""
Message Codec — converts between queue table rows and QueueMessage.

Header and property maps are stored as JSON text. A NULL or empty column
decodes to an empty dict, so an empty map survives a round trip either way.
"""
from __future__ import annotations

import json
from typing import Any, Mapping

from table_queue.message import QueueMessage


def dumps_map(value: Mapping[str, Any]) -> str:
    """Serialize a string-keyed map to JSON text."""
    return json.dumps(dict(value))


def loads_map(raw: str) -> dict[str, Any]:
    """Parse JSON text that must hold an object."""
    value = json.loads(raw)
    if not isinstance(value, dict):
        raise ValueError(f"Expected a JSON object, got {type(value).__name__}")
    return value


def decode(row: Mapping[str, Any]) -> QueueMessage:
    """Build a QueueMessage from a queue row. A row without an id decodes with id None."""
    return QueueMessage(
        id=int(row["id"]) if row.get("id") is not None else None,
        body=row["body"],
        headers=loads_map(row["headers"]) if row.get("headers") else {},
        properties=loads_map(row["properties"]) if row.get("properties") else {},
        priority=int(row["priority"] or 0),
        redelivered=bool(row["redelivered"]),
    )


def encode(message: QueueMessage, queue_name: str, redelivered: bool = True) -> dict[str, Any]:
    """
    Column values for inserting ``message`` into ``queue_name``.

    ``redelivered`` defaults to True because requeue is the main caller;
    the producer passes False.
    """
    return {
        "body": message.body,
        "headers": dumps_map(message.headers),
        "properties": dumps_map(message.properties),
        "priority": int(message.priority),
        "queue": queue_name,
        "redelivered": redelivered,
    }
