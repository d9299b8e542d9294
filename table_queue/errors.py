"""
Queue error taxonomy.

Only two failure kinds leave the claim path as exceptions:
  - ConsistencyFault:    a delete/insert touched a row count other than one
  - InvalidMessageError: acknowledge/reject got a message this library did not build

Transient store errors during a claim are absorbed by the claim engine and
surface as "no message". Connection errors propagate unchanged from SQLAlchemy.
"""
from __future__ import annotations

from typing import Any


class QueueError(Exception):
    """Base class for table queue errors."""
    pass


class ConsistencyFault(QueueError):
    """
    A claim delete or requeue insert affected an unexpected number of rows.

    Signals lost isolation or a duplicate key. Never retried.
    """

    def __init__(self, message: str, affected_rows: int = -1):
        super().__init__(message)
        self.affected_rows = affected_rows


class InvalidMessageError(QueueError, TypeError):
    """Raised when a consumer is handed an object that is not a QueueMessage."""

    @classmethod
    def assert_message_instance(cls, message: Any, expected: type) -> None:
        if not isinstance(message, expected):
            raise cls(
                f"The message must be an instance of {expected.__name__} "
                f"but it is {type(message).__name__}."
            )
