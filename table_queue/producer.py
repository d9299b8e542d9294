"""
Queue Producer — inserts new messages into the shared table.
"""
from __future__ import annotations

import math
import time
import structlog

from sqlalchemy.ext.asyncio import AsyncEngine

from table_queue import codec
from table_queue.errors import InvalidMessageError
from table_queue.message import QueueDestination, QueueMessage
from table_queue.requeue import insert_row

logger = structlog.get_logger()


class QueueProducer:

    def __init__(self, engine: AsyncEngine):
        self._engine = engine

    async def send(self, destination: QueueDestination, message: QueueMessage) -> None:
        """Insert ``message``; a ``delivery_delay`` hides it for that many ms."""
        InvalidMessageError.assert_message_instance(message, QueueMessage)

        values = codec.encode(message, destination.queue_name, redelivered=False)
        if message.delivery_delay:
            # round up so the message is never visible early
            values["delayed_until"] = math.ceil(time.time() + message.delivery_delay / 1000)

        await insert_row(self._engine, values)

        logger.info("message_sent",
                    queue=destination.queue_name,
                    priority=message.priority,
                    delayed_until=values.get("delayed_until"))
