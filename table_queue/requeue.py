"""
Requeue Publisher — puts a rejected message back on its queue.

The claimed row is already gone, so a requeue is a fresh INSERT: same body,
headers, properties and priority, ``redelivered = True`` and a new id.
"""
from __future__ import annotations

import structlog

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncEngine

from database.models import QueueMessageRow
from table_queue import codec
from table_queue.errors import ConsistencyFault
from table_queue.message import QueueDestination, QueueMessage

logger = structlog.get_logger()


async def insert_row(engine: AsyncEngine, values: dict) -> None:
    """Insert one queue row in its own transaction; exactly one row or ConsistencyFault."""
    async with engine.begin() as conn:
        result = await conn.execute(insert(QueueMessageRow.__table__).values(**values))
        if result.rowcount != 1:
            raise ConsistencyFault(
                f'Expected record was inserted but it is not. message: "{values}"',
                affected_rows=result.rowcount,
            )


class RequeuePublisher:
    """Handles acknowledge/reject for messages claimed from one queue."""

    def __init__(self, engine: AsyncEngine, destination: QueueDestination):
        self._engine = engine
        self._destination = destination

    async def acknowledge(self, message: QueueMessage) -> None:
        # The claim already deleted the row.
        pass

    async def reject(self, message: QueueMessage, requeue: bool = False) -> None:
        if not requeue:
            logger.debug("message_rejected",
                         queue=self._destination.queue_name,
                         message_id=message.id)
            return

        values = codec.encode(message, self._destination.queue_name, redelivered=True)
        await insert_row(self._engine, values)

        logger.info("message_requeued",
                    queue=self._destination.queue_name,
                    original_id=message.id,
                    priority=message.priority)
