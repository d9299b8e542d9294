"""
Claim Engine — atomically takes the next eligible row off a queue.

One claim is one short transaction:

  1. SELECT the highest-priority, oldest row of the queue that is visible
     (delayed_until NULL or in the past) with FOR UPDATE. Concurrent
     claimants block on the lock and re-evaluate once it is released; they
     never skip a locked row.
  2. No row → commit, return None.
  3. Row → decode it, DELETE it by primary key, commit. The delete must hit
     exactly one row, anything else raises ConsistencyFault.

Deleting inside the claim transaction is the acknowledgment: there is no
in-flight state, so delivery is at-most-once. A process that dies after the
commit but before it handles the message loses that message.

Any SQLAlchemyError inside the transaction (lock timeout, deadlock, dropped
connection) rolls back and is reported as "no message"; the polling loop
retries on its next iteration. Errors while acquiring the connection are
raised unchanged.
"""
from __future__ import annotations

import time
import structlog
from typing import Optional

from sqlalchemy import select, delete, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from database.models import QueueMessageRow
from table_queue import codec
from table_queue.errors import ConsistencyFault
from table_queue.message import QueueMessage

logger = structlog.get_logger()


class ClaimEngine:
    """
    Removes and returns one message per call.

    Safe to share between consumers of the same queue; all coordination is
    done by the database.
    """

    def __init__(self, engine: AsyncEngine):
        self._engine = engine

    def _eligible_stmt(self, queue_name: str, now: int):
        return (
            select(QueueMessageRow.__table__)
            .where(
                QueueMessageRow.queue == queue_name,
                QueueMessageRow.consumer_id.is_(None),
                or_(
                    QueueMessageRow.delayed_until.is_(None),
                    QueueMessageRow.delayed_until <= now,
                ),
            )
            .order_by(QueueMessageRow.priority.desc(), QueueMessageRow.id.asc())
            .limit(1)
            .with_for_update()
        )

    async def try_claim_next(self, queue_name: str) -> Optional[QueueMessage]:
        """Claim the next eligible message of ``queue_name``, or return None."""
        async with self._engine.connect() as conn:
            try:
                async with conn.begin():
                    now = int(time.time())
                    result = await conn.execute(self._eligible_stmt(queue_name, now))
                    row = result.mappings().first()
                    if row is None:
                        return None

                    message = codec.decode(row)

                    deleted = await conn.execute(
                        delete(QueueMessageRow.__table__)
                        .where(QueueMessageRow.id == message.id)
                    )
                    if deleted.rowcount != 1:
                        logger.error("claim_consistency_fault",
                                     queue=queue_name,
                                     message_id=message.id,
                                     affected_rows=deleted.rowcount)
                        raise ConsistencyFault(
                            f'Expected record was removed but it is not. id: "{message.id}"',
                            affected_rows=deleted.rowcount,
                        )

                logger.info("message_claimed",
                            queue=queue_name,
                            message_id=message.id,
                            priority=message.priority,
                            redelivered=message.redelivered)
                return message

            except SQLAlchemyError as e:
                logger.warning("claim_transient_error",
                               queue=queue_name,
                               error=str(e))
                return None
