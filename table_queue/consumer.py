"""
Polling Consumer — receives messages from one queue by repeated claims.

There is no push notification: an empty claim is followed by a sleep of one
polling interval, so a freshly sent message can wait up to that long before
it is picked up. Run several consumers (tasks, threads or processes) on the
same queue to scale; the database decides which one gets each row.

Usage:
    consumer = context.create_consumer(context.create_queue("emails"))
    message = await consumer.receive(timeout=5000)   # ms, 0 = wait forever
    if message:
        try:
            handle(message)
        except Exception:
            await consumer.reject(message, requeue=True)

Delivery is at-most-once. ``acknowledge`` is a no-op because the row was
deleted when it was claimed.
"""
from __future__ import annotations

import asyncio
import time
import uuid
import structlog
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from table_queue.claim import ClaimEngine
from table_queue.errors import InvalidMessageError
from table_queue.message import QueueDestination, QueueMessage
from table_queue.requeue import RequeuePublisher

logger = structlog.get_logger()

DEFAULT_POLLING_INTERVAL_MS = 1000


class PollingConsumer:
    """Blocking and non-blocking receive on top of ClaimEngine."""

    def __init__(
        self,
        engine: AsyncEngine,
        destination: QueueDestination,
        polling_interval: int = DEFAULT_POLLING_INTERVAL_MS,
    ):
        self._destination = destination
        self._claims = ClaimEngine(engine)
        self._requeue = RequeuePublisher(engine, destination)
        self._consumer_id = uuid.uuid4().hex
        self.polling_interval = polling_interval

    @property
    def polling_interval(self) -> int:
        """Sleep between empty claim attempts, in milliseconds."""
        return self._polling_interval_ms

    @polling_interval.setter
    def polling_interval(self, msec: int) -> None:
        if msec < 0:
            raise ValueError("polling_interval must be >= 0 milliseconds")
        self._polling_interval_ms = int(msec)

    def get_queue(self) -> QueueDestination:
        return self._destination

    def get_id(self) -> str:
        return self._consumer_id

    async def receive(self, timeout: int = 0) -> Optional[QueueMessage]:
        """
        Wait up to ``timeout`` milliseconds for a message; 0 waits forever.

        The elapsed time is checked both before and after each sleep, so the
        call returns at most one polling interval after the timeout.
        """
        start = time.monotonic()

        while True:
            message = await self._claims.try_claim_next(self._destination.queue_name)
            if message is not None:
                return message

            if self._timed_out(start, timeout):
                break

            await self._wait()

            if self._timed_out(start, timeout):
                break

        logger.debug("receive_timed_out",
                     queue=self._destination.queue_name,
                     consumer_id=self._consumer_id,
                     timeout_ms=timeout)
        return None

    async def receive_no_wait(self) -> Optional[QueueMessage]:
        return await self._claims.try_claim_next(self._destination.queue_name)

    async def acknowledge(self, message: QueueMessage) -> None:
        InvalidMessageError.assert_message_instance(message, QueueMessage)
        await self._requeue.acknowledge(message)

    async def reject(self, message: QueueMessage, requeue: bool = False) -> None:
        InvalidMessageError.assert_message_instance(message, QueueMessage)
        await self._requeue.reject(message, requeue)

    async def _wait(self) -> None:
        await asyncio.sleep(self._polling_interval_ms / 1000)

    @staticmethod
    def _timed_out(start: float, timeout: int) -> bool:
        return bool(timeout) and (time.monotonic() - start) * 1000 >= timeout
