"""
Tests for requeue on reject.

Covers:
  - reject(requeue=True) round trip
  - insert row count check
"""
import pytest
from unittest.mock import AsyncMock, MagicMock

from table_queue.consumer import PollingConsumer
from table_queue.errors import ConsistencyFault
from table_queue.message import QueueDestination, QueueMessage
from table_queue.requeue import RequeuePublisher


class TestRequeue:
    @pytest.mark.asyncio
    async def test_round_trip(self, engine, context):
        queue = context.create_queue("emails")
        original = QueueMessage(
            body="payload",
            headers={"content_type": "text/plain"},
            properties={"tenant": "acme", "attempt": 1},
            priority=3,
        )
        await context.create_producer().send(queue, original)

        consumer = context.create_consumer(queue)
        first = await consumer.receive_no_wait()
        assert first.redelivered is False

        await consumer.reject(first, requeue=True)
        second = await consumer.receive_no_wait()

        assert second is not None
        assert second.body == original.body
        assert second.headers == original.headers
        assert second.properties == original.properties
        assert second.priority == original.priority
        assert second.redelivered is True
        assert second.id != first.id

    @pytest.mark.asyncio
    async def test_requeue_keeps_empty_maps(self, engine, context):
        queue = context.create_queue("emails")
        await context.create_producer().send(queue, QueueMessage(body="bare"))
        consumer = context.create_consumer(queue)

        await consumer.reject(await consumer.receive_no_wait(), requeue=True)
        again = await consumer.receive_no_wait()
        assert again.headers == {}
        assert again.properties == {}

    @pytest.mark.asyncio
    async def test_requeue_lands_on_consumer_queue(self, engine, add_row, fetch_rows):
        await add_row(queue="emails", body="x")
        consumer = PollingConsumer(engine, QueueDestination("emails"))
        msg = await consumer.receive_no_wait()

        await consumer.reject(msg, requeue=True)

        rows = await fetch_rows()
        assert len(rows) == 1
        assert rows[0]["queue"] == "emails"
        assert rows[0]["redelivered"] is True
        assert rows[0]["delayed_until"] is None

    @pytest.mark.asyncio
    async def test_insert_row_count_checked(self):
        conn = MagicMock()
        conn.execute = AsyncMock(return_value=MagicMock(rowcount=0))
        engine = MagicMock()
        engine.begin.return_value.__aenter__ = AsyncMock(return_value=conn)
        engine.begin.return_value.__aexit__ = AsyncMock(return_value=False)

        publisher = RequeuePublisher(engine, QueueDestination("emails"))
        with pytest.raises(ConsistencyFault) as exc_info:
            await publisher.reject(QueueMessage(body="x", id=1), requeue=True)
        assert exc_info.value.affected_rows == 0

    @pytest.mark.asyncio
    async def test_reject_without_requeue_skips_store(self):
        engine = MagicMock()
        publisher = RequeuePublisher(engine, QueueDestination("emails"))
        await publisher.reject(QueueMessage(body="x", id=1), requeue=False)
        await publisher.acknowledge(QueueMessage(body="x", id=1))
        engine.begin.assert_not_called()
