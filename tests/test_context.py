"""
Tests for QueueContext lifecycle and end-to-end use.
"""
import pytest
from unittest.mock import AsyncMock, MagicMock

from config.settings import DatabaseConfig, QueueConfig, Settings
from table_queue.consumer import PollingConsumer
from table_queue.context import QueueContext
from table_queue.message import QueueDestination


@pytest.fixture
def tmp_settings(tmp_path):
    return Settings(
        database=DatabaseConfig(url=f"sqlite:///{tmp_path / 'ctx.db'}", lock_timeout=5),
        queue=QueueConfig(polling_interval_ms=25),
    )


class TestQueueContext:
    @pytest.mark.asyncio
    async def test_end_to_end(self, tmp_settings):
        async with QueueContext.from_settings(tmp_settings) as context:
            await context.init_schema()
            queue = context.create_queue("emails")
            await context.create_producer().send(
                queue, context.create_message("hi", headers={"a": "b"}, priority=1),
            )

            msg = await context.create_consumer(queue).receive(timeout=1000)
            assert msg.body == "hi"
            assert msg.headers == {"a": "b"}
            assert msg.priority == 1

    @pytest.mark.asyncio
    async def test_consumer_inherits_polling_interval(self, tmp_settings):
        context = QueueContext.from_settings(tmp_settings)
        try:
            consumer = context.create_consumer(context.create_queue("q"))
            assert isinstance(consumer, PollingConsumer)
            assert consumer.polling_interval == 25
        finally:
            await context.close()

    @pytest.mark.asyncio
    async def test_close_disposes_owned_engine(self, tmp_settings):
        context = QueueContext.from_settings(tmp_settings)
        await context.close()
        with pytest.raises(RuntimeError):
            context.engine
        # closing twice is fine
        await context.close()

    @pytest.mark.asyncio
    async def test_close_keeps_injected_engine(self):
        engine = MagicMock()
        engine.dispose = AsyncMock()
        context = QueueContext(engine)
        await context.close()
        engine.dispose.assert_not_called()

    def test_create_message_defaults(self):
        msg = QueueContext(MagicMock()).create_message("body")
        assert msg.id is None
        assert msg.headers == {}
        assert msg.properties == {}
        assert msg.priority == 0
        assert msg.redelivered is False

    def test_message_accessors(self):
        msg = QueueContext(MagicMock()).create_message(
            "body", headers={"h": "v"}, properties={"p": 2},
        )
        assert msg.get_header("h") == "v"
        assert msg.get_header("missing", "d") == "d"
        assert msg.get_property("p") == 2
        assert msg.get_property("missing") is None

    def test_create_queue(self):
        queue = QueueContext(MagicMock()).create_queue("emails")
        assert queue == QueueDestination("emails")

    @pytest.mark.asyncio
    async def test_default_queue_from_settings(self, tmp_settings):
        tmp_settings.queue.default_queue = "emails"
        async with QueueContext.from_settings(tmp_settings) as context:
            assert context.create_queue() == QueueDestination("emails")
            assert context.create_queue("sms") == QueueDestination("sms")

    def test_empty_queue_name(self):
        with pytest.raises(ValueError):
            QueueContext(MagicMock()).create_queue("")

    @pytest.mark.asyncio
    async def test_drop_schema(self, tmp_settings):
        from scripts.migrate_db import existing_tables

        async with QueueContext.from_settings(tmp_settings) as context:
            await context.init_schema()
            assert "enqueue" in await existing_tables(context.engine)
            await context.drop_schema()
            assert "enqueue" not in await existing_tables(context.engine)
