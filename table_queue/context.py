"""
QueueContext — explicit owner of the store handle.

The engine is either injected (the caller keeps ownership and disposes it)
or built from settings (the context disposes it on close).

Usage:
    async with QueueContext.from_settings() as context:
        await context.init_schema()
        queue = context.create_queue("emails")
        await context.create_producer().send(queue, context.create_message("hi"))
        message = await context.create_consumer(queue).receive_no_wait()
"""
from __future__ import annotations

import structlog
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from config.settings import Settings, get_settings
from database.session import create_engine_from_settings, init_db, drop_db
from table_queue.consumer import PollingConsumer, DEFAULT_POLLING_INTERVAL_MS
from table_queue.message import QueueDestination, QueueMessage
from table_queue.producer import QueueProducer

logger = structlog.get_logger()


class QueueContext:

    def __init__(
        self,
        engine: AsyncEngine,
        polling_interval: int = DEFAULT_POLLING_INTERVAL_MS,
        default_queue: str = "default",
        owns_engine: bool = False,
    ):
        self._engine: Optional[AsyncEngine] = engine
        self._owns_engine = owns_engine
        self.polling_interval = polling_interval
        self.default_queue = default_queue

    @classmethod
    def from_settings(cls, settings: Settings = None) -> QueueContext:
        settings = settings or get_settings()
        return cls(
            create_engine_from_settings(settings),
            polling_interval=settings.queue.polling_interval_ms,
            default_queue=settings.queue.default_queue,
            owns_engine=True,
        )

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("QueueContext is closed")
        return self._engine

    # ── Factories ─────────────────────────────────────────────

    def create_queue(self, name: str = None) -> QueueDestination:
        return QueueDestination(name if name is not None else self.default_queue)

    def create_message(
        self, body: str = "", headers: dict[str, Any] = None,
        properties: dict[str, Any] = None, priority: int = 0,
    ) -> QueueMessage:
        return QueueMessage(
            body=body,
            headers=headers or {},
            properties=properties or {},
            priority=priority,
        )

    def create_consumer(self, destination: QueueDestination) -> PollingConsumer:
        return PollingConsumer(self.engine, destination, polling_interval=self.polling_interval)

    def create_producer(self) -> QueueProducer:
        return QueueProducer(self.engine)

    # ── Schema & lifecycle ────────────────────────────────────

    async def init_schema(self) -> None:
        await init_db(self.engine)

    async def drop_schema(self) -> None:
        await drop_db(self.engine)

    async def close(self) -> None:
        if self._engine is None:
            return
        if self._owns_engine:
            await self._engine.dispose()
        self._engine = None
        logger.info("queue_context_closed", disposed_engine=self._owns_engine)

    async def __aenter__(self) -> QueueContext:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
