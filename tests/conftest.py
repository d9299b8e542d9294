"""Shared test fixtures for the table queue."""
import pytest
import pytest_asyncio
from typing import Any, Optional

from sqlalchemy import select

from database.models import QueueMessageRow
from database.session import create_engine, get_session, init_db
from table_queue.context import QueueContext


@pytest_asyncio.fixture
async def engine(tmp_path):
    """File-backed SQLite so concurrent connections share one database."""
    engine = create_engine(f"sqlite:///{tmp_path / 'queue.db'}", lock_timeout=10)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def context(engine):
    ctx = QueueContext(engine, polling_interval=50)
    yield ctx
    await ctx.close()


@pytest.fixture
def add_row(engine):
    """Insert a raw queue row, bypassing the producer. Returns the new id."""
    async def _add(
        queue: str = "default",
        body: str = "",
        priority: int = 0,
        delayed_until: Optional[int] = None,
        headers: Optional[str] = None,
        properties: Optional[str] = None,
        redelivered: bool = False,
        consumer_id: Optional[str] = None,
    ) -> int:
        async with get_session(engine) as db:
            row = QueueMessageRow(
                queue=queue, body=body, priority=priority,
                delayed_until=delayed_until, headers=headers,
                properties=properties, redelivered=redelivered,
                consumer_id=consumer_id,
            )
            db.add(row)
            await db.flush()
            return row.id
    return _add


@pytest.fixture
def fetch_rows(engine):
    """Return every stored row as a dict, oldest first."""
    async def _fetch(queue: Optional[str] = None) -> list[dict[str, Any]]:
        async with get_session(engine) as db:
            stmt = select(QueueMessageRow).order_by(QueueMessageRow.id)
            if queue is not None:
                stmt = stmt.where(QueueMessageRow.queue == queue)
            result = await db.execute(stmt)
            return [row.to_dict() for row in result.scalars()]
    return _fetch
