"""
Database layer — the shared queue table and engine construction.

Backends (SQLAlchemy async):
  - PostgreSQL (asyncpg)
  - MySQL 8+   (aiomysql)
  - SQLite     (aiosqlite)

Quick start:
  from database import create_engine, init_db
  engine = create_engine("sqlite:///./table_queue.db")
  await init_db(engine)
"""
from database.models import Base, QueueMessageRow, QUEUE_TABLE
from database.session import (
    create_engine, create_engine_from_settings, get_session, init_db, drop_db,
)

__all__ = [
    # ORM models
    "Base", "QueueMessageRow", "QUEUE_TABLE",
    # Engine / session management
    "create_engine", "create_engine_from_settings", "get_session", "init_db", "drop_db",
]
