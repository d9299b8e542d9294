#!/usr/bin/env python3
"""
Database Migration — Create the queue table from the SQLAlchemy model.

Usage:
    # Create table and indexes:
    python scripts/migrate_db.py

    # Check status only (no changes):
    python scripts/migrate_db.py --check

    # Use another settings file:
    python scripts/migrate_db.py --config /etc/table_queue/settings.yaml
"""
import asyncio
import os
import sys
import argparse

# Ensure app root is on path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


async def existing_tables(engine) -> list[str]:
    from sqlalchemy import inspect

    async with engine.connect() as conn:
        return await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())


async def run_migration(check_only: bool = False, config_path: str = None) -> int:
    from config.settings import load_settings
    settings = load_settings(config_path)

    from database.session import create_engine_from_settings, init_db
    from database.models import Base

    engine = create_engine_from_settings(settings)
    try:
        print(f"Database: {engine.dialect.name}")
        print(f"URL: {str(engine.url).split('@')[-1] if '@' in str(engine.url) else str(engine.url)}")

        if check_only:
            existing = await existing_tables(engine)
            print(f"Tables defined: {', '.join(Base.metadata.tables.keys())}")
            print(f"Tables existing: {', '.join(existing) or '(none)'}")

            missing = set(Base.metadata.tables.keys()) - set(existing)
            if missing:
                print(f"Tables MISSING: {', '.join(sorted(missing))}")
                print("Run without --check to create them.")
                return 1
            print("All tables exist.")
            return 0

        print("Running database migration...")
        await init_db(engine)
        print(f"Tables created/verified: {', '.join(await existing_tables(engine))}")
        print("Migration complete.")
        return 0
    finally:
        await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Create or check the queue table")
    parser.add_argument("--check", action="store_true", help="Only report missing tables")
    parser.add_argument("--config", default=None, help="Path to settings.yaml")
    args = parser.parse_args()
    sys.exit(asyncio.run(run_migration(check_only=args.check, config_path=args.config)))


if __name__ == "__main__":
    main()
