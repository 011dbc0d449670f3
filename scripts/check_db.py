#!/usr/bin/env python
"""Check database connectivity and the learning tables.

Usage:
    python scripts/check_db.py
"""

import asyncio
import sys

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine

from app.core.config import get_settings
from app.core.health import LEARNING_TABLES


async def check_database() -> int:
    """Verify the connection and that every learning table exists."""
    settings = get_settings()

    print("ReplenishLab - Database Check")
    print("=" * 45)
    print(f"Database URL: {settings.database_url.split('@')[-1]}")  # Hide credentials
    print()

    engine = create_async_engine(settings.database_url)
    missing: list[str] = []

    try:
        async with engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            if result.scalar() != 1:
                raise RuntimeError("SELECT 1 returned an unexpected value")
            print("[OK] Basic connectivity")

            for table in LEARNING_TABLES:
                result = await conn.execute(
                    text("SELECT to_regclass(:name)"), {"name": f"public.{table}"}
                )
                if result.scalar():
                    print(f"[OK] Table {table}")
                else:
                    print(f"[WARN] Table {table} missing")
                    missing.append(table)

    except (SQLAlchemyError, OSError, RuntimeError) as e:
        print(f"[FAIL] Connection failed: {e}")
        print()
        print("Troubleshooting:")
        print("  1. Ensure PostgreSQL is running")
        print("  2. Check DATABASE_URL in .env file")
        return 1

    finally:
        await engine.dispose()

    print()
    if missing:
        print("Forecasts run with default events and weights until you run:")
        print("  alembic upgrade head")
        return 2
    print("Database check completed successfully!")
    return 0


def main() -> None:
    sys.exit(asyncio.run(check_database()))


if __name__ == "__main__":
    main()
