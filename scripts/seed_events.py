#!/usr/bin/env python
"""Seed the default seasonal event catalog.

Events are upserted by name, so re-running only refreshes the defaults.

Usage:
    # Preview the catalog
    python scripts/seed_events.py --dry-run

    # Write it
    python scripts/seed_events.py --confirm
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import get_settings
from app.core.logging import configure_logging
from app.features.seasonality.defaults import DEFAULT_EVENTS
from app.features.seasonality.service import SeasonalityService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Seed the default seasonal event catalog")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--dry-run", action="store_true", help="Print the catalog only")
    group.add_argument("--confirm", action="store_true", help="Write the catalog")
    return parser


def print_catalog() -> None:
    for event in DEFAULT_EVENTS:
        print(
            f"  {event.name:<32} {event.event_type:<11} "
            f"{event.start_month:02d}-{event.start_day:02d} to "
            f"{event.end_month:02d}-{event.end_day:02d}  x{event.base_multiplier:g}"
        )


async def seed() -> int:
    """Upsert the defaults in one transaction."""
    settings = get_settings()
    engine = create_async_engine(settings.database_url)
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with session_maker() as session:
            result = await SeasonalityService().seed_defaults(session)
            await session.commit()
    finally:
        await engine.dispose()

    print(f"Created {result.created}, updated {result.updated} events")
    return 0


def main() -> None:
    args = build_parser().parse_args()
    configure_logging()
    print("Default seasonal events:")
    print_catalog()
    if args.dry_run:
        sys.exit(0)
    sys.exit(asyncio.run(seed()))


if __name__ == "__main__":
    main()
