"""
Explicit index management for the events and bookings collections.

Indexes are not created when the client connects. Build them once per
deployment with:

    python -m app.db.indexes

or set MONGODB_ENSURE_INDEXES=true to build them during application startup.
"""

import asyncio

from pymongo import ASCENDING
from pymongo.asynchronous.database import AsyncDatabase

from app.core.logging import get_logger, setup_logging
from app.db.mongodb import close_database, get_db

logger = get_logger(__name__)

EVENTS_COLLECTION = "events"
BOOKINGS_COLLECTION = "bookings"


async def ensure_indexes(db: AsyncDatabase) -> list[str]:
    """Create the slug unique index and the booking eventId index."""
    created = [
        await db[EVENTS_COLLECTION].create_index(
            [("slug", ASCENDING)], unique=True, name="uq_events_slug"
        ),
        await db[BOOKINGS_COLLECTION].create_index(
            [("eventId", ASCENDING)], name="ix_bookings_event_id"
        ),
    ]
    logger.info("indexes_ensured", indexes=created)
    return created


async def _main() -> None:
    setup_logging()
    try:
        await ensure_indexes(await get_db())
    finally:
        await close_database()


if __name__ == "__main__":
    asyncio.run(_main())
