"""
Event service: persistence of events through the pre-save pipeline.

Every write goes through `save_event`, which loads the stored version (if
any), runs `prepare_event_for_save`, stamps timestamps and writes the full
document. Duplicate slugs are rejected by the unique index and surface as
ConstraintViolation.
"""

from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union

from bson import ObjectId
from pydantic import ValidationError as PydanticValidationError
from pymongo import ASCENDING
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from app.core.errors import ConstraintViolation, RecordNotFoundError, ValidationError
from app.core.logging import get_logger
from app.core.metrics import record_save, record_validation_failure
from app.db.indexes import EVENTS_COLLECTION
from app.models.event import Event, prepare_event_for_save
from app.schemas.event import EventCreate
from app.services.cache_service import (
    get_cached_event,
    get_cached_events,
    invalidate_event_cache,
    set_cached_event,
    set_cached_events,
)
from app.services.interfaces.event_lookup import EventLookup

logger = get_logger(__name__)

EventInput = Union[EventCreate, Mapping[str, Any]]


def _parse_input(event_data: EventInput) -> EventCreate:
    if isinstance(event_data, EventCreate):
        return event_data
    try:
        return EventCreate.model_validate(event_data)
    except PydanticValidationError as exc:
        error = ValidationError.from_pydantic(exc)
        record_validation_failure(EVENTS_COLLECTION, error.code.value)
        raise error from exc


async def _find_stored(db: AsyncDatabase, event_id: str) -> Optional[Event]:
    if not ObjectId.is_valid(event_id):
        return None
    doc = await db[EVENTS_COLLECTION].find_one({"_id": ObjectId(event_id)})
    return Event.from_document(doc) if doc else None


async def save_event(db: AsyncDatabase, event: Event) -> Event:
    """
    Validate, normalize and persist a full event record.

    New events (id is None) are inserted; existing ones are replaced.
    """
    stored = None
    if event.id is not None:
        stored = await _find_stored(db, event.id)
        if stored is None:
            raise RecordNotFoundError(EVENTS_COLLECTION, event.id)

    try:
        prepared = prepare_event_for_save(event, stored)
    except ValidationError as e:
        record_save(EVENTS_COLLECTION, "invalid")
        record_validation_failure(EVENTS_COLLECTION, e.code.value)
        logger.warning("event_rejected", field=e.field, reason=e.message)
        raise

    now = datetime.now(timezone.utc)
    prepared = prepared.model_copy(update={
        "created_at": stored.created_at if stored else now,
        "updated_at": now,
    })

    collection = db[EVENTS_COLLECTION]
    try:
        if stored is None:
            result = await collection.insert_one(prepared.to_document())
            prepared = prepared.model_copy(update={"id": str(result.inserted_id)})
        else:
            await collection.replace_one({"_id": ObjectId(prepared.id)}, prepared.to_document())
    except DuplicateKeyError as e:
        record_save(EVENTS_COLLECTION, "conflict")
        logger.warning("event_slug_conflict", slug=prepared.slug)
        raise ConstraintViolation(
            f"An event with slug '{prepared.slug}' already exists",
            field="slug",
        ) from e

    record_save(EVENTS_COLLECTION, "saved")
    logger.info("event_saved", event_id=prepared.id, slug=prepared.slug, created=stored is None)
    await invalidate_event_cache()
    return prepared


async def create_event(db: AsyncDatabase, event_data: EventInput) -> Event:
    """Create a new event; slug, date and time are derived on save."""
    data = _parse_input(event_data)
    return await save_event(db, Event(**data.model_dump()))


async def update_event(db: AsyncDatabase, event_id: str, event_data: EventInput) -> Event:
    """Replace every caller-supplied field of an existing event."""
    data = _parse_input(event_data)
    stored = await _find_stored(db, event_id)
    if stored is None:
        raise RecordNotFoundError(EVENTS_COLLECTION, event_id)
    return await save_event(db, stored.model_copy(update=data.model_dump()))


async def get_event(db: AsyncDatabase, event_id: str) -> Optional[Event]:
    return await _find_stored(db, event_id)


async def get_event_by_slug(db: AsyncDatabase, slug: str) -> Optional[Event]:
    """Look up an event by slug, served from cache when possible."""
    cached = await get_cached_event(slug)
    if cached:
        return Event.model_validate(cached)

    doc = await db[EVENTS_COLLECTION].find_one({"slug": slug})
    if not doc:
        return None

    event = Event.from_document(doc)
    await set_cached_event(slug, event.model_dump(mode="json", by_alias=True))
    return event


async def list_events(
    db: AsyncDatabase,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Event], int]:
    """List events ordered by date then time, with pagination."""
    cached = await get_cached_events(page, page_size)
    if cached:
        return [Event.model_validate(e) for e in cached["events"]], cached["total"]

    collection = db[EVENTS_COLLECTION]
    total = await collection.count_documents({})
    cursor = (
        collection.find({})
        .sort([("date", ASCENDING), ("time", ASCENDING)])
        .skip((page - 1) * page_size)
        .limit(page_size)
    )
    events = [Event.from_document(doc) for doc in await cursor.to_list(length=None)]

    await set_cached_events(page, page_size, {
        "events": [e.model_dump(mode="json", by_alias=True) for e in events],
        "total": total,
    })
    return events, total


async def event_exists(db: AsyncDatabase, event_id: str) -> bool:
    if not ObjectId.is_valid(event_id):
        return False
    return await db[EVENTS_COLLECTION].count_documents({"_id": ObjectId(event_id)}, limit=1) > 0


class MongoEventLookup(EventLookup):
    """EventLookup backed by the `events` collection."""

    def __init__(self, db: AsyncDatabase) -> None:
        self._db = db

    async def exists(self, event_id: str) -> bool:
        return await event_exists(self._db, event_id)
