"""
Booking service.

A booking is written only after its pre-save checks pass: the email is
re-validated and the referenced event must exist. The existence check is
delegated to an EventLookup (MongoEventLookup by default), so tests can
pass a stub. No retries and no partial writes: a failed check means
nothing is inserted.
"""

from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union

from bson import ObjectId
from pydantic import ValidationError as PydanticValidationError
from pymongo import DESCENDING
from pymongo.asynchronous.database import AsyncDatabase

from app.core.errors import ValidationError
from app.core.logging import get_logger
from app.core.metrics import record_save, record_validation_failure
from app.db.indexes import BOOKINGS_COLLECTION
from app.models.booking import Booking, prepare_booking_for_save
from app.schemas.booking import BookingCreate
from app.services.event_service import MongoEventLookup
from app.services.interfaces.event_lookup import EventLookup

logger = get_logger(__name__)

BookingInput = Union[BookingCreate, Mapping[str, Any]]


async def create_booking(
    db: AsyncDatabase,
    booking_data: BookingInput,
    events: Optional[EventLookup] = None,
) -> Booking:
    """Validate and insert a booking for an existing event."""
    try:
        data = (
            booking_data
            if isinstance(booking_data, BookingCreate)
            else BookingCreate.model_validate(booking_data)
        )
    except PydanticValidationError as exc:
        error = ValidationError.from_pydantic(exc)
        record_validation_failure(BOOKINGS_COLLECTION, error.code.value)
        raise error from exc

    booking = Booking(event_id=data.event_id, email=data.email)
    try:
        booking = await prepare_booking_for_save(booking, events or MongoEventLookup(db))
    except ValidationError as e:
        record_save(BOOKINGS_COLLECTION, "invalid")
        record_validation_failure(BOOKINGS_COLLECTION, e.code.value)
        logger.warning("booking_rejected", event_id=booking.event_id, reason=e.message)
        raise

    now = datetime.now(timezone.utc)
    booking = booking.model_copy(update={"created_at": now, "updated_at": now})
    result = await db[BOOKINGS_COLLECTION].insert_one(booking.to_document())
    booking = booking.model_copy(update={"id": str(result.inserted_id)})

    record_save(BOOKINGS_COLLECTION, "saved")
    logger.info("booking_created", booking_id=booking.id, event_id=booking.event_id)
    return booking


async def list_bookings_for_event(db: AsyncDatabase, event_id: str) -> list[Booking]:
    """Bookings for one event, newest first. Uses ix_bookings_event_id."""
    if not ObjectId.is_valid(event_id):
        return []
    cursor = (
        db[BOOKINGS_COLLECTION]
        .find({"eventId": ObjectId(event_id)})
        .sort("createdAt", DESCENDING)
    )
    return [Booking.from_document(doc) for doc in await cursor.to_list(length=None)]
