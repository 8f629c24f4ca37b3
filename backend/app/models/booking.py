"""
Booking document and its pre-save checks.

Key design decisions:
- `eventId` is stored as an ObjectId and indexed (`ix_bookings_event_id`)
- The referenced event must exist at save time; the check goes through an
  EventLookup so the booking layer never imports the event store
- Email is trimmed and lower-cased before it is validated
"""

import re
from datetime import datetime
from typing import Any, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field

from app.core.errors import ErrorCode, ValidationError
from app.services.interfaces.event_lookup import EventLookup

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(value: str) -> str:
    return value.strip().lower()


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL_RE.match(value))


class Booking(BaseModel):
    """A booking as stored in the `bookings` collection."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    event_id: str = Field(alias="eventId")
    email: str
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Booking":
        data = dict(doc)
        _id = data.pop("_id", None)
        if _id is not None:
            data["id"] = str(_id)
        data["eventId"] = str(data["eventId"])
        return cls.model_validate(data)

    def to_document(self) -> dict[str, Any]:
        doc = self.model_dump(by_alias=True, exclude={"id"})
        doc["eventId"] = ObjectId(self.event_id)
        if self.id is not None:
            doc["_id"] = ObjectId(self.id)
        return doc


async def prepare_booking_for_save(booking: Booking, events: EventLookup) -> Booking:
    """
    Normalize and re-check a booking right before it is written.

    Raises ValidationError for a malformed email or when the referenced
    event does not exist.
    """
    email = normalize_email(booking.email)
    if not is_valid_email(email):
        raise ValidationError(
            "Email must be a valid email address.",
            field="email",
            code=ErrorCode.INVALID_EMAIL,
        )

    if not await events.exists(booking.event_id):
        raise ValidationError(
            "Cannot create booking: referenced event does not exist.",
            field="eventId",
            code=ErrorCode.EVENT_NOT_FOUND,
        )

    return booking.model_copy(update={"email": email})
