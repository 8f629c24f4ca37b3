"""
Event document and its pre-save pipeline.

Key design decisions:
- `slug` is derived from `title` and backed by the unique index `uq_events_slug`;
  a collision surfaces as ConstraintViolation from the service layer
- `date` is stored as `YYYY-MM-DD` and `time` as zero-padded 24h `HH:mm`
- Field checks (trimmed, non-empty) run on every save, whatever the entry point
- The pipeline only rewrites fields that changed relative to the stored document
"""

import re
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from bson import ObjectId
from dateutil import parser as dtp
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from app.core.errors import ErrorCode, ValidationError
from app.schemas.event import EventCreate

_NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$", re.ASCII)


class Event(BaseModel):
    """An event as stored in the `events` collection."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    title: str
    slug: str = ""
    description: str
    overview: str
    image: str
    venue: str
    location: str
    date: str
    time: str
    mode: str
    audience: str
    agenda: list[str]
    organizer: str
    tags: list[str]
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Event":
        data = dict(doc)
        _id = data.pop("_id", None)
        if _id is not None:
            data["id"] = str(_id)
        return cls.model_validate(data)

    def to_document(self) -> dict[str, Any]:
        doc = self.model_dump(by_alias=True, exclude={"id"})
        if self.id is not None:
            doc["_id"] = ObjectId(self.id)
        return doc


def generate_slug(title: str) -> str:
    """Lower-case, dash-separated, URL-safe form of a title."""
    return _NON_ALNUM_RUN.sub("-", title.lower().strip()).strip("-")


# two parses with defaults differing in every date component: a component
# the input leaves out shows up as a mismatch
_DATE_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))


def _invalid_date() -> ValidationError:
    return ValidationError(
        "Invalid date format. Expected a valid date string.",
        field="date",
        code=ErrorCode.INVALID_DATE,
    )


def normalize_date(value: str) -> str:
    """Parse any recognizable full calendar date and return it as YYYY-MM-DD.

    Year, month and day must all be present in the input; nothing is filled
    in from the current date. Timestamps carrying an offset are converted to
    UTC before the calendar date is taken, so "2025-12-01T23:30:00-05:00"
    becomes "2025-12-02".
    """
    try:
        first, second = (dtp.parse(value, default=default) for default in _DATE_DEFAULTS)
    except (ValueError, OverflowError) as exc:
        raise _invalid_date() from exc

    if first.date() != second.date():
        raise _invalid_date()

    if first.tzinfo is not None:
        first = first.astimezone(timezone.utc)
    return first.date().isoformat()


def normalize_time(value: str) -> str:
    """Validate an `H:MM` / `HH:MM` time and return it zero-padded."""
    match = _TIME_RE.match(value)
    if not match:
        raise ValidationError(
            "Invalid time format. Expected HH:mm.",
            field="time",
            code=ErrorCode.INVALID_TIME_FORMAT,
        )

    hours, minutes = int(match.group(1)), int(match.group(2))
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValidationError(
            "Invalid time value. Hour must be 0-23 and minute 0-59.",
            field="time",
            code=ErrorCode.INVALID_TIME_VALUE,
        )
    return f"{hours:02d}:{minutes:02d}"


def _changed(field: str, event: Event, stored: Optional[Event]) -> bool:
    return stored is None or getattr(event, field) != getattr(stored, field)


def _field_step(event: Event, stored: Optional[Event]) -> dict[str, Any]:
    fields = event.model_dump(include=set(EventCreate.model_fields))
    try:
        checked = EventCreate.model_validate(fields)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc
    return {k: v for k, v in checked.model_dump().items() if v != fields[k]}


def _slug_step(event: Event, stored: Optional[Event]) -> dict[str, Any]:
    if not (_changed("title", event, stored) or not event.slug):
        return {}
    slug = generate_slug(event.title)
    if not slug:
        raise ValidationError("Title must contain at least one letter or digit", field="title")
    return {"slug": slug}


def _date_step(event: Event, stored: Optional[Event]) -> dict[str, Any]:
    if not _changed("date", event, stored):
        return {}
    return {"date": normalize_date(event.date)}


def _time_step(event: Event, stored: Optional[Event]) -> dict[str, Any]:
    if not _changed("time", event, stored):
        return {}
    return {"time": normalize_time(event.time)}


PreSaveStep = Callable[[Event, Optional[Event]], dict[str, Any]]

EVENT_PRE_SAVE_STEPS: tuple[PreSaveStep, ...] = (
    _field_step,
    _slug_step,
    _date_step,
    _time_step,
)


def prepare_event_for_save(event: Event, stored: Optional[Event] = None) -> Event:
    """
    Run the pre-save pipeline and return the normalized event.

    `stored` is the currently persisted version (None for a new event); a field
    counts as changed when it differs from it. Raises ValidationError on the
    first failing step, leaving `event` untouched.
    """
    prepared = event
    for step in EVENT_PRE_SAVE_STEPS:
        updates = step(prepared, stored)
        if updates:
            prepared = prepared.model_copy(update=updates)
    return prepared
