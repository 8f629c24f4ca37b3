from app.schemas.event import EventCreate
from app.schemas.booking import BookingCreate

__all__ = [
    "EventCreate",
    "BookingCreate",
]
