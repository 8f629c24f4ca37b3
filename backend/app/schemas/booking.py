"""
Pydantic schemas for booking input validation.
"""

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.booking import is_valid_email, normalize_email


class BookingCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event_id: str = Field(..., alias="eventId")
    email: str

    @field_validator("event_id")
    @classmethod
    def _event_id_is_object_id(cls, value: str) -> str:
        value = value.strip()
        if not ObjectId.is_valid(value):
            raise ValueError("eventId must be a valid ObjectId")
        return value

    @field_validator("email")
    @classmethod
    def _email_is_valid(cls, value: str) -> str:
        value = normalize_email(value)
        if not is_valid_email(value):
            raise ValueError("Email must be a valid email address")
        return value
