"""
Pydantic schemas for event input validation.
"""

from pydantic import BaseModel, ConfigDict, Field


class EventCreate(BaseModel):
    """Caller-supplied fields of an event. Strings are trimmed and must stay non-empty."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    overview: str = Field(..., min_length=1)
    image: str = Field(..., min_length=1)
    venue: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    date: str = Field(..., min_length=1)
    time: str = Field(..., min_length=1)
    mode: str = Field(..., min_length=1)
    audience: str = Field(..., min_length=1)
    agenda: list[str] = Field(..., min_length=1, description="Agenda must contain at least one item")
    organizer: str = Field(..., min_length=1)
    tags: list[str] = Field(..., min_length=1, description="Tags must contain at least one tag")
