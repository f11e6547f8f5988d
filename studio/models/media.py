from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class Category(str, Enum):
    MOTOCROSS = "motocross"
    PORTRAIT = "portrait"
    PRODUCT = "product"

    @classmethod
    def parse(cls, value) -> Optional["Category"]:
        """Return the category for ``value`` or None when it is not one of ours."""
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return None


class Event(BaseModel):
    """Row of the ``events`` table."""

    model_config = ConfigDict(extra="ignore")

    id: str
    created_at: Optional[str] = None
    name: str
    # Calendar date string (YYYY-MM-DD); sorted as text, no timezone handling
    date: str
    location: str
    description: Optional[str] = None
    cover_image: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v):
        return str(v)


class Photo(BaseModel):
    """Row of the ``photos`` table; ``url`` is a storage key or an absolute URL."""

    model_config = ConfigDict(extra="ignore")

    id: str
    created_at: Optional[str] = None
    url: str = ""
    category: Category
    start_number: str = ""
    event_id: Optional[str] = None
    thumbnail_url: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v):
        return str(v)

    @field_validator("event_id", mode="before")
    @classmethod
    def _event_id_as_str(cls, v):
        return str(v) if v not in (None, "") else None

    @field_validator("start_number", "url", mode="before")
    @classmethod
    def _none_as_empty(cls, v):
        return "" if v is None else str(v)


class EventCreate(BaseModel):
    name: str
    date: str
    location: str
    description: Optional[str] = None

    @field_validator("name", "location")
    @classmethod
    def _required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("date")
    @classmethod
    def _calendar_date(cls, v: str) -> str:
        v = (v or "").strip()
        # Stored as given; only checked for being a real calendar date
        date.fromisoformat(v)
        return v

    @field_validator("description")
    @classmethod
    def _blank_is_none(cls, v: Optional[str]) -> Optional[str]:
        v = (v or "").strip()
        return v or None

    def to_row(self) -> dict:
        return self.model_dump(exclude_none=True)


class PhotoUpdate(BaseModel):
    start_number: str = ""
    event_id: Optional[str] = None

    @field_validator("start_number", mode="before")
    @classmethod
    def _strip(cls, v):
        return (v or "").strip()

    @field_validator("event_id", mode="before")
    @classmethod
    def _unassigned(cls, v):
        v = (str(v) if v is not None else "").strip()
        return v or None

    def to_row(self) -> dict:
        return {"start_number": self.start_number, "event_id": self.event_id}
