from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from enum import Enum
from typing import List, Optional
import datetime

from .models import BookingStatus


def to_naive_utc(value: datetime.datetime) -> datetime.datetime:
    """Instants are stored and compared as naive UTC."""
    if value.tzinfo is not None:
        return value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return value


class BookingState(str, Enum):
    """Filter vocabulary accepted by the booking listings."""
    ALL = "ALL"
    CURRENT = "CURRENT"
    PAST = "PAST"
    FUTURE = "FUTURE"
    WAITING = "WAITING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


# --- Users ---

class UserCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr

class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None

class UserRead(BaseModel):
    id: int
    name: str
    email: str

    model_config = ConfigDict(from_attributes=True)

class UserShort(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


# --- Items ---

class ItemBase(BaseModel):
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    available: bool
    request_id: Optional[int] = None

class ItemCreate(ItemBase):
    # owner_id will come from the JWT token
    pass

class ItemUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)
    available: Optional[bool] = None

class ItemRead(ItemBase):
    id: int

    model_config = ConfigDict(from_attributes=True)

class ItemShort(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


# --- Comments ---

class CommentCreate(BaseModel):
    text: str = Field(min_length=1)

class CommentRead(BaseModel):
    id: int
    text: str
    author_name: str
    created: datetime.datetime


# --- Bookings ---

class BookingShort(BaseModel):
    """What an owner sees about the last/next booking of an item."""
    id: int
    start: datetime.datetime
    end: datetime.datetime
    booker_id: int

    model_config = ConfigDict(from_attributes=True)

class BookingCreate(BaseModel):
    item_id: int
    start: datetime.datetime
    end: datetime.datetime

    @field_validator("start", "end")
    @classmethod
    def normalise_instant(cls, value: datetime.datetime) -> datetime.datetime:
        return to_naive_utc(value)

class BookingRead(BaseModel):
    id: int
    start: datetime.datetime
    end: datetime.datetime
    status: BookingStatus
    item: ItemShort
    booker: UserShort

    model_config = ConfigDict(from_attributes=True)


# --- Item views with booking summaries ---

class ItemOwnerRead(ItemRead):
    last_booking: Optional[BookingShort] = None
    next_booking: Optional[BookingShort] = None

class ItemDetail(ItemOwnerRead):
    comments: List[CommentRead] = []
