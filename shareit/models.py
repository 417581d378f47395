from sqlalchemy import Column, Integer, String, Boolean, Text, ForeignKey, DateTime, TIMESTAMP, Index
from sqlalchemy.orm import relationship
from enum import Enum as PyEnum
from sqlalchemy import Enum as SQLEnum

from .clock import utc_now
from .database import Base


# --- ENUM for Booking Status ---
class BookingStatus(str, PyEnum):
    WAITING = "WAITING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


# --- User Model ---
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)

    items = relationship("Item", back_populates="owner")


# --- Item Model (a shareable thing) ---
class Item(Base):
    __tablename__ = "items"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String, index=True, nullable=False)
    description = Column(Text, nullable=False)
    available = Column(Boolean, nullable=False, default=True)

    # Optional link to the item request this item answers
    request_id = Column(Integer, nullable=True)

    owner_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    owner = relationship("User", back_populates="items")


# --- Booking Model ---
class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)

    start = Column(DateTime, nullable=False)
    end = Column(DateTime, nullable=False)

    item_id = Column(Integer, ForeignKey("items.id"), index=True, nullable=False)
    booker_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)

    status = Column(SQLEnum(BookingStatus), default=BookingStatus.WAITING, nullable=False)

    item = relationship("Item")
    booker = relationship("User")


# --- Comment Model ---
class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    text = Column(Text, nullable=False)

    item_id = Column(Integer, ForeignKey("items.id"), index=True, nullable=False)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    # Always set by the server
    created = Column(DateTime, nullable=False, default=utc_now)

    author = relationship("User")
    item = relationship("Item")


class OutboxEvent(Base):
    __tablename__ = "outbox_events"

    id = Column(Integer, primary_key=True, index=True)

    # Status to track if the event has been sent
    status = Column(String(20), default="PENDING", nullable=False)

    # The Kafka topic to send the message to
    topic = Column(String(255), nullable=False)

    # The full JSON payload to be sent
    payload = Column(Text, nullable=False)

    created_at = Column(TIMESTAMP, default=utc_now)

    # The poller only ever reads PENDING rows
    __table_args__ = (
        Index('ix_outbox_events_status', 'status'),
    )
