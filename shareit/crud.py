import json
import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import or_
from . import models
from .config import settings  # Need this for the topic name
from .repositories import (
    BookingQuery,
    BookingRepository,
    CommentRepository,
    ItemRepository,
    UserRepository,
)


# --- Outbox ---

def create_booking_event_in_outbox(db: Session, booking: models.Booking, event_type: str,
                                   status: models.BookingStatus):
    """
    Adds a booking lifecycle event to the outbox table.
    Note: Does NOT commit. The caller commits it together with the booking change.
    """
    payload = {
        "event": event_type,
        "booking_id": booking.id,
        "item_id": booking.item_id,
        "booker_id": booking.booker_id,
        "status": status.value,
    }

    db_outbox_event = models.OutboxEvent(
        topic=settings.KAFKA_BOOKING_TOPIC,
        payload=json.dumps(payload),
        status="PENDING"
    )
    db.add(db_outbox_event)


# --- Users ---

class SqlUserRepository(UserRepository):
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int) -> Optional[models.User]:
        return self.db.query(models.User).filter(models.User.id == user_id).first()

    def get_by_email(self, email: str) -> Optional[models.User]:
        return self.db.query(models.User).filter(models.User.email == email).first()

    def get_all(self) -> List[models.User]:
        return self.db.query(models.User).order_by(models.User.id).all()

    def add(self, user: models.User) -> models.User:
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def save(self, user: models.User) -> models.User:
        self.db.commit()
        self.db.refresh(user)
        return user

    def is_referenced(self, user_id: int) -> bool:
        for column in (models.Item.owner_id, models.Booking.booker_id, models.Comment.author_id):
            if self.db.query(column).filter(column == user_id).first() is not None:
                return True
        return False

    def delete(self, user: models.User) -> None:
        self.db.delete(user)
        self.db.commit()


# --- Items ---

class SqlItemRepository(ItemRepository):
    def __init__(self, db: Session):
        self.db = db

    def get(self, item_id: int) -> Optional[models.Item]:
        return self.db.query(models.Item).filter(models.Item.id == item_id).first()

    def add(self, item: models.Item) -> models.Item:
        self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        return item

    def save(self, item: models.Item) -> models.Item:
        self.db.commit()
        self.db.refresh(item)
        return item

    def find_by_owner(self, owner_id: int) -> List[models.Item]:
        return self.db.query(models.Item).filter(
            models.Item.owner_id == owner_id
        ).order_by(models.Item.id).all()

    def search(self, text: str) -> List[models.Item]:
        return self.db.query(models.Item).filter(
            models.Item.available.is_(True),
            or_(
                models.Item.name.icontains(text, autoescape=True),
                models.Item.description.icontains(text, autoescape=True),
            )
        ).order_by(models.Item.id).all()


# --- Bookings ---

def _apply_booking_query(q, query: BookingQuery):
    if query.start_before is not None:
        q = q.filter(models.Booking.start < query.start_before)
    if query.start_after is not None:
        q = q.filter(models.Booking.start > query.start_after)
    if query.end_before is not None:
        q = q.filter(models.Booking.end < query.end_before)
    if query.end_after is not None:
        q = q.filter(models.Booking.end > query.end_after)
    if query.status is not None:
        q = q.filter(models.Booking.status == query.status)
    # Listings are always newest start first
    return q.order_by(models.Booking.start.desc(), models.Booking.id.desc())


class SqlBookingRepository(BookingRepository):
    def __init__(self, db: Session):
        self.db = db

    def add(self, booking: models.Booking) -> models.Booking:
        """
        Atomically creates a new booking and its BOOKING_CREATED outbox event.
        """
        self.db.add(booking)
        # Flush to get the booking id into the event payload
        self.db.flush()
        create_booking_event_in_outbox(self.db, booking, "BOOKING_CREATED", booking.status)
        self.db.commit()
        self.db.refresh(booking)
        return booking

    def get(self, booking_id: int) -> Optional[models.Booking]:
        return self.db.query(models.Booking).filter(models.Booking.id == booking_id).first()

    def transition_status(self, booking: models.Booking, expected: models.BookingStatus,
                          new: models.BookingStatus) -> bool:
        # Conditional UPDATE: of two concurrent approvals only one matches the row
        updated = self.db.query(models.Booking).filter(
            models.Booking.id == booking.id,
            models.Booking.status == expected,
        ).update({models.Booking.status: new}, synchronize_session=False)

        if not updated:
            return False

        create_booking_event_in_outbox(self.db, booking, f"BOOKING_{new.value}", new)
        self.db.commit()
        self.db.refresh(booking)
        return True

    def find_by_booker(self, booker_id: int, query: BookingQuery) -> List[models.Booking]:
        q = self.db.query(models.Booking).filter(models.Booking.booker_id == booker_id)
        return _apply_booking_query(q, query).all()

    def find_by_owner(self, owner_id: int, query: BookingQuery) -> List[models.Booking]:
        q = self.db.query(models.Booking).join(models.Booking.item).filter(
            models.Item.owner_id == owner_id
        )
        return _apply_booking_query(q, query).all()

    def find_last_approved(self, item_id: int, now: datetime.datetime) -> Optional[models.Booking]:
        return self.db.query(models.Booking).filter(
            models.Booking.item_id == item_id,
            models.Booking.status == models.BookingStatus.APPROVED,
            models.Booking.start < now,
        ).order_by(models.Booking.start.desc()).first()

    def find_next_approved(self, item_id: int, now: datetime.datetime) -> Optional[models.Booking]:
        return self.db.query(models.Booking).filter(
            models.Booking.item_id == item_id,
            models.Booking.status == models.BookingStatus.APPROVED,
            models.Booking.start > now,
        ).order_by(models.Booking.start.asc()).first()

    def exists_completed(self, item_id: int, booker_id: int, now: datetime.datetime) -> bool:
        completed_booking = self.db.query(models.Booking.id).filter(
            models.Booking.item_id == item_id,
            models.Booking.booker_id == booker_id,
            models.Booking.status == models.BookingStatus.APPROVED,
            models.Booking.end < now,
        ).first()

        return completed_booking is not None


# --- Comments ---

class SqlCommentRepository(CommentRepository):
    def __init__(self, db: Session):
        self.db = db

    def add(self, comment: models.Comment) -> models.Comment:
        self.db.add(comment)
        self.db.commit()
        self.db.refresh(comment)
        return comment

    def find_by_item(self, item_id: int) -> List[models.Comment]:
        return self.db.query(models.Comment).filter(
            models.Comment.item_id == item_id
        ).order_by(models.Comment.created, models.Comment.id).all()
