"""
Storage contracts used by the services.

Services depend only on these interfaces. ``crud.py`` implements them on top
of a SQLAlchemy session; tests substitute in-memory fakes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional
import datetime

from . import models


@dataclass(frozen=True)
class BookingQuery:
    """
    A conjunction of optional bounds on a booking listing.

    Every bound is strict: ``start_before=t`` keeps bookings with
    ``start < t``, ``end_after=t`` keeps ``end > t`` and so on.
    """
    start_before: Optional[datetime.datetime] = None
    start_after: Optional[datetime.datetime] = None
    end_before: Optional[datetime.datetime] = None
    end_after: Optional[datetime.datetime] = None
    status: Optional[models.BookingStatus] = None

    def matches(self, booking: models.Booking) -> bool:
        if self.start_before is not None and not booking.start < self.start_before:
            return False
        if self.start_after is not None and not booking.start > self.start_after:
            return False
        if self.end_before is not None and not booking.end < self.end_before:
            return False
        if self.end_after is not None and not booking.end > self.end_after:
            return False
        if self.status is not None and booking.status != self.status:
            return False
        return True


class UserRepository(ABC):

    @abstractmethod
    def get(self, user_id: int) -> Optional[models.User]:
        """Return the user, or None when the id does not resolve."""

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[models.User]:
        ...

    @abstractmethod
    def get_all(self) -> List[models.User]:
        ...

    @abstractmethod
    def add(self, user: models.User) -> models.User:
        """Persist a new user and return it with its id assigned."""

    @abstractmethod
    def save(self, user: models.User) -> models.User:
        """Persist changes made to an already stored user."""

    @abstractmethod
    def is_referenced(self, user_id: int) -> bool:
        """Whether the user still owns items, made bookings or wrote comments."""

    @abstractmethod
    def delete(self, user: models.User) -> None:
        ...


class ItemRepository(ABC):

    @abstractmethod
    def get(self, item_id: int) -> Optional[models.Item]:
        ...

    @abstractmethod
    def add(self, item: models.Item) -> models.Item:
        ...

    @abstractmethod
    def save(self, item: models.Item) -> models.Item:
        ...

    @abstractmethod
    def find_by_owner(self, owner_id: int) -> List[models.Item]:
        """All items of one owner, ordered by id."""

    @abstractmethod
    def search(self, text: str) -> List[models.Item]:
        """
        Available items whose name or description contains ``text``,
        case-insensitively. ``text`` is never blank here.
        """


class BookingRepository(ABC):

    @abstractmethod
    def add(self, booking: models.Booking) -> models.Booking:
        ...

    @abstractmethod
    def get(self, booking_id: int) -> Optional[models.Booking]:
        ...

    @abstractmethod
    def transition_status(
            self,
            booking: models.Booking,
            expected: models.BookingStatus,
            new: models.BookingStatus,
    ) -> bool:
        """
        Atomically move ``booking`` from ``expected`` to ``new``.

        Returns False, leaving the record untouched, when the stored status is
        no longer ``expected``.
        """

    @abstractmethod
    def find_by_booker(self, booker_id: int, query: BookingQuery) -> List[models.Booking]:
        """Bookings made by ``booker_id`` matching ``query``, start descending."""

    @abstractmethod
    def find_by_owner(self, owner_id: int, query: BookingQuery) -> List[models.Booking]:
        """Bookings on items owned by ``owner_id`` matching ``query``, start descending."""

    @abstractmethod
    def find_last_approved(self, item_id: int, now: datetime.datetime) -> Optional[models.Booking]:
        """Latest-starting APPROVED booking of the item with start < now."""

    @abstractmethod
    def find_next_approved(self, item_id: int, now: datetime.datetime) -> Optional[models.Booking]:
        """Earliest-starting APPROVED booking of the item with start > now."""

    @abstractmethod
    def exists_completed(self, item_id: int, booker_id: int, now: datetime.datetime) -> bool:
        """Whether an APPROVED booking of the item by the booker has end < now."""


class CommentRepository(ABC):

    @abstractmethod
    def add(self, comment: models.Comment) -> models.Comment:
        ...

    @abstractmethod
    def find_by_item(self, item_id: int) -> List[models.Comment]:
        """Comments of one item, oldest first."""
