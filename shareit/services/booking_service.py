"""
Booking lifecycle: creation, owner approval, access-checked reads, state
filtered listings and the comment eligibility rule.

Every operation samples the clock at most once, so a single call never
classifies bookings against two different "now" values.
"""

import logging
import datetime
from typing import Callable, Dict, List, Optional, Tuple

from .. import models
from ..clock import Clock, utc_now
from ..exceptions import NotFoundException, UnsupportedStateException, ValidationException
from ..repositories import BookingQuery, BookingRepository, ItemRepository, UserRepository
from ..schemas import BookingState

logger = logging.getLogger("shareit")


# One query per supported listing state. APPROVED is part of BookingState but
# has no listing of its own, so it is deliberately absent here.
STATE_QUERIES: Dict[BookingState, Callable[[datetime.datetime], BookingQuery]] = {
    BookingState.ALL: lambda now: BookingQuery(),
    BookingState.CURRENT: lambda now: BookingQuery(start_before=now, end_after=now),
    BookingState.PAST: lambda now: BookingQuery(end_before=now),
    BookingState.FUTURE: lambda now: BookingQuery(start_after=now),
    BookingState.WAITING: lambda now: BookingQuery(status=models.BookingStatus.WAITING),
    BookingState.REJECTED: lambda now: BookingQuery(status=models.BookingStatus.REJECTED),
}


def parse_state(raw: str) -> BookingState:
    """
    Turn a raw filter string into a BookingState, rejecting values outside the
    vocabulary. States without a listing (APPROVED) are rejected later, once the
    requesting user has been resolved.
    """
    try:
        return BookingState(raw)
    except ValueError:
        raise UnsupportedStateException(raw)


class BookingService:
    def __init__(
            self,
            bookings: BookingRepository,
            users: UserRepository,
            items: ItemRepository,
            clock: Clock = utc_now,
    ):
        self.bookings = bookings
        self.users = users
        self.items = items
        self.clock = clock

    def _require_user(self, user_id: int) -> models.User:
        user = self.users.get(user_id)
        if user is None:
            raise NotFoundException(f"User with id {user_id} not found")
        return user

    def _require_booking(self, booking_id: int) -> models.Booking:
        booking = self.bookings.get(booking_id)
        if booking is None:
            raise NotFoundException(f"Booking with id {booking_id} not found")
        return booking

    def create(self, start: datetime.datetime, end: datetime.datetime, item_id: int,
               booker_id: int) -> models.Booking:
        if start >= end:
            raise ValidationException("Start date must be before end date")

        booker = self._require_user(booker_id)

        item = self.items.get(item_id)
        if item is None:
            raise NotFoundException(f"Item with id {item_id} not found")

        if not item.available:
            raise ValidationException(f"Item with id {item_id} is not available for booking")

        # Reported as not-found so owners learn nothing from probing their own items
        if item.owner_id == booker_id:
            logger.warning(f"User {booker_id} tried to book own item {item_id}")
            raise NotFoundException("Owner cannot book own item")

        booking = models.Booking(
            start=start,
            end=end,
            item=item,
            item_id=item.id,
            booker=booker,
            booker_id=booker.id,
            status=models.BookingStatus.WAITING,
        )
        booking = self.bookings.add(booking)
        logger.info(f"Booking {booking.id} created by user {booker_id} for item {item_id}")
        return booking

    def approve(self, booking_id: int, user_id: int, approved: bool) -> models.Booking:
        booking = self._require_booking(booking_id)

        if booking.item.owner_id != user_id:
            raise ValidationException("Only owner can approve/reject booking")

        if booking.status != models.BookingStatus.WAITING:
            raise ValidationException("Booking is not in WAITING state")

        new_status = models.BookingStatus.APPROVED if approved else models.BookingStatus.REJECTED
        # The store re-checks WAITING; a concurrent decision makes this fail
        if not self.bookings.transition_status(booking, models.BookingStatus.WAITING, new_status):
            raise ValidationException("Booking is not in WAITING state")

        logger.info(f"Booking {booking_id} {new_status.value} by owner {user_id}")
        return booking

    def get_by_id(self, booking_id: int, user_id: int) -> models.Booking:
        booking = self._require_booking(booking_id)

        # Only the booker and the item owner may see it; everyone else gets 404
        if booking.booker_id != user_id and booking.item.owner_id != user_id:
            raise NotFoundException(f"Booking with id {booking_id} not found")

        return booking

    def list_for_booker(self, booker_id: int, state: BookingState) -> List[models.Booking]:
        self._require_user(booker_id)
        query = self._query_for(state, self.clock())
        return self.bookings.find_by_booker(booker_id, query)

    def list_for_owner(self, owner_id: int, state: BookingState) -> List[models.Booking]:
        self._require_user(owner_id)
        query = self._query_for(state, self.clock())
        return self.bookings.find_by_owner(owner_id, query)

    @staticmethod
    def _query_for(state: BookingState, now: datetime.datetime) -> BookingQuery:
        build = STATE_QUERIES.get(state)
        if build is None:
            raise UnsupportedStateException(state.value)
        return build(now)

    def certify_comment_eligibility(self, item_id: int, user_id: int,
                                    now: datetime.datetime) -> bool:
        """True iff the user has an APPROVED booking of the item that ended before ``now``."""
        return self.bookings.exists_completed(item_id, user_id, now)

    def owner_summary(
            self,
            item: models.Item,
            requester_id: Optional[int],
            now: datetime.datetime,
    ) -> Tuple[Optional[models.Booking], Optional[models.Booking]]:
        """
        Last and next APPROVED bookings of ``item`` relative to ``now``.

        Both are None unless the requester is the item's owner.
        """
        if requester_id is None or requester_id != item.owner_id:
            return None, None
        return (
            self.bookings.find_last_approved(item.id, now),
            self.bookings.find_next_approved(item.id, now),
        )
