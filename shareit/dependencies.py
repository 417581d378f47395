from fastapi import Depends
from sqlalchemy.orm import Session

from . import crud
from .clock import Clock, utc_now
from .database import get_db
from .services.booking_service import BookingService
from .services.item_service import ItemService
from .services.user_service import UserService


def get_clock() -> Clock:
    return utc_now


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(crud.SqlUserRepository(db))


def get_booking_service(
        db: Session = Depends(get_db),
        clock: Clock = Depends(get_clock),
) -> BookingService:
    return BookingService(
        bookings=crud.SqlBookingRepository(db),
        users=crud.SqlUserRepository(db),
        items=crud.SqlItemRepository(db),
        clock=clock,
    )


def get_item_service(
        db: Session = Depends(get_db),
        booking_service: BookingService = Depends(get_booking_service),
) -> ItemService:
    return ItemService(
        items=crud.SqlItemRepository(db),
        users=crud.SqlUserRepository(db),
        comments=crud.SqlCommentRepository(db),
        booking_service=booking_service,
    )
