from fastapi import APIRouter, Depends, status
from typing import List, Annotated

from fastapi_limiter.depends import RateLimiter

from .. import schemas
from ..auth import get_current_user_id_from_token, get_key_by_user_id_or_ip
from ..dependencies import get_booking_service
from ..services.booking_service import BookingService, parse_state


router = APIRouter(prefix="/bookings", tags=["Bookings"])

# Module level so tests can override them by identity
write_limiter = RateLimiter(times=30, minutes=1, identifier=get_key_by_user_id_or_ip)
read_limiter = RateLimiter(times=60, minutes=1, identifier=get_key_by_user_id_or_ip)


@router.post("/", response_model=schemas.BookingRead, status_code=status.HTTP_201_CREATED)
def create_booking(
        booking: schemas.BookingCreate,
        user_id: Annotated[int, Depends(get_current_user_id_from_token)],
        service: BookingService = Depends(get_booking_service),
        limit: None = Depends(write_limiter)
):
    """
    Create a WAITING booking of an item for the authenticated user.
    """
    return service.create(
        start=booking.start,
        end=booking.end,
        item_id=booking.item_id,
        booker_id=user_id,
    )


@router.patch("/{booking_id}", response_model=schemas.BookingRead)
def approve_booking(
        booking_id: int,
        approved: bool,
        user_id: Annotated[int, Depends(get_current_user_id_from_token)],
        service: BookingService = Depends(get_booking_service),
        limit: None = Depends(write_limiter)
):
    """
    Approve or reject a WAITING booking. Only the item owner may decide.
    """
    return service.approve(booking_id, user_id, approved)


@router.get("/", response_model=List[schemas.BookingRead])
def read_user_bookings(
        user_id: Annotated[int, Depends(get_current_user_id_from_token)],
        state: str = "ALL",
        service: BookingService = Depends(get_booking_service),
        limit: None = Depends(read_limiter)
):
    """
    Bookings made by the authenticated user, newest start first.
    """
    return service.list_for_booker(user_id, parse_state(state))


@router.get("/owner", response_model=List[schemas.BookingRead])
def read_owner_bookings(
        user_id: Annotated[int, Depends(get_current_user_id_from_token)],
        state: str = "ALL",
        service: BookingService = Depends(get_booking_service),
        limit: None = Depends(read_limiter)
):
    """
    Bookings on items the authenticated user owns, newest start first.
    """
    return service.list_for_owner(user_id, parse_state(state))


@router.get("/{booking_id}", response_model=schemas.BookingRead)
def read_booking(
        booking_id: int,
        user_id: Annotated[int, Depends(get_current_user_id_from_token)],
        service: BookingService = Depends(get_booking_service),
):
    return service.get_by_id(booking_id, user_id)
