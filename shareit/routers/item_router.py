from fastapi import APIRouter, Depends, status
from typing import List, Annotated, Optional

from .. import schemas
from ..auth import get_current_user_id_from_token, get_optional_user_id_from_token
from ..dependencies import get_item_service
from ..services.item_service import ItemService

router = APIRouter(prefix="/items", tags=["Items"])


@router.post("/", response_model=schemas.ItemRead, status_code=status.HTTP_201_CREATED)
def create_item(
        item: schemas.ItemCreate,
        user_id: Annotated[int, Depends(get_current_user_id_from_token)],
        service: ItemService = Depends(get_item_service),
):
    return service.create(item, owner_id=user_id)


@router.patch("/{item_id}", response_model=schemas.ItemRead)
def update_item(
        item_id: int,
        item: schemas.ItemUpdate,
        user_id: Annotated[int, Depends(get_current_user_id_from_token)],
        service: ItemService = Depends(get_item_service),
):
    return service.update(item_id, item, owner_id=user_id)


@router.get("/", response_model=List[schemas.ItemOwnerRead])
def read_owner_items(
        user_id: Annotated[int, Depends(get_current_user_id_from_token)],
        service: ItemService = Depends(get_item_service),
):
    return service.list_for_owner(user_id)


@router.get("/search", response_model=List[schemas.ItemRead])
def search_items(
        text: str = "",
        service: ItemService = Depends(get_item_service),
):
    return service.search(text)


@router.get("/{item_id}", response_model=schemas.ItemDetail)
def read_item(
        item_id: int,
        user_id: Annotated[Optional[int], Depends(get_optional_user_id_from_token)],
        service: ItemService = Depends(get_item_service),
):
    # Last/next bookings are only filled in when the caller owns the item
    return service.get(item_id, requester_id=user_id)


@router.post("/{item_id}/comment", response_model=schemas.CommentRead, status_code=status.HTTP_201_CREATED)
def add_comment(
        item_id: int,
        comment: schemas.CommentCreate,
        user_id: Annotated[int, Depends(get_current_user_id_from_token)],
        service: ItemService = Depends(get_item_service),
):
    return service.add_comment(item_id, user_id, comment)
