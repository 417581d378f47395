from fastapi import APIRouter, Depends, status
from typing import List

from .. import schemas
from ..dependencies import get_user_service
from ..services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("/", response_model=schemas.UserRead, status_code=status.HTTP_201_CREATED)
def create_user(user: schemas.UserCreate, service: UserService = Depends(get_user_service)):
    return service.create(user)


@router.patch("/{user_id}", response_model=schemas.UserRead)
def update_user(user_id: int, user: schemas.UserUpdate, service: UserService = Depends(get_user_service)):
    return service.update(user_id, user)


@router.get("/{user_id}", response_model=schemas.UserRead)
def read_user(user_id: int, service: UserService = Depends(get_user_service)):
    return service.get(user_id)


@router.get("/", response_model=List[schemas.UserRead])
def read_users(service: UserService = Depends(get_user_service)):
    return service.get_all()


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: int, service: UserService = Depends(get_user_service)):
    service.delete(user_id)
