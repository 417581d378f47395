import logging
from typing import List

from .. import models, schemas
from ..exceptions import ConflictException, NotFoundException
from ..repositories import UserRepository

logger = logging.getLogger("shareit")


class UserService:
    def __init__(self, users: UserRepository):
        self.users = users

    def get(self, user_id: int) -> models.User:
        user = self.users.get(user_id)
        if user is None:
            raise NotFoundException(f"User with id {user_id} not found")
        return user

    def get_all(self) -> List[models.User]:
        return self.users.get_all()

    def create(self, user: schemas.UserCreate) -> models.User:
        if self.users.get_by_email(user.email) is not None:
            raise ConflictException(f"Email {user.email} is already in use")
        db_user = self.users.add(models.User(name=user.name, email=user.email))
        logger.info(f"User {db_user.id} created")
        return db_user

    def update(self, user_id: int, changes: schemas.UserUpdate) -> models.User:
        db_user = self.get(user_id)

        if changes.email is not None and changes.email != db_user.email:
            if self.users.get_by_email(changes.email) is not None:
                raise ConflictException(f"Email {changes.email} is already in use")
            db_user.email = changes.email

        if changes.name is not None:
            db_user.name = changes.name

        return self.users.save(db_user)

    def delete(self, user_id: int) -> None:
        db_user = self.get(user_id)
        # Bookings, items and comments keep pointing at their user
        if self.users.is_referenced(user_id):
            raise ConflictException(
                f"User with id {user_id} still has items, bookings or comments and cannot be deleted"
            )
        self.users.delete(db_user)
        logger.info(f"User {user_id} deleted")
