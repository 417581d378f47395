import logging
from typing import List, Optional

from .. import models, schemas
from ..exceptions import NotFoundException, ValidationException
from ..repositories import CommentRepository, ItemRepository, UserRepository
from .booking_service import BookingService

logger = logging.getLogger("shareit")


def to_comment_read(comment: models.Comment) -> schemas.CommentRead:
    return schemas.CommentRead(
        id=comment.id,
        text=comment.text,
        author_name=comment.author.name,
        created=comment.created,
    )


class ItemService:
    """
    Item catalog operations. Booking summaries and the comment gate are
    delegated to the BookingService, which shares this service's clock.
    """

    def __init__(
            self,
            items: ItemRepository,
            users: UserRepository,
            comments: CommentRepository,
            booking_service: BookingService,
    ):
        self.items = items
        self.users = users
        self.comments = comments
        self.booking_service = booking_service

    @property
    def clock(self):
        return self.booking_service.clock

    def _require_user(self, user_id: int) -> models.User:
        user = self.users.get(user_id)
        if user is None:
            raise NotFoundException(f"User with id {user_id} not found")
        return user

    def _require_item(self, item_id: int) -> models.Item:
        item = self.items.get(item_id)
        if item is None:
            raise NotFoundException(f"Item with id {item_id} not found")
        return item

    def create(self, item: schemas.ItemCreate, owner_id: int) -> models.Item:
        owner = self._require_user(owner_id)
        db_item = models.Item(**item.model_dump(), owner=owner, owner_id=owner.id)
        db_item = self.items.add(db_item)
        logger.info(f"Item {db_item.id} created by user {owner_id}")
        return db_item

    def update(self, item_id: int, changes: schemas.ItemUpdate, owner_id: int) -> models.Item:
        db_item = self._require_item(item_id)
        if db_item.owner_id != owner_id:
            raise NotFoundException("User is not the owner of the item")

        for field, value in changes.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(db_item, field, value)

        return self.items.save(db_item)

    def _with_summary(self, item: models.Item, requester_id: Optional[int], now, view):
        last_booking, next_booking = self.booking_service.owner_summary(item, requester_id, now)
        item_data = schemas.ItemRead.model_validate(item).model_dump()
        return view(
            **item_data,
            last_booking=schemas.BookingShort.model_validate(last_booking) if last_booking else None,
            next_booking=schemas.BookingShort.model_validate(next_booking) if next_booking else None,
        )

    def get(self, item_id: int, requester_id: Optional[int] = None) -> schemas.ItemDetail:
        db_item = self._require_item(item_id)
        detail = self._with_summary(db_item, requester_id, self.clock(), schemas.ItemDetail)
        detail.comments = [to_comment_read(c) for c in self.comments.find_by_item(item_id)]
        return detail

    def list_for_owner(self, owner_id: int) -> List[schemas.ItemOwnerRead]:
        self._require_user(owner_id)
        now = self.clock()
        return [
            self._with_summary(item, owner_id, now, schemas.ItemOwnerRead)
            for item in self.items.find_by_owner(owner_id)
        ]

    def search(self, text: Optional[str]) -> List[models.Item]:
        # Blank search text is an empty result, not an error
        if text is None or not text.strip():
            return []
        return self.items.search(text)

    def add_comment(self, item_id: int, user_id: int, comment: schemas.CommentCreate) -> schemas.CommentRead:
        db_item = self._require_item(item_id)
        author = self._require_user(user_id)

        now = self.clock()
        if not self.booking_service.certify_comment_eligibility(item_id, user_id, now):
            logger.warning(f"User {user_id} denied commenting on item {item_id}")
            raise ValidationException(
                f"User {user_id} has not completed a rental of item {item_id}"
            )

        db_comment = models.Comment(
            text=comment.text,
            item=db_item,
            item_id=db_item.id,
            author=author,
            author_id=author.id,
            created=now,
        )
        db_comment = self.comments.add(db_comment)
        return to_comment_read(db_comment)
