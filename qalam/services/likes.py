import logging
from datetime import datetime
from typing import Callable
from sqlalchemy import select, delete, func, insert
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from qalam.core.errors import NotFoundError, StoreError, require_positive_id
from qalam.db.base import utcnow
from qalam.db.models.like import Like
from qalam.schemas.counters import LikeToggleResult

logger = logging.getLogger(__name__)


def insert_ignore(db: Session, table, values: dict) -> int:
    """INSERT that is a no-op when it hits a unique constraint.

    Returns the number of rows actually inserted (0 or 1).
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(table).values(**values).on_conflict_do_nothing()
    elif dialect == "sqlite":
        stmt = sqlite.insert(table).values(**values).on_conflict_do_nothing()
    elif dialect in ("mysql", "mariadb"):
        stmt = insert(table).values(**values).prefix_with("IGNORE")
    else:
        try:
            with db.begin_nested():
                return db.execute(insert(table).values(**values)).rowcount
        except IntegrityError:
            return 0
    return db.execute(stmt).rowcount


class LikeService:
    """Membership of users in a post's likes.

    ``toggle_like`` composes the building blocks inside one transaction. The
    unique (post_id, user_id) constraint keeps the relation free of
    duplicates however calls interleave; under contention the reported
    ``action`` of the losing call is best effort.
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    def toggle_like(self, post_id: int, user_id: int) -> LikeToggleResult:
        self._validate(post_id, user_id)
        try:
            if self._delete(post_id, user_id):
                action = "unliked"
            else:
                self._insert(post_id, user_id)
                action = "liked"
            likes_count = self._count(post_id)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.info(f"Like toggle rejected for post {post_id}, user {user_id}: {e.orig}")
            raise NotFoundError("Post not found") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to toggle like on post {post_id}: {e}")
            raise StoreError("Failed to toggle like") from e

        logger.info(f"User {user_id} {action} post {post_id}")
        return LikeToggleResult(liked=action == "liked", likes_count=likes_count, action=action)

    def add_like(self, post_id: int, user_id: int) -> bool:
        self._validate(post_id, user_id)
        try:
            inserted = self._insert(post_id, user_id)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise NotFoundError("Post not found") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to add like on post {post_id}: {e}")
            raise StoreError("Failed to add like") from e
        return inserted

    def remove_like(self, post_id: int, user_id: int) -> bool:
        self._validate(post_id, user_id)
        try:
            removed = self._delete(post_id, user_id)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to remove like on post {post_id}: {e}")
            raise StoreError("Failed to remove like") from e
        return removed

    def has_liked(self, post_id: int, user_id: int) -> bool:
        self._validate(post_id, user_id)
        try:
            return self.db.execute(
                select(Like.id).where(Like.post_id == post_id, Like.user_id == user_id).limit(1)
            ).first() is not None
        except SQLAlchemyError as e:
            raise StoreError("Failed to read like status") from e

    def count_likes(self, post_id: int) -> int:
        require_positive_id(post_id, "post id")
        try:
            return self._count(post_id)
        except SQLAlchemyError as e:
            raise StoreError("Failed to count likes") from e

    def _validate(self, post_id, user_id) -> None:
        require_positive_id(post_id, "post id")
        require_positive_id(user_id, "user id")

    def _insert(self, post_id: int, user_id: int) -> bool:
        return insert_ignore(
            self.db,
            Like.__table__,
            {"post_id": post_id, "user_id": user_id, "created_at": self.clock()},
        ) > 0

    def _delete(self, post_id: int, user_id: int) -> bool:
        result = self.db.execute(
            delete(Like)
            .where(Like.post_id == post_id, Like.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    def _count(self, post_id: int) -> int:
        return self.db.scalar(select(func.count(Like.id)).where(Like.post_id == post_id)) or 0
