"""Deduplicated view counting.

A visitor identifier counts at most once per post within a rolling
24-hour window. The dedup check, the event insert and the ``posts.views``
increment run in one transaction while the post row is locked, so two
concurrent requests for the same pair cannot both pass the check.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable
from sqlalchemy import select, update, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from qalam.core.errors import InvalidIdentifierError, NotFoundError, StoreError, require_positive_id
from qalam.db.base import utcnow
from qalam.db.models.post import Post
from qalam.db.models.post_view import PostView
from qalam.schemas.counters import ViewResult

logger = logging.getLogger(__name__)

DEDUP_WINDOW = timedelta(hours=24)


class ViewCounter:
    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    def record_view(self, post_id: int, visitor_id: str) -> ViewResult:
        require_positive_id(post_id, "post id")
        if not isinstance(visitor_id, str) or not visitor_id.strip():
            raise InvalidIdentifierError("Invalid visitor identifier")

        now = self.clock()
        try:
            if not self._lock_post(post_id):
                self.db.rollback()
                raise NotFoundError("Post not found")

            recent = self.db.execute(
                select(PostView.id)
                .where(
                    PostView.post_id == post_id,
                    PostView.user_identifier == visitor_id,
                    PostView.created_at > now - DEDUP_WINDOW,
                )
                .limit(1)
            ).first()
            if recent is not None:
                self.db.rollback()
                logger.debug(f"View of post {post_id} by {visitor_id} already counted")
                return ViewResult(counted=False)

            self.db.add(PostView(post_id=post_id, user_identifier=visitor_id, created_at=now))
            self.db.execute(
                update(Post)
                .where(Post.id == post_id)
                .values(views=Post.views + 1)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to record view of post {post_id}: {e}")
            raise StoreError("Failed to record view") from e

        logger.info(f"Counted view of post {post_id}")
        return ViewResult(counted=True)

    def _lock_post(self, post_id: int) -> bool:
        """Hold the post row until commit/rollback. False if it does not exist."""
        if self.db.get_bind().dialect.name == "sqlite":
            # no row locks in SQLite; any write takes the database RESERVED lock
            result = self.db.execute(
                update(Post)
                .where(Post.id == post_id)
                .values(views=Post.views)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount > 0
        return self.db.execute(
            select(Post.id).where(Post.id == post_id).with_for_update()
        ).scalar_one_or_none() is not None

    def recount(self, post_id: int) -> int:
        """Rebuild ``posts.views`` from the stored view events."""
        require_positive_id(post_id, "post id")
        try:
            total = self.db.scalar(
                select(func.count(PostView.id)).where(PostView.post_id == post_id)
            ) or 0
            result = self.db.execute(
                update(Post)
                .where(Post.id == post_id)
                .values(views=total)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                self.db.rollback()
                raise NotFoundError("Post not found")
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to recount views of post {post_id}: {e}")
            raise StoreError("Failed to recount views") from e

        logger.info(f"Recounted views of post {post_id}: {total}")
        return total
