import logging
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from qalam.core.errors import NotFoundError, StoreError, require_positive_id
from qalam.db.models.post import Post
from qalam.schemas.counters import ShareResult

logger = logging.getLogger(__name__)


class ShareCounter:
    def __init__(self, db: Session):
        self.db = db

    def record_share(self, post_id: int) -> ShareResult:
        """Bump ``posts.shares`` by one. Every call counts."""
        require_positive_id(post_id, "post id")
        try:
            result = self.db.execute(
                update(Post)
                .where(Post.id == post_id)
                .values(shares=Post.shares + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                self.db.rollback()
                raise NotFoundError("Post not found")
            shares = self.db.scalar(select(Post.shares).where(Post.id == post_id))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to record share of post {post_id}: {e}")
            raise StoreError("Failed to record share") from e

        logger.info(f"Post {post_id} shared ({shares})")
        return ShareResult(shares=shares)
