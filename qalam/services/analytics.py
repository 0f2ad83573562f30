"""Aggregate queries over likes and view events."""

from datetime import date
from sqlalchemy import select, func, distinct
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from qalam.core.errors import NotFoundError, StoreError, require_positive_id
from qalam.db.models.like import Like
from qalam.db.models.post import Post
from qalam.db.models.post_view import PostView
from qalam.schemas.counters import DailyLikes, LikeAnalytics, OwnerAnalytics, PostAnalytics

BREAKDOWN_DAYS = 30


def get_post_analytics(db: Session, post_id: int, owner_id: int) -> PostAnalytics:
    """Counters and unique counts for a post owned by ``owner_id``.

    A post owned by someone else is reported as missing.
    """
    require_positive_id(post_id, "post id")
    require_positive_id(owner_id, "user id")
    try:
        post = db.query(Post).filter(Post.id == post_id, Post.user_id == owner_id).first()
        if post is None:
            raise NotFoundError("Post not found")

        total_likes, unique_likers = db.execute(
            select(func.count(Like.id), func.count(distinct(Like.user_id)))
            .where(Like.post_id == post_id)
        ).one()
        total_view_events, unique_viewers = db.execute(
            select(func.count(PostView.id), func.count(distinct(PostView.user_identifier)))
            .where(PostView.post_id == post_id)
        ).one()
    except SQLAlchemyError as e:
        raise StoreError("Failed to load analytics") from e

    return PostAnalytics(
        post_id=post.id,
        title=post.title,
        views=post.views or 0,
        shares=post.shares or 0,
        total_likes=total_likes,
        unique_likers=unique_likers,
        total_view_events=total_view_events,
        unique_viewers=unique_viewers,
    )


def _day_key(value) -> str:
    # func.date() gives a string on SQLite and a date elsewhere
    if isinstance(value, date):
        return value.isoformat()
    return str(value)[:10]


def get_like_analytics(db: Session, post_id: int) -> LikeAnalytics:
    require_positive_id(post_id, "post id")
    day = func.date(Like.created_at).label("day")
    try:
        total_likes = db.scalar(select(func.count(Like.id)).where(Like.post_id == post_id)) or 0
        rows = db.execute(
            select(day, func.count(Like.id))
            .where(Like.post_id == post_id)
            .group_by(day)
            .order_by(day.desc())
            .limit(BREAKDOWN_DAYS)
        ).all()
    except SQLAlchemyError as e:
        raise StoreError("Failed to load like analytics") from e

    return LikeAnalytics(
        total_likes=total_likes,
        daily_breakdown=[DailyLikes(date=_day_key(d), count=c) for d, c in rows],
    )


def get_owner_analytics(db: Session, owner_id: int) -> OwnerAnalytics:
    require_positive_id(owner_id, "user id")
    try:
        total_posts, total_views, total_shares = db.execute(
            select(
                func.count(Post.id),
                func.coalesce(func.sum(Post.views), 0),
                func.coalesce(func.sum(Post.shares), 0),
            ).where(Post.user_id == owner_id)
        ).one()
        total_likes = db.scalar(
            select(func.count(Like.id)).join(Post, Post.id == Like.post_id).where(Post.user_id == owner_id)
        ) or 0
        unique_viewers = db.scalar(
            select(func.count(distinct(PostView.user_identifier)))
            .join(Post, Post.id == PostView.post_id)
            .where(Post.user_id == owner_id)
        ) or 0
    except SQLAlchemyError as e:
        raise StoreError("Failed to load analytics") from e

    return OwnerAnalytics(
        total_posts=total_posts,
        total_views=int(total_views),
        total_shares=int(total_shares),
        total_likes=total_likes,
        unique_viewers=unique_viewers,
    )
