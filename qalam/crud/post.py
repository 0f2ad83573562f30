from typing import List, Optional
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, joinedload

from qalam.core.errors import NotFoundError
from qalam.db.base import utcnow
from qalam.db.models.like import Like
from qalam.db.models.post import Post
from qalam.db.models.user import User
from qalam.schemas.post import PostCreate, PostOut, PostUpdate
from qalam.services.reading import calculate_read_time
from qalam.services.slugs import generate_slug


def _likes_counts(db: Session, post_ids: List[int]) -> dict:
    if not post_ids:
        return {}
    rows = db.execute(
        select(Like.post_id, func.count(Like.id))
        .where(Like.post_id.in_(post_ids))
        .group_by(Like.post_id)
    ).all()
    return dict(rows)


def to_post_out(post: Post, likes_count: int) -> PostOut:
    out = PostOut.model_validate(post)
    out.likes_count = likes_count
    out.read_time = calculate_read_time(post.content)
    return out


def to_post_list(db: Session, posts: List[Post]) -> List[PostOut]:
    counts = _likes_counts(db, [p.id for p in posts])
    return [to_post_out(p, counts.get(p.id, 0)) for p in posts]


def get_post(db: Session, post_id: int) -> Optional[Post]:
    return db.query(Post).options(joinedload(Post.user)).filter(Post.id == post_id).first()


def get_visible_post(db: Session, post_id: int, viewer: Optional[User] = None) -> Post:
    """The post if it is published or ``viewer`` owns it; otherwise NotFoundError."""
    post = get_post(db, post_id)
    if post is None or (post.status != "published" and (viewer is None or post.user_id != viewer.id)):
        raise NotFoundError("Post not found")
    return post


def get_owned_post(db: Session, post_id: int, owner_id: int) -> Post:
    """The post if ``owner_id`` owns it; otherwise NotFoundError."""
    post = db.query(Post).filter(Post.id == post_id, Post.user_id == owner_id).first()
    if post is None:
        raise NotFoundError("Post not found")
    return post


def get_posts(db: Session, skip: int = 0, limit: int = 20, status: str = "published") -> List[Post]:
    return (
        db.query(Post)
        .options(joinedload(Post.user))
        .filter(Post.status == status)
        .order_by(Post.created_at.desc(), Post.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def get_posts_by_user(db: Session, user_id: int, skip: int = 0, limit: int = 20) -> List[Post]:
    return (
        db.query(Post)
        .options(joinedload(Post.user))
        .filter(Post.user_id == user_id)
        .order_by(Post.created_at.desc(), Post.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def search_posts(db: Session, query: str, skip: int = 0, limit: int = 20) -> List[Post]:
    pattern = f"%{query}%"
    return (
        db.query(Post)
        .options(joinedload(Post.user))
        .filter(
            Post.status == "published",
            or_(Post.title.ilike(pattern), Post.content.ilike(pattern)),
        )
        .order_by(Post.created_at.desc(), Post.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def get_liked_posts(db: Session, user_id: int) -> List[Post]:
    return (
        db.query(Post)
        .options(joinedload(Post.user))
        .join(Like, Post.id == Like.post_id)
        .filter(Like.user_id == user_id)
        .order_by(Like.created_at.desc())
        .all()
    )


def create_post(db: Session, post_in: PostCreate, user_id: int) -> Post:
    post = Post(
        title=post_in.title,
        content=post_in.content,
        slug=generate_slug(db, post_in.title),
        status=post_in.status,
        user_id=user_id,
    )
    db.add(post)
    db.commit()
    db.refresh(post)
    return post


def update_post(db: Session, post: Post, post_in: PostUpdate) -> Post:
    if post_in.title is not None and post_in.title != post.title:
        post.slug = generate_slug(db, post_in.title, exclude_post_id=post.id)
        post.title = post_in.title
    if post_in.content is not None:
        post.content = post_in.content
    if post_in.status is not None:
        post.status = post_in.status
    post.updated_at = utcnow()
    db.commit()
    db.refresh(post)
    return post


def delete_post(db: Session, post: Post) -> None:
    db.delete(post)
    db.commit()
