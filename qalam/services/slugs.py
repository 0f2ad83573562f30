import re
import unicodedata
from sqlalchemy import select, or_
from sqlalchemy.orm import Session

from qalam.db.models.post import Post

_NON_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(title: str) -> str:
    text = unicodedata.normalize("NFKD", (title or "").strip().lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = _NON_SLUG_RE.sub("-", text).strip("-")
    return text or "post"


def generate_slug(db: Session, title: str, exclude_post_id: int | None = None) -> str:
    """Return a slug for ``title`` not used by any other post.

    Collisions get ``-1``, ``-2``, ... appended. All candidates are read in
    one query so the loop below ends after at most len(taken) + 1 steps.
    """
    base = slugify(title)
    query = select(Post.slug).where(or_(Post.slug == base, Post.slug.like(f"{base}-%")))
    if exclude_post_id is not None:
        query = query.where(Post.id != exclude_post_id)
    taken = set(db.scalars(query).all())

    slug = base
    counter = 1
    while slug in taken:
        slug = f"{base}-{counter}"
        counter += 1
    return slug
