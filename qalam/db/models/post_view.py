from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Index
from sqlalchemy.orm import relationship
from qalam.db.base import Base, utcnow

class PostView(Base):
    """One counted view of a post by a visitor identifier.

    ``user_identifier`` is an opaque string (see services.identity), not a
    foreign key: anonymous visitors have no user row.
    """
    __tablename__ = "post_views"
    __table_args__ = (
        Index("ix_post_views_dedup", "post_id", "user_identifier", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)
    user_identifier = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    post = relationship("Post", back_populates="view_events")
