from sqlalchemy import CheckConstraint, Column, Integer, String, Text, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from qalam.db.base import Base, utcnow

POST_STATUSES = ("published", "draft")

class Post(Base):
    __tablename__ = "posts"
    __table_args__ = (
        CheckConstraint(
            "status IN (" + ", ".join(f"'{s}'" for s in POST_STATUSES) + ")",
            name="ck_posts_status",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), default="published", nullable=False, index=True)
    # denormalized counters, rebuilt from post_views by ViewCounter.recount
    views = Column(Integer, default=0, nullable=False)
    shares = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utcnow, index=True)
    # set by crud.update_post only, counter updates must not touch it
    updated_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="posts")
    likes = relationship("Like", back_populates="post", cascade="all, delete-orphan", passive_deletes=True)
    view_events = relationship("PostView", back_populates="post", cascade="all, delete-orphan", passive_deletes=True)

    @property
    def username(self):
        return self.user.username if self.user else None
