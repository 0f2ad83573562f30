from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Literal, Optional

PostStatus = Literal["published", "draft"]


def _strip_required(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be empty")
    return value


class PostBase(BaseModel):
    title: str = Field(..., max_length=255)
    content: str

    @field_validator("title", "content")
    @classmethod
    def strip_required(cls, value: str) -> str:
        return _strip_required(value)

class PostCreate(PostBase):
    status: PostStatus = "published"

class PostUpdate(BaseModel):
    """Fields an owner may change. Anything else in the body is ignored."""
    title: Optional[str] = Field(None, max_length=255)
    content: Optional[str] = None
    status: Optional[PostStatus] = None

    @field_validator("title", "content")
    @classmethod
    def strip_optional(cls, value):
        return None if value is None else _strip_required(value)

class PostOut(BaseModel):
    id: int
    title: str
    content: str
    slug: str
    user_id: int
    username: Optional[str] = None
    status: str
    views: int = 0
    shares: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None
    likes_count: int = Field(0, alias="likesCount")
    read_time: int = Field(1, alias="readTime")

    class Config:
        from_attributes = True
        populate_by_name = True
