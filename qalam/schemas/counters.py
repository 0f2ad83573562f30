from typing import List, Literal
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class ViewResult(CamelModel):
    counted: bool


class LikeToggleResult(CamelModel):
    liked: bool
    likes_count: int
    action: Literal["liked", "unliked"]


class LikeStatus(CamelModel):
    has_liked: bool
    likes_count: int


class LikeCountOut(CamelModel):
    likes_count: int
    message: str


class ShareResult(CamelModel):
    shares: int


class ShareOut(ShareResult):
    message: str = "Post shared successfully"


class DailyLikes(CamelModel):
    date: str
    count: int


class LikeAnalytics(CamelModel):
    total_likes: int
    daily_breakdown: List[DailyLikes]


class PostAnalytics(CamelModel):
    post_id: int
    title: str
    views: int
    shares: int
    total_likes: int
    unique_likers: int
    total_view_events: int
    unique_viewers: int


class OwnerAnalytics(CamelModel):
    total_posts: int
    total_views: int
    total_shares: int
    total_likes: int
    unique_viewers: int


class ViewCountOut(CamelModel):
    views: int
