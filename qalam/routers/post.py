from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from typing import List, Optional
from sqlalchemy.orm import Session
from qalam.core.errors import parse_id
from qalam.core.security import get_current_user, get_optional_user
from qalam.crud import post as crud
from qalam.db.models.user import User
from qalam.db.session import get_db
from qalam.schemas.counters import LikeAnalytics, PostAnalytics, ShareOut, ViewCountOut
from qalam.schemas.post import PostCreate, PostOut, PostUpdate
from qalam.services.analytics import get_like_analytics, get_post_analytics
from qalam.services.identity import visitor_id_from_request
from qalam.services.likes import LikeService
from qalam.services.shares import ShareCounter
from qalam.services.views import ViewCounter

router = APIRouter()


def _page(page: int, limit: int) -> int:
    return (page - 1) * limit


@router.get("/", response_model=List[PostOut])
def get_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    posts = crud.get_posts(db, skip=_page(page, limit), limit=limit)
    return crud.to_post_list(db, posts)


@router.get("/search", response_model=List[PostOut])
def search_posts(
    q: str = Query(..., min_length=1),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    posts = crud.search_posts(db, q.strip(), skip=_page(page, limit), limit=limit)
    return crud.to_post_list(db, posts)


#get posts of current user, drafts included
@router.get("/me", response_model=List[PostOut])
def get_my_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    posts = crud.get_posts_by_user(db, current_user.id, skip=_page(page, limit), limit=limit)
    return crud.to_post_list(db, posts)


@router.post("/", response_model=PostOut, status_code=status.HTTP_201_CREATED)
def create_post(
    post_in: PostCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    post = crud.create_post(db, post_in, current_user.id)
    return crud.to_post_out(post, 0)


# Get a single post. Every read goes through the view counter.
@router.get("/{post_id}", response_model=PostOut)
def get_post_by_id(
    post_id: str,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    pid = parse_id(post_id)
    post = crud.get_visible_post(db, pid, current_user)

    # signed-in readers are deduped by account, everyone else by address + agent
    visitor_id = f"user-{current_user.id}" if current_user else visitor_id_from_request(request)
    ViewCounter(db).record_view(pid, visitor_id)

    db.refresh(post)
    likes_count = LikeService(db).count_likes(pid)
    return crud.to_post_out(post, likes_count)


@router.put("/{post_id}", response_model=PostOut)
def update_post(
    post_id: str,
    post_in: PostUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    pid = parse_id(post_id)
    post = crud.get_owned_post(db, pid, current_user.id)
    if not post_in.model_fields_set:
        raise HTTPException(status_code=400, detail="No changes to update")

    post = crud.update_post(db, post, post_in)
    return crud.to_post_out(post, LikeService(db).count_likes(pid))


@router.delete("/{post_id}")
def delete_post(
    post_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    pid = parse_id(post_id)
    post = crud.get_owned_post(db, pid, current_user.id)
    crud.delete_post(db, post)
    return {"message": "Post deleted successfully"}


# Share - public, every call counts
@router.post("/{post_id}/share", response_model=ShareOut)
def share_post(
    post_id: str,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
):
    pid = parse_id(post_id)
    crud.get_visible_post(db, pid, current_user)
    result = ShareCounter(db).record_share(pid)
    return ShareOut(shares=result.shares)


@router.get("/{post_id}/analytics", response_model=PostAnalytics)
def post_analytics(
    post_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return get_post_analytics(db, parse_id(post_id), current_user.id)


@router.get("/{post_id}/likes/analytics", response_model=LikeAnalytics)
def like_analytics(
    post_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    pid = parse_id(post_id)
    crud.get_owned_post(db, pid, current_user.id)
    return get_like_analytics(db, pid)


@router.post("/{post_id}/views/recount", response_model=ViewCountOut)
def recount_views(
    post_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    pid = parse_id(post_id)
    crud.get_owned_post(db, pid, current_user.id)
    return ViewCountOut(views=ViewCounter(db).recount(pid))
