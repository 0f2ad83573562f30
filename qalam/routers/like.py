from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from qalam.core.errors import parse_id
from qalam.core.security import get_current_user
from qalam.crud import post as crud
from qalam.db.models.user import User
from qalam.db.session import get_db
from qalam.schemas.counters import LikeCountOut, LikeStatus, LikeToggleResult
from qalam.services.likes import LikeService

router = APIRouter()


@router.get("/{post_id}/liked", response_model=LikeStatus)
def like_status(
    post_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    pid = parse_id(post_id)
    crud.get_visible_post(db, pid, current_user)
    likes = LikeService(db)
    return LikeStatus(
        has_liked=likes.has_liked(pid, current_user.id),
        likes_count=likes.count_likes(pid),
    )


@router.post("/{post_id}/like", response_model=LikeToggleResult)
def toggle_like(
    post_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    pid = parse_id(post_id)
    crud.get_visible_post(db, pid, current_user)
    return LikeService(db).toggle_like(pid, current_user.id)


# Legacy unlike endpoint, kept for older clients
@router.delete("/{post_id}/like", response_model=LikeCountOut)
def remove_like(
    post_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    pid = parse_id(post_id)
    crud.get_visible_post(db, pid, current_user)
    likes = LikeService(db)
    if not likes.remove_like(pid, current_user.id):
        raise HTTPException(status_code=400, detail="You have not liked this post")
    return LikeCountOut(likes_count=likes.count_likes(pid), message="Post unliked successfully")
