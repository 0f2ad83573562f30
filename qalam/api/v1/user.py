from fastapi import APIRouter, Depends
from typing import List
from sqlalchemy.orm import Session
from qalam.core.security import get_current_user
from qalam.crud import post as crud
from qalam.db.models.user import User
from qalam.db.session import get_db
from qalam.schemas.counters import OwnerAnalytics
from qalam.schemas.post import PostOut
from qalam.schemas.user import UserOut
from qalam.services.analytics import get_owner_analytics


router = APIRouter()


@router.get("/me", response_model=UserOut)
def get_user_me(current_user: User = Depends(get_current_user)):
    return current_user


#get posts liked by the current user
@router.get("/me/liked-posts", response_model=List[PostOut])
def get_liked_posts(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return crud.to_post_list(db, crud.get_liked_posts(db, current_user.id))


# totals across every post the current user owns
@router.get("/me/analytics", response_model=OwnerAnalytics)
def get_my_analytics(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return get_owner_analytics(db, current_user.id)
