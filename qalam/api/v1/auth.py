from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import logging
from qalam.db.models.user import User
from qalam.schemas.user import UserCreate, UserLogin, UserOut, UserUpdate
from qalam.schemas.token import AuthResponse
from qalam.core.security import hash_password, verify_password, create_access_token, get_current_user
from qalam.db.session import get_db


router = APIRouter()


def _auth_response(user: User, message: str) -> AuthResponse:
    return AuthResponse(
        message=message,
        token=create_access_token(user),
        user=UserOut.model_validate(user),
    )


def _user_with(db: Session, **filters):
    return db.query(User).filter_by(**filters).first()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(user_in: UserCreate, db: Session = Depends(get_db)):
    email = user_in.email.lower().strip()
    if _user_with(db, email=email):
        raise HTTPException(status_code=400, detail="User with this email already exists")
    if _user_with(db, username=user_in.username):
        raise HTTPException(status_code=400, detail="Username is already taken")

    new_user = User(
        username=user_in.username,
        email=email,
        password=hash_password(user_in.password),
    )
    db.add(new_user)
    try:
        db.commit()
    except IntegrityError:
        # lost a race with another registration for the same email or username
        db.rollback()
        raise HTTPException(status_code=400, detail="User with this email or username already exists")
    db.refresh(new_user)

    logging.info(f"Registered user {new_user.id}")
    return _auth_response(new_user, "User registered successfully")


@router.post("/login", response_model=AuthResponse)
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == credentials.email.lower().strip()).first()
    if not user or not verify_password(credentials.password, user.password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    return _auth_response(user, "Login successful")


@router.get("/verify")
def verify(current_user: User = Depends(get_current_user)):
    return {"user": UserOut.model_validate(current_user), "message": "Token is valid"}


@router.put("/update-profile", response_model=AuthResponse)
def update_profile(
    changes: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    updated = False

    if changes.username is not None:
        username = changes.username.strip()
        if username and username != current_user.username:
            existing = _user_with(db, username=username)
            if existing and existing.id != current_user.id:
                raise HTTPException(status_code=400, detail="Username is already taken")
            current_user.username = username
            updated = True

    if changes.email is not None:
        email = changes.email.lower().strip()
        if email != current_user.email:
            existing = _user_with(db, email=email)
            if existing and existing.id != current_user.id:
                raise HTTPException(status_code=400, detail="Email is already taken")
            current_user.email = email
            updated = True

    if changes.new_password:
        if not changes.current_password:
            raise HTTPException(status_code=400, detail="Current password is required to change password")
        if not verify_password(changes.current_password, current_user.password):
            raise HTTPException(status_code=401, detail="Current password is incorrect")
        current_user.password = hash_password(changes.new_password)
        updated = True

    if not updated:
        db.rollback()
        raise HTTPException(status_code=400, detail="No changes to update")

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Username or email is already taken")
    db.refresh(current_user)
    return _auth_response(current_user, "Profile updated successfully")


@router.post("/logout")
def logout():
    return {"message": "Logged out successfully"}
