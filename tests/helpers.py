from datetime import datetime, timedelta
from unittest.mock import patch
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import StaticPool

from qalam.core.security import create_access_token, hash_password
from qalam.db.models.post import Post
from qalam.db.models.user import User
from qalam.db.session import Database

DEFAULT_PASSWORD = "Password123"
_password_hash = None


def make_database() -> Database:
    db = Database("sqlite://", poolclass=StaticPool)
    db.create_all()
    return db


def _hashed_default():
    global _password_hash
    if _password_hash is None:
        _password_hash = hash_password(DEFAULT_PASSWORD)
    return _password_hash


def make_user(session, username="alice", email=None, role="user") -> User:
    user = User(
        username=username,
        email=email or f"{username}@example.com",
        password=_hashed_default(),
        role=role,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def make_post(session, user, title="Hello World", content="Some words here", slug=None,
              status="published", views=0, shares=0) -> Post:
    post = Post(
        title=title,
        content=content,
        slug=slug or f"{title.lower().replace(' ', '-')}-{user.id}-{session.query(Post).count()}",
        user_id=user.id,
        status=status,
        views=views,
        shares=shares,
    )
    session.add(post)
    session.commit()
    session.refresh(post)
    return post


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


class FakeClock:
    def __init__(self, start=datetime(2026, 3, 1, 12, 0, 0)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def fail_on_call(session, method, call_number):
    """Patch ``session.<method>`` so its ``call_number``-th call raises OperationalError."""
    real = getattr(session, method)
    calls = {"count": 0}

    def wrapper(*args, **kwargs):
        calls["count"] += 1
        if calls["count"] == call_number:
            raise OperationalError("statement", {}, Exception("database is locked"))
        return real(*args, **kwargs)

    return patch.object(session, method, side_effect=wrapper)
