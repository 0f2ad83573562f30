from datetime import datetime, timezone
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    # naive UTC, matching what the DateTime columns round-trip on every backend
    return datetime.now(timezone.utc).replace(tzinfo=None)
