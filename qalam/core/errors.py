"""Typed errors raised by the counter services and translated to HTTP by main."""

from fastapi import Request, status
from fastapi.responses import JSONResponse
import logging

logger = logging.getLogger(__name__)


class QalamError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class InvalidIdentifierError(QalamError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid identifier"


class NotFoundError(QalamError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class StoreError(QalamError):
    message = "Database operation failed"


def require_positive_id(value, name: str = "id") -> int:
    # bool is an int subclass, reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidIdentifierError(f"Invalid {name}: {value!r}")
    return value


async def qalam_error_handler(request: Request, exc: QalamError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc!r}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def parse_id(raw, message: str = "Invalid post ID") -> int:
    """Turn a path segment into a positive int or raise InvalidIdentifierError."""
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise InvalidIdentifierError(message)
    if value <= 0:
        raise InvalidIdentifierError(message)
    return value
