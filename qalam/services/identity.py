import hashlib
from fastapi import Request

from qalam.core.config import settings

UNKNOWN = "unknown"
AGENT_DIGEST_LENGTH = 32
MAX_IDENTIFIER_LENGTH = 255


def resolve_visitor_id(client_host: str | None, user_agent: str | None) -> str:
    """Build the opaque identifier used to dedupe anonymous views.

    Same (address, user-agent) pair always gives the same identifier. A
    missing signal is replaced by ``unknown``, so requests lacking both
    collapse into one visitor.
    """
    host = (client_host or "").strip() or UNKNOWN
    agent = (user_agent or "").strip()
    if agent:
        digest = hashlib.sha256(agent.encode("utf-8")).hexdigest()[:AGENT_DIGEST_LENGTH]
    else:
        digest = UNKNOWN
    return f"{host}-{digest}"[:MAX_IDENTIFIER_LENGTH]


def client_host_from_request(request: Request) -> str | None:
    """The peer address, or the forwarded client when the peer is a trusted proxy."""
    peer = request.client.host if request.client else None
    if peer is None or peer not in settings.TRUSTED_PROXIES:
        return peer
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return peer


def visitor_id_from_request(request: Request) -> str:
    return resolve_visitor_id(
        client_host_from_request(request),
        request.headers.get("user-agent"),
    )
