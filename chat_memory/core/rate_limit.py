"""Request rate limiting keyed by the authenticated owner."""

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request


def owner_or_remote_address(request: Request) -> str:
    """Limit per owner once authenticated, per client address otherwise."""
    owner_id = getattr(request.state, "owner_id", None)
    if owner_id:
        return f"owner:{owner_id}"
    return get_remote_address(request)


limiter = Limiter(key_func=owner_or_remote_address)
