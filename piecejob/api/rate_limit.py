"""Rate limiting for the PieceJob API.

Requests are counted per acting user when the ``X-Actor-Id`` header is
present, and per client address otherwise.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

ACTOR_HEADER = "x-actor-id"


def get_rate_limit_key(request) -> str:
    """Resolve the bucket a request is counted against."""
    actor_id = request.headers.get(ACTOR_HEADER, "").strip()
    if actor_id:
        return f"actor:{actor_id}"
    return get_remote_address(request)


limiter = Limiter(key_func=get_rate_limit_key)
