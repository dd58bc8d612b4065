"""Chat rate limiting.

Buckets are keyed by the caller's ``X-API-Key``; requests without one (which
the auth dependency rejects anyway) share a bucket per client address.
"""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from tablehand.config import settings

API_KEY_HEADER = "X-API-Key"


def key_api_key_or_ip(request: Request) -> str:
    api_key = request.headers.get(API_KEY_HEADER)
    if api_key:
        return f"apikey:{api_key}"
    return f"ip:{get_remote_address(request)}"


def chat_rate_limit() -> str:
    """Limit string for chat routes, read per request so overrides apply."""
    return settings.chat_rate_limit


limiter = Limiter(key_func=key_api_key_or_ip)
