"""Per-client rate limiting for the API router."""
import os
from dotenv import load_dotenv
from fastapi import Request

from slowapi import Limiter
from slowapi.util import get_remote_address

load_dotenv()

RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "false").lower() == "true"
DEFAULT_RATE_LIMIT = os.getenv("DEFAULT_RATE_LIMIT", "60/minute")

# In-memory storage; limits are keyed by client address.
limiter = Limiter(key_func=get_remote_address, enabled=RATE_LIMIT_ENABLED)

def current_rate_limit() -> str:
    """Read per request so the limit string can be changed without re-registering the dependency."""
    return DEFAULT_RATE_LIMIT

@limiter.limit(current_rate_limit)
async def enforce_rate_limit(request: Request) -> None:
    """
    Router-level dependency. slowapi raises ``RateLimitExceeded`` before this
    body runs once the client is over the limit; the app maps that to 429.
    """
    # slowapi reads this after the call, and never sets it while disabled.
    if not hasattr(request.state, "view_rate_limit"):
        request.state.view_rate_limit = None
