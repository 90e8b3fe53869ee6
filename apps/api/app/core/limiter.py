"""SlowAPI rate limiter singleton.

Deleting artifacts is the only mutating traffic we send to GitHub, so the
bulk purge endpoints are throttled per signed-in GitHub login rather than
per IP. `get_current_user` stores the login on ``request.state`` while the
route's dependencies resolve, which happens before SlowAPI evaluates the
limit inside the decorated handler.

Usage in route handlers:
    @router.post("/some-endpoint")
    @limiter.limit(settings.delete_rate_limit)
    async def handler(request: Request, ...):
        ...

The `Request` parameter is required by SlowAPI even if the handler doesn't
use it directly: it uses it to extract the key.
"""

from slowapi import Limiter


def _github_login_key(request) -> str:
    """Key function: rate-limit per GitHub login, falling back to client IP."""
    login = getattr(request.state, "github_login", None)
    if login:
        return f"user:{login}"
    return request.client.host if request.client else "unknown"


limiter = Limiter(key_func=_github_login_key, default_limits=[])
