"""ASGI middleware for the Artifact Janitor API.

Registered in `create_app()` in this order (the last one runs outermost):
  1. CORSMiddleware            (FastAPI)
  2. SlowAPIMiddleware         (slowapi)
  3. SecurityHeadersMiddleware security and caching headers
  4. RequestIdMiddleware       X-Request-ID propagation

`_request_id_var` holds the current request ID; the logging layer reads it
so every log line written while serving a request carries the same ID.
"""

import uuid
from contextvars import ContextVar
from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

_request_id_var: ContextVar[str] = ContextVar("request_id", default="")

REQUEST_ID_HEADER = "X-Request-ID"


def get_request_id() -> str:
    """Return the current request's ID, or an empty string outside a request."""
    return _request_id_var.get()


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Reuse the caller's X-Request-ID or mint one, and echo it back.

    The dashboard forwards its own ID when it has one so a click in the
    browser can be matched to the server-side log lines it produced.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())

        token = _request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            _request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Attach security headers to every outgoing response.

    Dashboard payloads describe the user's private repositories, so they
    are also marked ``Cache-Control: no-store`` to keep them out of shared
    and browser caches.
    """

    HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "X-XSS-Protection": "0",
    }

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        response = await call_next(request)
        for name, value in self.HEADERS.items():
            response.headers[name] = value
        if request.url.path.startswith("/dashboard") and "cache-control" not in response.headers:
            response.headers["Cache-Control"] = "no-store"
        return response
