"""Authentication dependencies for route guards.

The session token is accepted from the ``Authorization: Bearer`` header
(API clients) or from the httponly session cookie set by
``/auth/callback`` (the browser dashboard, including its EventSource log
stream, which cannot set headers). The header wins when both are present.
"""

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from jose import JWTError

from app.auth.session import SessionUser, decode_session_token
from app.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


def _extract_token(request: Request, authorization: str, cookie_name: str) -> str:
    if authorization:
        if not authorization.startswith("Bearer "):
            return ""
        return authorization.removeprefix("Bearer ").strip()
    return request.cookies.get(cookie_name, "")


async def get_current_user(
    request: Request,
    authorization: str = Header(default=""),
    settings: Settings = Depends(get_settings),
) -> SessionUser:
    """Validate the session token and return the signed-in user.

    Also records the login on ``request.state`` for the rate limiter key.
    """
    token = _extract_token(request, authorization, settings.session_cookie_name)
    if not token:
        logger.warning("auth: missing or malformed session token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not signed in",
        )

    try:
        user = decode_session_token(token, settings)
    except JWTError as exc:
        logger.warning("auth: session token rejected: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session",
        )

    request.state.github_login = user.login
    return user


async def get_optional_user(
    request: Request,
    authorization: str = Header(default=""),
    settings: Settings = Depends(get_settings),
) -> Optional[SessionUser]:
    """Like `get_current_user`, but a signed-out caller yields None."""
    try:
        return await get_current_user(request, authorization, settings)
    except HTTPException:
        return None
