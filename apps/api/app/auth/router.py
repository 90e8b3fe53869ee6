"""Sign-in endpoints delegating to GitHub OAuth.

GET  /auth/login     redirects the browser to GitHub's authorize page.
GET  /auth/callback  is GitHub's redirect target: it exchanges the code
                     for an access token, wraps it in a session token
                     cookie, and sends the browser back to the dashboard.
POST /auth/logout    clears the cookie and forgets the user's dashboard
                     state.
GET  /auth/me        reports who is signed in.
"""

import hmac
import logging
import secrets
from typing import Optional
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import RedirectResponse

from app.auth.dependencies import get_current_user, get_optional_user
from app.auth.schemas import LogoutResponse, MeResponse
from app.auth.session import SessionUser, issue_session_token
from app.core.config import Settings, get_settings
from app.github import client as github_client
from app.github.client import GITHUB_OAUTH_BASE, OAuthError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

STATE_COOKIE = "janitor_oauth_state"
STATE_TTL_SECONDS = 600


@router.get("/login")
async def login(settings: Settings = Depends(get_settings)) -> RedirectResponse:
    """Start the GitHub OAuth flow.

    The random ``state`` round-trips through GitHub and is checked against
    a short-lived cookie on the way back, so a callback cannot be forged
    from another site.
    """
    if not settings.github_client_id:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="GitHub sign-in is not configured",
        )

    state = secrets.token_urlsafe(24)
    query = urlencode(
        {
            "client_id": settings.github_client_id,
            "redirect_uri": settings.oauth_redirect_url,
            "scope": settings.github_oauth_scope,
            "state": state,
        }
    )
    response = RedirectResponse(f"{GITHUB_OAUTH_BASE}/authorize?{query}", status_code=status.HTTP_302_FOUND)
    response.set_cookie(
        STATE_COOKIE,
        state,
        max_age=STATE_TTL_SECONDS,
        httponly=True,
        samesite="lax",
        secure=not settings.debug,
    )
    return response


@router.get("/callback")
async def callback(
    request: Request,
    code: str = "",
    state: str = "",
    error: str = "",
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    """Finish the OAuth flow and issue the session cookie."""
    if error:
        logger.info("auth: GitHub returned error=%s on callback", error)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"GitHub sign-in failed: {error}")

    expected_state = request.cookies.get(STATE_COOKIE, "")
    if not code or not state or not expected_state or not hmac.compare_digest(state, expected_state):
        logger.warning("auth: OAuth state mismatch or missing code")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid OAuth state")

    try:
        access_token = await github_client.exchange_oauth_code(
            code,
            client_id=settings.github_client_id,
            client_secret=settings.github_client_secret,
            redirect_uri=settings.oauth_redirect_url,
            timeout=settings.github_timeout_seconds,
        )
        profile = await github_client.get_authenticated_user(
            access_token, timeout=settings.github_timeout_seconds
        )
        user = SessionUser(
            login=profile["login"],
            github_id=int(profile["id"]),
            access_token=access_token,
        )
    except OAuthError as exc:
        logger.warning("auth: OAuth code exchange rejected: %s", exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"GitHub sign-in failed: {exc}")
    except (httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
        logger.error("auth: GitHub API error during sign-in: %r", exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="GitHub API error during sign-in")

    session_token = issue_session_token(user, settings)
    logger.info("auth: signed in %s", user.login)

    response = RedirectResponse(settings.frontend_url, status_code=status.HTTP_303_SEE_OTHER)
    response.set_cookie(
        settings.session_cookie_name,
        session_token,
        max_age=settings.session_ttl_minutes * 60,
        httponly=True,
        samesite="lax",
        secure=not settings.debug,
    )
    response.delete_cookie(STATE_COOKIE)
    return response


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    request: Request,
    response: Response,
    user: Optional[SessionUser] = Depends(get_optional_user),
    settings: Settings = Depends(get_settings),
) -> LogoutResponse:
    """Sign out. Always succeeds, even for callers who were not signed in."""
    if user is not None:
        request.app.state.workspaces.discard(user.login)
        logger.info("auth: signed out %s", user.login)
    response.delete_cookie(settings.session_cookie_name)
    return LogoutResponse(signed_out=True)


@router.get("/me", response_model=MeResponse)
async def me(user: SessionUser = Depends(get_current_user)) -> MeResponse:
    return MeResponse(login=user.login, github_id=user.github_id)
