"""Session tokens for signed-in GitHub users.

After the OAuth callback we hand the browser a short-lived HS256 JWT that
wraps the user's GitHub access token. The API is otherwise stateless about
identity: every request presents the token (cookie or Bearer header) and
the GitHub credential is recovered from it.

Claims:
  sub       GitHub login
  uid       GitHub numeric user id
  gh_token  GitHub OAuth access token
  aud       fixed audience, rejects tokens minted for other services
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from app.core.config import Settings

SESSION_AUDIENCE = "artifact-janitor"
SESSION_ALGORITHM = "HS256"


@dataclass(frozen=True)
class SessionUser:
    """The signed-in user as seen by route handlers."""

    login: str
    github_id: int
    access_token: str

    def __repr__(self) -> str:
        return f"SessionUser(login={self.login!r}, github_id={self.github_id})"


def issue_session_token(user: SessionUser, settings: Settings) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user.login,
        "uid": user.github_id,
        "gh_token": user.access_token,
        "aud": SESSION_AUDIENCE,
        "iat": now,
        "exp": now + timedelta(minutes=settings.session_ttl_minutes),
    }
    return jwt.encode(payload, settings.session_secret, algorithm=SESSION_ALGORITHM)


def decode_session_token(token: str, settings: Settings) -> SessionUser:
    """Verify a session token and return its user.

    Raises ``JWTError`` for bad signatures, expiry, wrong audience, or
    missing claims.
    """
    payload = jwt.decode(
        token,
        settings.session_secret,
        algorithms=[SESSION_ALGORITHM],
        audience=SESSION_AUDIENCE,
    )

    login = payload.get("sub")
    access_token = payload.get("gh_token")
    if not login or not access_token:
        raise JWTError("Session token is missing required claims")

    try:
        github_id = int(payload.get("uid", 0))
    except (TypeError, ValueError) as exc:
        raise JWTError("Invalid uid claim") from exc

    return SessionUser(login=login, github_id=github_id, access_token=access_token)
