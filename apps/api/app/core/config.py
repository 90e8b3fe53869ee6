from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# GitHub caps per_page at 100 for both the repository and artifact listings.
GITHUB_MAX_PAGE_SIZE = 100


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    GitHub OAuth credentials come from an OAuth App registered on GitHub
    with its callback URL pointing at ``/auth/callback``. The session
    secret signs the session tokens handed to the browser; it must be
    set to a long random value outside local development.

    Listing limits
    ──────────────
    • repository_page_size / artifact_page_size: per_page sent to GitHub
    • repository_max_pages / artifact_max_pages: pages followed via the
      ``Link`` header; 1 keeps the single-page limit of 100 items
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # GitHub OAuth App
    github_client_id: str = ""
    github_client_secret: str = ""
    github_oauth_scope: str = "repo"
    oauth_redirect_url: str = "http://localhost:8000/auth/callback"

    # Where the browser lands after sign-in.
    frontend_url: str = "http://localhost:3000"

    # Session tokens (HS256 JWT carrying the GitHub access token).
    session_secret: str = "dev-session-secret-change-me"
    session_ttl_minutes: int = 8 * 60
    session_cookie_name: str = "janitor_session"

    # GitHub REST calls
    github_timeout_seconds: float = 30.0
    repository_page_size: int = GITHUB_MAX_PAGE_SIZE
    artifact_page_size: int = GITHUB_MAX_PAGE_SIZE
    repository_max_pages: int = 1
    artifact_max_pages: int = 1

    # Upper bound on concurrent artifact listings during a load.
    artifact_fetch_concurrency: int = 8

    @field_validator("repository_page_size", "artifact_page_size")
    @classmethod
    def clamp_page_size(cls, v: int) -> int:
        if v < 1 or v > GITHUB_MAX_PAGE_SIZE:
            raise ValueError(f"page size must be between 1 and {GITHUB_MAX_PAGE_SIZE}")
        return v

    @field_validator("repository_max_pages", "artifact_max_pages", "artifact_fetch_concurrency")
    @classmethod
    def require_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    # CORS: allowed origins, given as a JSON list in the environment.
    # Credentials are sent cross-origin, so list the dashboard origin explicitly in production.
    cors_origins: list[str] = ["http://localhost:3000"]

    # Rate limiting on bulk deletion endpoints, SlowAPI format.
    delete_rate_limit: str = "10/minute"

    # Sentry: leave blank to disable error capture.
    sentry_dsn: str = ""

    # App
    debug: bool = True


def get_settings() -> Settings:
    return Settings()
