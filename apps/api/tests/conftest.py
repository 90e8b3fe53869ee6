"""Shared test fixtures for the Artifact Janitor API test suite.

GitHub is never contacted: tests patch the functions in
`app.github.client` with AsyncMocks. Session tokens are minted with the
same HS256 secret that the overridden settings use, so the real auth
dependency runs on every request.
"""

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt

from app.artifacts.types import Artifact, Repository
from app.artifacts.workspace import Workspace
from app.auth.session import SESSION_AUDIENCE
from app.core.config import Settings, get_settings
from app.main import create_app


# ---------------------------------------------------------------------------
# Session token test constants
# ---------------------------------------------------------------------------

TEST_SESSION_SECRET = "test-session-secret-for-unit-tests"

STUB_LOGIN = "octocat"
STUB_GITHUB_ID = 583231
STUB_ACCESS_TOKEN = "gho_stubaccesstoken"


def _make_session_token(
    login: str = STUB_LOGIN,
    *,
    github_id: int = STUB_GITHUB_ID,
    access_token: str = STUB_ACCESS_TOKEN,
    secret: str = TEST_SESSION_SECRET,
    audience: str = SESSION_AUDIENCE,
    expired: bool = False,
) -> str:
    """Mint a session token in the format issued by /auth/callback."""
    now = datetime.now(timezone.utc)
    exp = now - timedelta(hours=1) if expired else now + timedelta(hours=1)
    payload = {
        "sub": login,
        "uid": github_id,
        "gh_token": access_token,
        "aud": audience,
        "iat": now,
        "exp": exp,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def _override_settings() -> Settings:
    return Settings(
        session_secret=TEST_SESSION_SECRET,
        github_client_id="test-client-id",
        github_client_secret="test-client-secret",
        frontend_url="http://dashboard.test",
        sentry_dsn="",
        debug=False,
        artifact_fetch_concurrency=4,
        github_timeout_seconds=5.0,
    )


# ---------------------------------------------------------------------------
# GitHub payload and domain helpers
# ---------------------------------------------------------------------------


def repo_payload(repo_id: int, name: str, owner: str = STUB_LOGIN) -> dict:
    return {"id": repo_id, "name": name, "full_name": f"{owner}/{name}", "private": False}


def artifact_payload(
    artifact_id: int,
    name: str = "build",
    size: int = 1024,
    created_at: str = "2024-01-01T00:00:00Z",
    expired: bool = False,
) -> dict:
    return {
        "id": artifact_id,
        "node_id": f"MDg6QXJ0aWZhY3Q{artifact_id}",
        "name": name,
        "size_in_bytes": size,
        "archive_download_url": f"https://api.github.com/artifacts/{artifact_id}/zip",
        "expired": expired,
        "created_at": created_at,
        "expires_at": None,
        "updated_at": created_at,
    }


def make_artifact(
    artifact_id: int,
    size: int = 100,
    created_at: str = "2024-01-01T00:00:00Z",
    name: str = "",
) -> Artifact:
    return Artifact.from_api(artifact_payload(artifact_id, name or f"artifact-{artifact_id}", size, created_at))


def make_repository(
    repo_id: int,
    name: str,
    artifacts: tuple[Artifact, ...] = (),
    loading: bool = False,
) -> Repository:
    return Repository(
        id=repo_id,
        name=name,
        full_name=f"{STUB_LOGIN}/{name}",
        artifacts=artifacts,
        loading=loading,
    )


def http_error(status_code: int = 500, method: str = "GET") -> httpx.HTTPStatusError:
    """An HTTPStatusError as raised by ``response.raise_for_status()``."""
    request = httpx.Request(method, "https://api.github.com/test")
    response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError(f"HTTP {status_code}", request=request, response=response)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def session_token() -> str:
    """A valid session token for the stub user."""
    return _make_session_token()


@pytest.fixture
def workspace() -> Workspace:
    """A standalone workspace, not attached to any app."""
    return Workspace(login=STUB_LOGIN)


@pytest.fixture
def app():
    """Create a FastAPI app with settings overridden for tests.

    The SlowAPI limiter is a module-level singleton with in-memory storage,
    so its buckets are reset before each test.
    """
    from app.core.limiter import limiter

    limiter.reset()

    test_app = create_app()
    test_app.dependency_overrides[get_settings] = _override_settings
    return test_app


@pytest.fixture
def app_workspace(app) -> Workspace:
    """The stub user's workspace inside the test app."""
    return app.state.workspaces.get_or_create(STUB_LOGIN)


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client wired to the test app (no auth)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def authed_client(app, session_token) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client sending a valid session token as a Bearer header."""
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"Authorization": f"Bearer {session_token}"},
    ) as ac:
        yield ac


@pytest.fixture
def seeded_workspace(app_workspace) -> Workspace:
    """Stub user's workspace holding two repositories with artifacts and one without.

    acme-web: artifacts 10 (500 B, Jan) and 11 (1500 B, Feb)
    acme-api: artifacts 20, 21, 22 (Mar, May, Apr)
    docs:     no artifacts
    """
    app_workspace.store.replace_all(
        [
            make_repository(
                1,
                "acme-web",
                (
                    make_artifact(10, size=500, created_at="2024-01-01T00:00:00Z"),
                    make_artifact(11, size=1500, created_at="2024-02-01T00:00:00Z"),
                ),
            ),
            make_repository(
                2,
                "acme-api",
                (
                    make_artifact(20, size=100, created_at="2024-03-01T00:00:00Z"),
                    make_artifact(21, size=200, created_at="2024-05-01T00:00:00Z"),
                    make_artifact(22, size=300, created_at="2024-04-01T00:00:00Z"),
                ),
            ),
            make_repository(3, "docs"),
        ]
    )
    return app_workspace
